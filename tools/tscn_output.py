#!/usr/bin/env python3
"""
tscn_output.py - Project a MapData into one of the JSON output shapes.

  sprites     {tilemap, decorators, sprites, prefabs}
  legacy      {tilemap, sprite2ds, prefabs}
  decorators  {tilemap, decorators}   (sprites folded in by convert_to_tilemap)

Collider pivots are kept in world convention inside MapData and are
Y-inverted exactly once here, on the way out.
"""

from __future__ import annotations

import json
from dataclasses import replace
from typing import Dict, List

from tscn_model import (
    DecoratorNode,
    MapData,
    OutputShape,
    PrefabNode,
    PropKind,
    SceneNode,
    SpriteNode,
    WorldPoint,
)


# ----------------------------
# Merging
# ----------------------------


def merge_prefab(node: SceneNode, prefab: PrefabNode) -> None:
    """Fold prefab geometry into an instance, in place.

    Rotation is summed and scale multiplied; the instance keeps its own
    position and parent.
    """
    if prefab.name:
        node.name = prefab.name
    node.pivot = prefab.pivot
    node.z_index = prefab.z_index
    node.collider_type = prefab.collider_type
    node.collider_pivot = prefab.collider_pivot
    node.collider_params = list(prefab.collider_params)
    node.rotation = node.rotation + prefab.rotation
    node.scale = WorldPoint(node.scale.x * prefab.scale.x, node.scale.y * prefab.scale.y)


def enrich_sprites(data: MapData) -> List[SpriteNode]:
    out: List[SpriteNode] = []
    for sprite in data.sprites:
        enriched = replace(sprite, properties=dict(sprite.properties))
        prefab = data.prefabs_by_path.get(sprite.path)
        if prefab is not None:
            merge_prefab(enriched, prefab)
            enriched.texture = prefab.texture
        out.append(enriched)
    return out


def unique_prefabs(data: MapData) -> List[PrefabNode]:
    """Prefab definitions in instance order, first occurrence of a name wins."""
    seen = set()
    out: List[PrefabNode] = []
    for sprite in data.sprites:
        prefab = data.prefabs_by_path.get(sprite.path)
        if prefab is None or prefab.name in seen:
            continue
        seen.add(prefab.name)
        out.append(prefab)
    return out


def _is_marker(sprite: SpriteNode) -> bool:
    gid = sprite.properties.get("gid")
    return gid is not None and gid.kind == PropKind.INT and gid.value != 0


def convert_to_tilemap(data: MapData) -> List[DecoratorNode]:
    """Fold every instance and its prefab into a flat decorator list.

    Existing Sprite2D decorators come first. Instances carrying a non-zero
    `gid` property are markers and are skipped. Parents are cleared.
    """
    decorators: List[DecoratorNode] = [
        replace(d, properties=dict(d.properties)) for d in data.decorators
    ]
    for sprite in data.sprites:
        if _is_marker(sprite):
            continue
        decorator = DecoratorNode(
            name=sprite.name,
            parent=sprite.parent,
            path=sprite.path,
            position=sprite.position,
            scale=sprite.scale,
            rotation=sprite.rotation,
            z_index=sprite.z_index,
            properties=dict(sprite.properties),
        )
        prefab = data.prefabs_by_path.get(sprite.path)
        if prefab is not None:
            merge_prefab(decorator, prefab)
            # rendered with the prefab's texture, not the scene path
            decorator.path = prefab.texture
        decorators.append(decorator)

    for decorator in decorators:
        decorator.parent = ""
    return decorators


# ----------------------------
# Serialisation
# ----------------------------


def _properties_dict(props) -> Dict[str, object]:
    return {k: v.to_json() for k, v in props.items()}


def _collider_fields(out: dict, collider_type: str, pivot: WorldPoint, params: List[float]) -> None:
    if not collider_type:
        return
    out["collider_type"] = collider_type
    out["collider_pivot"] = pivot.inverted_y().to_dict()
    out["collider_params"] = list(params)


def node_to_dict(node: SceneNode) -> dict:
    out: dict = {
        "name": node.name,
        "parent": node.parent,
        "path": node.path,
        "position": node.position.to_dict(),
        "scale": node.scale.to_dict(),
        "rotation": node.rotation,
        "pivot": node.pivot.to_dict(),
    }
    if isinstance(node, SpriteNode) and node.texture:
        out["texture"] = node.texture
    if node.z_index:
        out["z_index"] = node.z_index
    _collider_fields(out, node.collider_type, node.collider_pivot, node.collider_params)
    if node.properties:
        out["properties"] = _properties_dict(node.properties)
    return out


def prefab_to_dict(prefab: PrefabNode) -> dict:
    out: dict = {
        "name": prefab.name,
        "path": prefab.path,
        "texture": prefab.texture,
        "pivot": prefab.pivot.to_dict(),
        "scale": prefab.scale.to_dict(),
        "rotation": prefab.rotation,
    }
    if prefab.z_index:
        out["z_index"] = prefab.z_index
    _collider_fields(out, prefab.collider_type, prefab.collider_pivot, prefab.collider_params)
    return out


def _legacy_sprite2d(node: DecoratorNode) -> dict:
    out: dict = {
        "name": node.name,
        "parent": node.parent,
        "position": node.position.to_dict(),
        "texture_path": node.path,
    }
    if node.z_index:
        out["z_index"] = node.z_index
    return out


def _legacy_prefab(node: SpriteNode) -> dict:
    out: dict = {
        "name": node.name,
        "parent": node.parent,
        "position": node.position.to_dict(),
        "prefab_path": node.path,
    }
    if node.properties:
        out["properties"] = _properties_dict(node.properties)
    return out


def project(data: MapData, shape: OutputShape = OutputShape.SPRITES) -> dict:
    out: dict = {"tilemap": data.tilemap.to_dict()}
    if shape == OutputShape.LEGACY:
        out["sprite2ds"] = [_legacy_sprite2d(d) for d in data.decorators]
        out["prefabs"] = [_legacy_prefab(s) for s in data.sprites]
    elif shape == OutputShape.DECORATORS:
        out["decorators"] = [node_to_dict(d) for d in convert_to_tilemap(data)]
    else:
        out["decorators"] = [node_to_dict(d) for d in data.decorators]
        out["sprites"] = [node_to_dict(s) for s in enrich_sprites(data)]
        out["prefabs"] = [prefab_to_dict(p) for p in unique_prefabs(data)]
    return out


def to_json(data: MapData, shape: OutputShape = OutputShape.SPRITES) -> str:
    return json.dumps(project(data, shape), indent=2)
