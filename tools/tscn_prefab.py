#!/usr/bin/env python3
"""
tscn_prefab.py - Resolve instanced sub-scenes (prefabs) and recover their geometry.

Only one level deep: a prefab referencing another prefab is not followed.
From each prefab document we keep
  - the first node name (canonical prefab name)
  - the first Sprite2D: position (pivot), scale, rotation, z_index, texture
  - the first CollisionShape2D / CollisionPolygon2D: position and geometry
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from tscn_codec import (
    RE_NAME,
    RE_PARENT,
    RE_SUB_REF,
    RE_TYPE,
    extract_attr,
    flatten_points,
    parse_packed_vector2,
    parse_transform_line,
)
from tscn_model import PrefabNode, ShapeType, TileSize, WorldPoint
from tscn_resources import ResourceTables

logger = logging.getLogger(__name__)

SCENE_ROOT = "."
RES_SCHEME = "res://"
SCENES_PREFIX = "scenes/"
COLLIDER_NODE_TYPES = ("CollisionShape2D", "CollisionPolygon2D")


@dataclass
class _ColliderNode:
    parent: str = ""
    node_type: str = ""
    position: WorldPoint = field(default_factory=WorldPoint)
    shape_ref: str = ""
    polygon: List[float] = field(default_factory=list)


def parse_prefab_document(content: str, declared_path: str) -> PrefabNode:
    tables = ResourceTables(TileSize())
    prefab = PrefabNode(path=declared_path)

    section = ""
    sub_id = ""
    have_name = False
    have_sprite = False
    collider: Optional[_ColliderNode] = None

    for raw in content.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or line.startswith(";"):
            continue

        if line.startswith("["):
            if "ext_resource" in line:
                section = "ext_resource"
                tables.add_ext_resource(line)
            elif "sub_resource" in line:
                section = "sub_resource"
                sub_id = tables.begin_sub_resource(line)
            elif line.startswith("[node"):
                node_type = extract_attr(RE_TYPE, line) or ""
                if not have_name:
                    prefab.name = extract_attr(RE_NAME, line) or ""
                    have_name = True
                if node_type == "Sprite2D" and not have_sprite:
                    section = "sprite"
                    have_sprite = True
                elif node_type in COLLIDER_NODE_TYPES and collider is None:
                    section = "collider"
                    collider = _ColliderNode(
                        parent=extract_attr(RE_PARENT, line) or "",
                        node_type=node_type,
                    )
                else:
                    section = "other"
            else:
                section = "other"
            continue

        if section == "ext_resource":
            tables.add_ext_resource(line)
        elif section == "sub_resource":
            tables.parse_sub_resource_line(line, sub_id)
        elif section == "sprite":
            if line.startswith("texture = ExtResource("):
                prefab.texture = tables.ext_path_from_line(line, "")
                continue
            prop = parse_transform_line(line)
            if prop is None:
                continue
            key, value = prop
            if key == "position":
                prefab.pivot = value
            else:
                setattr(prefab, key, value)
        elif section == "collider":
            if line.startswith("shape = SubResource("):
                collider.shape_ref = extract_attr(RE_SUB_REF, line) or ""
            elif line.startswith("polygon = PackedVector2Array("):
                collider.polygon = flatten_points(parse_packed_vector2(line))
            else:
                prop = parse_transform_line(line)
                if prop is not None and prop[0] == "position":
                    collider.position = prop[1]

    if collider is not None:
        _apply_collider(prefab, collider, tables)
    return prefab


def _apply_collider(prefab: PrefabNode, collider: _ColliderNode, tables: ResourceTables) -> None:
    if collider.node_type == "CollisionPolygon2D":
        if not collider.polygon:
            return
        prefab.collider_type = ShapeType.CONVEX_POLYGON.value
        prefab.collider_params = list(collider.polygon)
    else:
        shape = tables.shape(collider.shape_ref)
        if shape is None:
            return
        prefab.collider_type = shape.type.value
        prefab.collider_params = shape.params()

    pivot = collider.position
    if collider.parent == SCENE_ROOT:
        # sibling of the sprite: make it relative to the sprite pivot
        pivot = WorldPoint(pivot.x - prefab.pivot.x, pivot.y - prefab.pivot.y)
    prefab.collider_pivot = pivot


class PrefabResolver:
    """Loads prefab documents from a prefab root, parsing each declared path once."""

    def __init__(self, prefab_dir: Optional[Union[str, Path]] = None):
        self.prefab_dir = Path(prefab_dir) if prefab_dir else None
        self.cache: Dict[str, Optional[PrefabNode]] = {}
        self.parse_count = 0

    def resolve_path(self, declared_path: str) -> Optional[Path]:
        if self.prefab_dir is None:
            return None
        rel = declared_path
        if rel.startswith(RES_SCHEME):
            rel = rel[len(RES_SCHEME):]
        if rel.startswith(SCENES_PREFIX):
            rel = rel[len(SCENES_PREFIX):]
        return self.prefab_dir / rel

    def get(self, declared_path: str) -> Optional[PrefabNode]:
        if declared_path in self.cache:
            return self.cache[declared_path]
        prefab = self._load(declared_path)
        self.cache[declared_path] = prefab
        return prefab

    def _load(self, declared_path: str) -> Optional[PrefabNode]:
        file_path = self.resolve_path(declared_path)
        if file_path is None:
            logger.debug(f"No prefab directory configured, not enriching {declared_path}")
            return None
        try:
            content = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read prefab {declared_path} ({file_path}): {e}")
            return None

        self.parse_count += 1
        prefab = parse_prefab_document(content, declared_path)
        logger.debug(f"Parsed prefab {declared_path} as '{prefab.name}' (collider: {prefab.collider_type or 'none'})")
        return prefab
