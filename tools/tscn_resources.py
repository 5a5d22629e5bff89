#!/usr/bin/env python3
"""
tscn_resources.py - External/sub-resource tables built while scanning a TSCN.

One ResourceTables instance belongs to one document parse. The main scene
and every prefab sub-document get their own instance, so ids never leak
between documents.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional

from tscn_codec import (
    RE_EXT_REF,
    RE_PATH,
    RE_SUB_REF,
    RE_TYPE,
    RE_UID,
    extract_attr,
    extract_float_value,
    extract_resource_id,
    flatten_points,
    parse_packed_vector2,
    parse_vector2,
)
from tscn_model import (
    SHAPE_RESOURCE_TYPES,
    ExtResource,
    PhysicsData,
    Point,
    ShapeInfo,
    ShapeType,
    SubResource,
    TileInfo,
    TileSize,
    TileSource,
    WorldPoint,
)

logger = logging.getLogger(__name__)

PHYSICS_POINTS_PREFIX = "0:0/0/physics_layer_0/polygon_0/points"
RE_SOURCE_ID = re.compile(r"^sources/(\d+)")


def tile_size_from_points(points: List[WorldPoint]) -> TileSize:
    """Axis-aligned bounding box of a collision polygon, as a tile size."""
    min_x = min(p.x for p in points)
    max_x = max(p.x for p in points)
    min_y = min(p.y for p in points)
    max_y = max(p.y for p in points)
    return TileSize(int(max_x - min_x), int(max_y - min_y))


class ResourceTables:
    def __init__(self, tile_size: TileSize):
        self.tile_size = tile_size
        self.ext_resources: Dict[str, ExtResource] = {}
        self.sub_resources: Dict[str, SubResource] = {}
        self.sources: Dict[int, TileSource] = {}

    # ---- external resources ----

    def add_ext_resource(self, line: str) -> Optional[ExtResource]:
        # [ext_resource type="Texture2D" uid="uid://..." path="res://..." id="1_grrf0"]
        res_id = extract_resource_id(line)
        if not res_id:
            return None
        ext = ExtResource(
            id=res_id,
            type=extract_attr(RE_TYPE, line) or "",
            path=extract_attr(RE_PATH, line) or "",
            uid=extract_attr(RE_UID, line) or "",
        )
        self.ext_resources[res_id] = ext
        return ext

    def ext_path(self, ext_id: Optional[str], default: str = "unknown") -> str:
        ext = self.ext_resources.get(ext_id or "")
        return ext.path if ext else default

    def ext_path_from_line(self, line: str, default: str = "unknown") -> str:
        return self.ext_path(extract_attr(RE_EXT_REF, line), default)

    # ---- sub-resources ----

    def begin_sub_resource(self, header: str) -> str:
        """Register a [sub_resource ...] header and return its id."""
        sub_id = extract_resource_id(header) or ""
        if not sub_id:
            return ""
        res_type = extract_attr(RE_TYPE, header) or ""
        sub = self.sub_resources.get(sub_id)
        if sub is None:
            sub = SubResource(id=sub_id, type=res_type)
            self.sub_resources[sub_id] = sub
        # the first shape-typed declaration fixes the kind
        shape_type = SHAPE_RESOURCE_TYPES.get(res_type)
        if shape_type is not None and sub.shape is None:
            sub.shape = ShapeInfo(type=shape_type)
        return sub_id

    def shape(self, sub_id: Optional[str]) -> Optional[ShapeInfo]:
        sub = self.sub_resources.get(sub_id or "")
        return sub.shape if sub else None

    def parse_sub_resource_line(self, line: str, sub_id: str) -> None:
        if not sub_id:
            return
        sub = self.sub_resources.setdefault(sub_id, SubResource(id=sub_id))

        if line.startswith("texture = ExtResource("):
            ext_id = extract_attr(RE_EXT_REF, line)
            if ext_id:
                sub.texture_ext_id = ext_id
        elif line.startswith(PHYSICS_POINTS_PREFIX):
            points = parse_packed_vector2(line)
            if len(points) >= 4:
                self.tile_size = tile_size_from_points(points)
                logger.debug(f"Tile size {self.tile_size.width}x{self.tile_size.height} from {sub_id} collision box")
            sub.physics_points = points
        elif line.startswith("size = Vector2"):
            size = parse_vector2(line)
            if size is not None and sub.shape is not None:
                sub.shape.dimensions = size
        elif line.startswith("radius = "):
            if sub.shape is not None:
                sub.shape.dimensions = WorldPoint(extract_float_value(line), sub.shape.dimensions.y)
        elif line.startswith("height = "):
            if sub.shape is not None and sub.shape.type == ShapeType.CAPSULE:
                sub.shape.dimensions = WorldPoint(sub.shape.dimensions.x, extract_float_value(line))
        elif line.startswith("points = PackedVector2Array("):
            if sub.shape is not None:
                sub.shape.points = flatten_points(parse_packed_vector2(line))
        elif line.startswith("sources/"):
            self._add_tile_source(line)

    def _add_tile_source(self, line: str) -> None:
        # sources/0 = SubResource("TileSetAtlasSource_8xjng")
        m = RE_SOURCE_ID.match(line)
        if not m:
            return
        source_id = int(m.group(1))
        ref = self.sub_resources.get(extract_attr(RE_SUB_REF, line) or "")

        texture_path = "unknown"
        physics = PhysicsData()
        if ref is not None:
            if ref.texture_ext_id:
                texture_path = self.ext_path(ref.texture_ext_id)
            if ref.physics_points:
                physics = PhysicsData(collision_points=list(ref.physics_points))

        # later declarations of the same id win
        self.sources[source_id] = TileSource(
            id=source_id,
            texture_path=texture_path,
            tiles=[TileInfo(atlas_coords=Point(0, 0), physics=physics)],
        )

    def sorted_sources(self) -> List[TileSource]:
        return [self.sources[k] for k in sorted(self.sources)]
