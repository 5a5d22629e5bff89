#!/usr/bin/env python3
"""
tscn_model.py - Data model shared by the TSCN -> tilemap JSON converter.

Coordinates follow two conventions:
  - source convention: as written in the .tscn file (Y grows downwards)
  - world convention:  Y inverted, which is what the game engine consumes

Everything read from a node position is stored in world convention.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union

from tscn_errors import ConfigError


# ----------------------------
# Geometry
# ----------------------------


@dataclass
class Point:
    x: int = 0
    y: int = 0

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}


@dataclass
class WorldPoint:
    x: float = 0.0
    y: float = 0.0

    def inverted_y(self) -> "WorldPoint":
        return WorldPoint(self.x, -self.y if self.y else 0.0)

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class TileSize:
    width: int = 16
    height: int = 16

    def to_dict(self) -> dict:
        return {"width": self.width, "height": self.height}


# ----------------------------
# Resources
# ----------------------------


@dataclass
class ExtResource:
    id: str
    type: str = ""
    path: str = ""
    uid: str = ""


class ShapeType(str, Enum):
    RECTANGLE = "Rectangle"
    CIRCLE = "Circle"
    CAPSULE = "Capsule"
    CONVEX_POLYGON = "ConvexPolygon"
    CONCAVE_POLYGON = "ConcavePolygon"


# Godot resource type -> collider kind
SHAPE_RESOURCE_TYPES = {
    "RectangleShape2D": ShapeType.RECTANGLE,
    "CircleShape2D": ShapeType.CIRCLE,
    "CapsuleShape2D": ShapeType.CAPSULE,
    "ConvexPolygonShape2D": ShapeType.CONVEX_POLYGON,
    "ConcavePolygonShape2D": ShapeType.CONCAVE_POLYGON,
}


@dataclass
class ShapeInfo:
    type: ShapeType
    dimensions: WorldPoint = field(default_factory=WorldPoint)
    points: List[float] = field(default_factory=list)

    def params(self) -> List[float]:
        """Collider parameter list; its meaning depends on the shape type."""
        if self.type == ShapeType.RECTANGLE:
            return [self.dimensions.x, self.dimensions.y]
        if self.type == ShapeType.CIRCLE:
            return [self.dimensions.x]
        if self.type == ShapeType.CAPSULE:
            return [self.dimensions.x, self.dimensions.y]
        return list(self.points)


@dataclass
class SubResource:
    id: str
    type: str = ""
    texture_ext_id: str = ""  # TileSetAtlasSource -> ExtResource binding
    physics_points: List[WorldPoint] = field(default_factory=list)
    shape: Optional[ShapeInfo] = None


# ----------------------------
# Tilemap
# ----------------------------


@dataclass
class PhysicsData:
    collision_points: List[WorldPoint] = field(default_factory=list)


@dataclass
class TileInfo:
    atlas_coords: Point = field(default_factory=Point)
    physics: PhysicsData = field(default_factory=PhysicsData)

    def to_dict(self) -> dict:
        out = {"atlas_coords": self.atlas_coords.to_dict()}
        if self.physics.collision_points:
            out["physics"] = {
                "collision_points": [p.to_dict() for p in self.physics.collision_points]
            }
        return out


@dataclass
class TileSource:
    id: int
    texture_path: str = "unknown"
    tiles: List[TileInfo] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "texture_path": self.texture_path,
            "tiles": [t.to_dict() for t in self.tiles],
        }


@dataclass
class Layer:
    id: int
    name: str
    z_index: int = 0
    tile_data: List[int] = field(default_factory=list)  # groups of 5: src, x, y, ax, ay

    def to_dict(self) -> dict:
        out: dict = {"id": self.id, "name": self.name}
        if self.z_index:
            out["z_index"] = self.z_index
        out["tile_data"] = list(self.tile_data)
        return out


@dataclass
class TileMapData:
    format: int = 0
    tile_size: TileSize = field(default_factory=TileSize)
    sources: List[TileSource] = field(default_factory=list)  # sorted by id
    layers: List[Layer] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "format": self.format,
            "tile_size": self.tile_size.to_dict(),
            "tileset": {"sources": [s.to_dict() for s in self.sources]},
            "layers": [layer.to_dict() for layer in self.layers],
        }


# ----------------------------
# Property bag
# ----------------------------


class PropKind(str, Enum):
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    VECTOR2 = "vector2"


@dataclass(frozen=True)
class PropValue:
    """Tagged value stored in a node's free-form property bag."""

    kind: PropKind
    value: Union[str, int, float, WorldPoint]

    @classmethod
    def of_str(cls, value: str) -> "PropValue":
        return cls(PropKind.STRING, value)

    @classmethod
    def of_int(cls, value: int) -> "PropValue":
        return cls(PropKind.INT, value)

    @classmethod
    def of_float(cls, value: float) -> "PropValue":
        return cls(PropKind.FLOAT, value)

    @classmethod
    def of_vector2(cls, value: WorldPoint) -> "PropValue":
        return cls(PropKind.VECTOR2, value)

    def to_json(self):
        if self.kind == PropKind.VECTOR2:
            return self.value.to_dict()
        return self.value


# ----------------------------
# Scene nodes
# ----------------------------


@dataclass
class SceneNode:
    name: str = ""
    parent: str = ""
    path: str = "unknown"
    position: WorldPoint = field(default_factory=WorldPoint)
    scale: WorldPoint = field(default_factory=lambda: WorldPoint(1.0, 1.0))
    rotation: float = 0.0
    z_index: int = 0
    pivot: WorldPoint = field(default_factory=WorldPoint)
    collider_type: str = ""
    collider_pivot: WorldPoint = field(default_factory=WorldPoint)  # world convention
    collider_params: List[float] = field(default_factory=list)
    properties: Dict[str, PropValue] = field(default_factory=dict)


@dataclass
class DecoratorNode(SceneNode):
    """Sprite2D placed directly in the scene; `path` is its texture."""


@dataclass
class SpriteNode(SceneNode):
    """Instanced sub-scene; `path` is the declared prefab path."""

    texture: str = ""


@dataclass
class PrefabNode:
    """Geometry recovered from a prefab sub-document."""

    name: str = ""
    path: str = ""  # declared path, also the cache key
    texture: str = ""
    pivot: WorldPoint = field(default_factory=WorldPoint)
    scale: WorldPoint = field(default_factory=lambda: WorldPoint(1.0, 1.0))
    rotation: float = 0.0
    z_index: int = 0
    collider_type: str = ""
    collider_pivot: WorldPoint = field(default_factory=WorldPoint)  # world convention
    collider_params: List[float] = field(default_factory=list)


@dataclass
class MapData:
    tilemap: TileMapData = field(default_factory=TileMapData)
    decorators: List[DecoratorNode] = field(default_factory=list)
    sprites: List[SpriteNode] = field(default_factory=list)
    prefabs_by_path: Dict[str, PrefabNode] = field(default_factory=dict)
    world_size: Optional[TileSize] = None
    bounds_error: str = ""


# ----------------------------
# Configuration
# ----------------------------


class OutputShape(str, Enum):
    SPRITES = "sprites"  # tilemap + decorators + sprites + prefabs
    LEGACY = "legacy"  # tilemap + sprite2ds + prefabs
    DECORATORS = "decorators"  # tilemap + merged decorators


@dataclass(frozen=True)
class ConvertConfig:
    tile_size: TileSize = TileSize(16, 16)
    offset_x: int = 0
    offset_y: int = 0
    prefab_dir: Optional[Path] = None
    shape: OutputShape = OutputShape.SPRITES
    validate_bounds: bool = True

    def tile_offset(self) -> Point:
        # truncates toward zero, not floor
        w = self.tile_size.width or 1
        h = self.tile_size.height or 1
        return Point(int(self.offset_x / w), int(self.offset_y / h))


def _parse_tile_size(value) -> TileSize:
    if isinstance(value, int):
        return TileSize(value, value)
    if isinstance(value, list) and len(value) == 2:
        return TileSize(int(value[0]), int(value[1]))
    raise ConfigError(f"tile_size must be an int or [w, h]: {value!r}")


def load_config(path: Union[str, Path], base: Optional[ConvertConfig] = None) -> ConvertConfig:
    """Load a JSON config file on top of `base` (defaults when omitted)."""
    cfg = base or ConvertConfig()
    config_path = Path(path)
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Could not read config {config_path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config {config_path} must contain a JSON object")

    kwargs = {
        "tile_size": cfg.tile_size,
        "offset_x": cfg.offset_x,
        "offset_y": cfg.offset_y,
        "prefab_dir": cfg.prefab_dir,
        "shape": cfg.shape,
        "validate_bounds": cfg.validate_bounds,
    }
    try:
        if "tile_size" in data:
            kwargs["tile_size"] = _parse_tile_size(data["tile_size"])
        if "offset_x" in data:
            kwargs["offset_x"] = int(data["offset_x"])
        if "offset_y" in data:
            kwargs["offset_y"] = int(data["offset_y"])
        if data.get("prefab_dir"):
            prefab_dir = Path(data["prefab_dir"])
            if not prefab_dir.is_absolute():
                prefab_dir = config_path.parent / prefab_dir
            kwargs["prefab_dir"] = prefab_dir
        if "shape" in data:
            kwargs["shape"] = OutputShape(data["shape"])
        if "validate_bounds" in data:
            kwargs["validate_bounds"] = bool(data["validate_bounds"])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value in config {config_path}: {e}") from e
    return ConvertConfig(**kwargs)
