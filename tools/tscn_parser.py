#!/usr/bin/env python3
"""
tscn_parser.py - Single-pass TSCN scanner and the TscnConverter entry point.

Section headers ("[...]" lines) switch the scanner state; every other line
is handed to the handler of the current section. Lines that do not match
what the section expects are skipped silently.

  [ext_resource ...]              -> EXT_RESOURCE (header parsed immediately)
  [sub_resource ...]              -> SUB_RESOURCE
  [node name="TileMap" ...]       -> TILEMAP
  [node ... type="Sprite2D" ...]  -> DECORATOR
  [node ... instance=ExtResource] -> SPRITE
  anything else                   -> OTHER
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

from tscn_codec import (
    RE_INSTANCE,
    RE_NAME,
    RE_PARENT,
    extract_attr,
    extract_int_value,
    parse_transform_line,
    parse_vector2,
    split_property,
)
from tscn_errors import ErrorCollector
from tscn_layers import TileBounds, extract_layers
from tscn_model import (
    ConvertConfig,
    DecoratorNode,
    MapData,
    PrefabNode,
    PropValue,
    SceneNode,
    SpriteNode,
    TileMapData,
    WorldPoint,
)
from tscn_prefab import PrefabResolver
from tscn_resources import ResourceTables

logger = logging.getLogger(__name__)


class Section(str, Enum):
    NONE = "none"
    EXT_RESOURCE = "ext_resource"
    SUB_RESOURCE = "sub_resource"
    TILEMAP = "tilemap"
    DECORATOR = "decorator"
    SPRITE = "sprite"
    OTHER = "other"


def _is_tilemap_header(header: str) -> bool:
    return 'node name="TileMap"' in header or 'type="TileMap"' in header


# Evaluated in order; the first matching predicate picks the next section.
SECTION_RULES: List[Tuple[Callable[[str], bool], Section]] = [
    (lambda h: "ext_resource" in h, Section.EXT_RESOURCE),
    (lambda h: "sub_resource" in h, Section.SUB_RESOURCE),
    (_is_tilemap_header, Section.TILEMAP),
    (lambda h: 'type="Sprite2D"' in h, Section.DECORATOR),
    (lambda h: "instance=ExtResource" in h, Section.SPRITE),
]


def classify_header(header: str) -> Section:
    for predicate, section in SECTION_RULES:
        if predicate(header):
            return section
    return Section.OTHER


def normalize_parent(parent: str) -> str:
    """Drop the scene-root prefix from a node parent path."""
    if parent == ".":
        return ""
    if parent.startswith("./"):
        return parent[2:]
    return parent


class SceneScanner:
    def __init__(self, tables: ResourceTables):
        self.tables = tables
        self.section = Section.NONE
        self.sub_id = ""
        self.format = 0
        self.decorators: List[DecoratorNode] = []
        self.sprites: List[SpriteNode] = []
        self.current: Optional[SceneNode] = None
        self._handlers: Dict[Section, Callable[[str], None]] = {
            Section.EXT_RESOURCE: self.tables.add_ext_resource,
            Section.SUB_RESOURCE: self._parse_sub_resource,
            Section.TILEMAP: self._parse_tilemap,
            Section.DECORATOR: self._parse_node_property,
            Section.SPRITE: self._parse_node_property,
        }

    def scan(self, content: str) -> None:
        for raw in content.splitlines():
            line = raw.strip()
            if not line or line.startswith("#") or line.startswith(";"):
                continue
            if line.startswith("["):
                self._enter(classify_header(line), line)
                continue
            handler = self._handlers.get(self.section)
            if handler is not None:
                handler(line)
        self._finish_node()

    def _enter(self, section: Section, header: str) -> None:
        self._finish_node()
        self.section = section

        if section == Section.EXT_RESOURCE:
            self.tables.add_ext_resource(header)
        elif section == Section.SUB_RESOURCE:
            self.sub_id = self.tables.begin_sub_resource(header)
        elif section == Section.DECORATOR:
            self.current = DecoratorNode(
                name=extract_attr(RE_NAME, header) or "",
                parent=normalize_parent(extract_attr(RE_PARENT, header) or ""),
            )
        elif section == Section.SPRITE:
            self.current = SpriteNode(
                name=extract_attr(RE_NAME, header) or "",
                parent=normalize_parent(extract_attr(RE_PARENT, header) or ""),
                path=self.tables.ext_path(extract_attr(RE_INSTANCE, header)),
            )

    def _finish_node(self) -> None:
        if self.current is None:
            return
        if isinstance(self.current, SpriteNode):
            self.sprites.append(self.current)
        else:
            self.decorators.append(self.current)
        self.current = None

    def _parse_sub_resource(self, line: str) -> None:
        self.tables.parse_sub_resource_line(line, self.sub_id)

    def _parse_tilemap(self, line: str) -> None:
        # layer_* lines are handled by the dedicated layer pass
        if line.startswith("format ="):
            self.format = extract_int_value(line)

    def _parse_node_property(self, line: str) -> None:
        node = self.current
        if node is None:
            return

        if line.startswith("texture = ExtResource("):
            texture = self.tables.ext_path_from_line(line)
            if isinstance(node, SpriteNode):
                node.texture = texture
            else:
                node.path = texture
            return

        prop = parse_transform_line(line)
        if prop is not None:
            setattr(node, prop[0], prop[1])
            return

        if line.startswith("gid = "):
            node.properties["gid"] = PropValue.of_int(extract_int_value(line))
        elif line.startswith("zoom = Vector2("):
            node.properties["zoom"] = PropValue.of_vector2(parse_vector2(line) or WorldPoint())
        else:
            kv = split_property(line)
            if kv is not None:
                node.properties[kv[0]] = PropValue.of_str(kv[1])


class TscnConverter:
    """Converts one TSCN document per call into a MapData tree."""

    def __init__(self, config: Optional[ConvertConfig] = None, resolver: Optional[PrefabResolver] = None):
        self.config = config or ConvertConfig()
        self.prefabs = resolver or PrefabResolver(self.config.prefab_dir)

    def convert(self, path: Union[str, Path], errors: ErrorCollector) -> Optional[MapData]:
        try:
            content = Path(path).read_text(encoding="utf-8")
        except FileNotFoundError:
            errors.add_error(f"Input file not found: {path}")
            return None
        except PermissionError:
            errors.add_error(f"Permission denied reading file: {path}")
            return None
        except UnicodeDecodeError as e:
            errors.add_error(f"File encoding error in {path}: {e}")
            return None
        except OSError as e:
            errors.add_error(f"Error reading file {path}: {e}")
            return None
        return self.convert_content(content, errors, source=str(path))

    def convert_content(self, content: str, errors: ErrorCollector, source: str = "<string>") -> MapData:
        tables = ResourceTables(self.config.tile_size)
        scanner = SceneScanner(tables)
        scanner.scan(content)

        bounds = TileBounds()
        layers = extract_layers(content, self.config.tile_offset(), bounds)

        data = MapData(
            tilemap=TileMapData(
                format=scanner.format,
                tile_size=tables.tile_size,
                sources=tables.sorted_sources(),
                layers=layers,
            ),
            decorators=scanner.decorators,
            sprites=scanner.sprites,
            prefabs_by_path=self._resolve_prefabs(scanner.sprites),
            world_size=bounds.world_size(),
        )

        bounds_error = bounds.validate()
        if bounds_error:
            data.bounds_error = bounds_error
            if self.config.validate_bounds:
                errors.add_error(f"{source}: {bounds_error}")
            else:
                errors.add_warning(f"{source}: {bounds_error}")
                logger.warning(f"{source}: {bounds_error}")

        logger.info(
            f"Converted {source}: {len(data.tilemap.sources)} source(s), {len(layers)} layer(s), "
            f"{len(data.decorators)} decorator(s), {len(data.sprites)} sprite(s), "
            f"{len(data.prefabs_by_path)} prefab(s)"
        )
        return data

    def _resolve_prefabs(self, sprites: List[SpriteNode]) -> Dict[str, PrefabNode]:
        if not sprites:
            return {}
        if self.prefabs.prefab_dir is None:
            logger.warning(f"No prefab directory configured; {len(sprites)} instance(s) left unenriched")
            return {}

        resolved: Dict[str, PrefabNode] = {}
        for sprite in sprites:
            if sprite.path in resolved or sprite.path == "unknown":
                continue
            prefab = self.prefabs.get(sprite.path)
            if prefab is not None:
                resolved[sprite.path] = prefab
        return resolved


def convert_tscn(path: Union[str, Path], config: Optional[ConvertConfig] = None) -> Tuple[Optional[MapData], ErrorCollector]:
    errors = ErrorCollector()
    data = TscnConverter(config).convert(path, errors)
    return data, errors
