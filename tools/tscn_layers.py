#!/usr/bin/env python3
"""
tscn_layers.py - Extract TileMap layers from raw TSCN text.

This pass runs independently of the section scanner. It looks for

  layer_<N>/name = "..."
  layer_<N>/z_index = <int>
  layer_<N>/tile_data = PackedInt32Array(pos, source, atlas, ...)

and re-packs each (pos, source, atlas) triple as five integers:

  [source_id, tile_x, -tile_y, atlas_x, atlas_y]
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np

from tscn_codec import (
    decode_atlas_coords,
    decode_tile_positions,
    extract_int_value,
    parse_packed_ints,
    unquote,
)
from tscn_model import Layer, Point, TileSize

logger = logging.getLogger(__name__)

RE_LAYER_KEY = re.compile(r"^layer_(\d+)/(\w+)\s*=")


@dataclass
class TileBounds:
    """Bounding box of every decoded tile coordinate in one parse."""

    min_x: Optional[int] = None
    max_x: Optional[int] = None
    min_y: Optional[int] = None
    max_y: Optional[int] = None

    def observe(self, xs: np.ndarray, ys: np.ndarray) -> None:
        if xs.size == 0:
            return
        lo_x, hi_x = int(xs.min()), int(xs.max())
        lo_y, hi_y = int(ys.min()), int(ys.max())
        self.min_x = lo_x if self.min_x is None else min(self.min_x, lo_x)
        self.max_x = hi_x if self.max_x is None else max(self.max_x, hi_x)
        self.min_y = lo_y if self.min_y is None else min(self.min_y, lo_y)
        self.max_y = hi_y if self.max_y is None else max(self.max_y, hi_y)

    @property
    def empty(self) -> bool:
        return self.min_x is None

    def world_size(self) -> Optional[TileSize]:
        if self.empty:
            return None
        return TileSize(self.max_x - self.min_x + 1, self.max_y - self.min_y + 1)

    def validate(self) -> Optional[str]:
        """Error message when the world size is odd in either dimension."""
        size = self.world_size()
        if size is None:
            return None
        if size.width % 2 != 0 or size.height % 2 != 0:
            return (
                f"Tilemap bounds must be even: {size.width}x{size.height} tiles "
                f"(x {self.min_x}..{self.max_x}, y {self.min_y}..{self.max_y})"
            )
        return None


def convert_tile_data(data: List[int], offset: Point, bounds: TileBounds) -> List[int]:
    """Decode (pos, source, atlas) triples; a trailing partial triple is dropped."""
    count = len(data) // 3
    if count == 0:
        return []
    triples = np.asarray(data[: count * 3], dtype=np.int64).reshape(count, 3)

    tile_x, tile_y = decode_tile_positions(triples[:, 0])
    tile_x = tile_x + offset.x
    tile_y = tile_y + offset.y
    atlas_x, atlas_y = decode_atlas_coords(triples[:, 2])
    bounds.observe(tile_x, tile_y)

    out = np.stack([triples[:, 1], tile_x, -tile_y, atlas_x, atlas_y], axis=1)
    return [int(v) for v in out.reshape(-1)]


def extract_layers(content: str, offset: Point, bounds: TileBounds) -> List[Layer]:
    """One Layer per tile_data line, in document order.

    Name and z_index lines may appear anywhere in the document. They are
    matched to a layer by id once the whole text has been read.
    """
    names: Dict[int, str] = {}
    z_indices: Dict[int, int] = {}
    tile_layers: List[Tuple[int, List[int]]] = []

    for raw in content.splitlines():
        line = raw.strip()
        m = RE_LAYER_KEY.match(line)
        if not m:
            continue
        layer_id = int(m.group(1))
        key = m.group(2)

        if key == "name":
            names[layer_id] = unquote(line.split("=", 1)[1])
        elif key == "z_index":
            z_indices[layer_id] = extract_int_value(line)
        elif key == "tile_data":
            tile_layers.append((layer_id, convert_tile_data(parse_packed_ints(line), offset, bounds)))

    layers = [
        Layer(
            id=layer_id,
            name=names.get(layer_id, f"layer_{layer_id}"),
            z_index=z_indices.get(layer_id, 0),
            tile_data=tile_data,
        )
        for layer_id, tile_data in tile_layers
    ]
    logger.debug(f"Extracted {len(layers)} tile layer(s)")
    return layers
