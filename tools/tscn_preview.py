#!/usr/bin/env python3
"""
tscn_preview.py - Render decoded tile layers into a PNG for eyeballing.

One pixel per tile (before scaling), colored by tileset source id.
Later layers draw over earlier ones.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np
from PIL import Image

from tscn_model import Layer

logger = logging.getLogger(__name__)

MAX_GRID_SIDE = 4096  # tiles
MAX_IMAGE_SIDE = 8192  # pixels, after scaling

BACKGROUND = (24, 24, 32)
SOURCE_COLORS = [
    (230, 25, 75),
    (60, 180, 75),
    (255, 225, 25),
    (0, 130, 200),
    (245, 130, 48),
    (145, 30, 180),
    (70, 240, 240),
    (240, 50, 230),
    (210, 245, 60),
    (250, 190, 212),
    (0, 128, 128),
    (170, 110, 40),
]
# index 0 is the background
PAL = np.array([BACKGROUND] + SOURCE_COLORS, dtype=np.uint8)


class PreviewTooLargeError(ValueError):
    """Tile bounds exceed what a preview grid may allocate."""


def _placements(layer: Layer) -> np.ndarray:
    count = len(layer.tile_data) // 5
    return np.asarray(layer.tile_data[: count * 5], dtype=np.int64).reshape(count, 5)


def layers_to_index_grid(layers: List[Layer], max_side: int = MAX_GRID_SIDE) -> np.ndarray:
    groups = [g for g in (_placements(layer) for layer in layers) if len(g)]
    if not groups:
        return np.zeros((1, 1), dtype=np.uint8)

    all_tiles = np.concatenate(groups)
    xs = all_tiles[:, 1]
    ys = -all_tiles[:, 2]  # back to source convention: rows grow downwards
    min_x, min_y = int(xs.min()), int(ys.min())
    w = int(xs.max()) - min_x + 1
    h = int(ys.max()) - min_y + 1
    if w > max_side or h > max_side:
        raise PreviewTooLargeError(
            f"tile bounds {w}x{h} exceed the {max_side}x{max_side} preview limit "
            f"(x {min_x}..{min_x + w - 1}, y {min_y}..{min_y + h - 1})"
        )

    grid = np.zeros((h, w), dtype=np.uint8)
    for g in groups:
        colors = (g[:, 0] % len(SOURCE_COLORS)) + 1
        grid[-g[:, 2] - min_y, g[:, 1] - min_x] = colors
    return grid


def render_preview(layers: List[Layer], scale: int = 8) -> Optional[Image.Image]:
    """Preview image, or None (with a warning) when the map is too spread out."""
    try:
        grid = layers_to_index_grid(layers)
    except PreviewTooLargeError as e:
        logger.warning(f"Skipping preview: {e}")
        return None

    h, w = grid.shape
    # keep the scaled image within MAX_IMAGE_SIDE pixels per side
    scale = max(1, min(scale, MAX_IMAGE_SIDE // max(w, h)))
    img = Image.fromarray(PAL[grid])
    if scale != 1:
        img = img.resize((w * scale, h * scale), resample=Image.NEAREST)
    return img
