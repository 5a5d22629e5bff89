#!/usr/bin/env python3
"""
tscn_codec.py - Field extraction and packed-value decoding for TSCN lines.

Every helper here is best-effort: a line that does not match yields None,
an empty list or 0, never an exception.

Tile positions are two signed 16-bit fields packed into one 32-bit int:
  encoded = ((y & 0xFFFF) << 16) | (x & 0xFFFF)
Atlas coordinates use the same layout but are never sign-corrected.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

import numpy as np

from tscn_model import WorldPoint

RE_TYPE = re.compile(r'type="([^"]+)"')
RE_PATH = re.compile(r'path="([^"]+)"')
RE_UID = re.compile(r'uid="([^"]+)"')
RE_ID = re.compile(r'\sid="([^"]+)"')
RE_NAME = re.compile(r'name="([^"]+)"')
RE_PARENT = re.compile(r'parent="([^"]+)"')
RE_EXT_REF = re.compile(r'ExtResource\(\s*"([^"]+)"\s*\)')
RE_SUB_REF = re.compile(r'SubResource\(\s*"([^"]+)"\s*\)')
RE_INSTANCE = re.compile(r'instance=ExtResource\(\s*"([^"]+)"\s*\)')
RE_VECTOR2 = re.compile(r'Vector2i?\(([^,]+),\s*([^)]+)\)')
RE_PACKED_VECTOR2 = re.compile(r'PackedVector2Array\(([^)]*)\)')
PACKED_INT_PREFIXES = ("PackedInt32Array(", "PackedInt64Array(", "PackedIntArray(")


# ----------------------------
# Field extraction
# ----------------------------


def extract_attr(pattern: re.Pattern, line: str) -> Optional[str]:
    m = pattern.search(line)
    return m.group(1) if m else None


def extract_resource_id(line: str) -> Optional[str]:
    """Return the last ` id="..."` on the line.

    Header lines may carry uid-like fragments before the real id, so the
    last match wins.
    """
    matches = RE_ID.findall(line)
    return matches[-1] if matches else None


def split_property(line: str) -> Optional[Tuple[str, str]]:
    if " = " not in line:
        return None
    key, value = line.split(" = ", 1)
    key = key.strip()
    if not key:
        return None
    return key, value.strip()


def extract_int_value(line: str) -> int:
    parts = line.split("=", 1)
    if len(parts) < 2:
        return 0
    try:
        return int(parts[1].strip())
    except ValueError:
        return 0


def extract_float_value(line: str) -> float:
    parts = line.split("=", 1)
    if len(parts) < 2:
        return 0.0
    try:
        return float(parts[1].strip())
    except ValueError:
        return 0.0


def unquote(s: str) -> str:
    s = s.strip()
    if len(s) >= 2 and s[0] == '"' and s[-1] == '"':
        return s[1:-1]
    return s


# ----------------------------
# Literals
# ----------------------------


def parse_vector2(line: str) -> Optional[WorldPoint]:
    m = RE_VECTOR2.search(line)
    if not m:
        return None
    try:
        return WorldPoint(float(m.group(1).strip()), float(m.group(2).strip()))
    except ValueError:
        return None


def parse_packed_vector2(line: str) -> List[WorldPoint]:
    m = RE_PACKED_VECTOR2.search(line)
    if not m:
        return []
    parts = [p.strip() for p in m.group(1).split(",")]
    points: List[WorldPoint] = []
    for i in range(0, len(parts) - 1, 2):
        try:
            points.append(WorldPoint(float(parts[i]), float(parts[i + 1])))
        except ValueError:
            continue
    return points


def parse_transform_line(line: str) -> Optional[Tuple[str, object]]:
    """Recognise node transform properties.

    Returns (key, value) for position/scale/rotation/z_index, None otherwise.
    Positions come back in world convention (Y negated).
    """
    if line.startswith("position = Vector2"):
        pos = parse_vector2(line) or WorldPoint()
        return "position", pos.inverted_y()
    if line.startswith("scale = Vector2"):
        return "scale", parse_vector2(line) or WorldPoint(1.0, 1.0)
    if line.startswith("rotation = "):
        return "rotation", extract_float_value(line)
    if line.startswith("z_index = "):
        return "z_index", extract_int_value(line)
    return None


def flatten_points(points: Sequence[WorldPoint]) -> List[float]:
    out: List[float] = []
    for p in points:
        out.extend((p.x, p.y))
    return out


def parse_packed_ints(line: str) -> List[int]:
    """Integers inside the first Packed*IntArray(...) literal on the line."""
    start = -1
    for prefix in PACKED_INT_PREFIXES:
        idx = line.find(prefix)
        if idx >= 0:
            start = idx + len(prefix)
            break
    if start < 0:
        return []
    end = line.rfind(")")
    if end < start:
        return []
    data: List[int] = []
    for part in line[start:end].split(","):
        part = part.strip()
        if not part:
            continue
        try:
            data.append(int(part))
        except ValueError:
            continue
    return data


# ----------------------------
# Tile codec
# ----------------------------


def encode_tile_position(x: int, y: int) -> int:
    """Pack a tile coordinate the way Godot stores it (signed int32)."""
    encoded = ((y & 0xFFFF) << 16) | (x & 0xFFFF)
    if encoded >= 0x80000000:
        encoded -= 0x100000000
    return encoded


def encode_atlas_coords(x: int, y: int) -> int:
    return ((y & 0xFFFF) << 16) | (x & 0xFFFF)


def sign_extend_16(values: np.ndarray) -> np.ndarray:
    return np.where(values >= 0x8000, values - 0x10000, values)


def decode_tile_positions(encoded: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    encoded = np.asarray(encoded, dtype=np.int64)
    x = sign_extend_16(encoded & 0xFFFF)
    y = sign_extend_16((encoded >> 16) & 0xFFFF)
    return x, y


def decode_atlas_coords(encoded: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    encoded = np.asarray(encoded, dtype=np.int64)
    return encoded & 0xFFFF, (encoded >> 16) & 0xFFFF


def decode_tile_position(encoded: int) -> Tuple[int, int]:
    x, y = decode_tile_positions(np.array([encoded], dtype=np.int64))
    return int(x[0]), int(y[0])
