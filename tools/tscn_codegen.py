#!/usr/bin/env python3
"""
tscn_codegen.py - Emit a converted map as a Go source snippet.

The generated file embeds the final JSON text plus typed tables for the
tile layers and scene nodes, so a Go game can load the map without
reading files at runtime.
"""

from __future__ import annotations

import json
import math
import re
from typing import List

from tscn_model import Layer, MapData, PropKind, PropValue, SceneNode, WorldPoint
from tscn_output import enrich_sprites


def make_go_identifier(name: str) -> str:
    parts = [p for p in re.split(r"[^a-zA-Z0-9]+", name) if p]
    ident = "".join(p[:1].upper() + p[1:] for p in parts)
    if not ident or ident[0].isdigit():
        ident = f"Map{ident}"
    return ident


def _go_float(v: float) -> str:
    if not math.isfinite(v):
        return "0"
    return repr(float(v))


def _go_string(s: str) -> str:
    return json.dumps(s, ensure_ascii=False)


def _go_vec2(ident: str, p: WorldPoint) -> str:
    return f"{ident}Vec2{{X: {_go_float(p.x)}, Y: {_go_float(p.y)}}}"


def go_prop_value(ident: str, value: PropValue) -> str:
    if value.kind == PropKind.INT:
        return str(int(value.value))
    if value.kind == PropKind.FLOAT:
        return _go_float(value.value)
    if value.kind == PropKind.VECTOR2:
        return _go_vec2(ident, value.value)
    return _go_string(str(value.value))


def _go_raw_string(text: str) -> str:
    # Raw strings cannot hold a backtick; splice those in as quoted strings.
    return "`" + text.replace("`", "` + \"`\" + `") + "`"


def _go_int_slice(values: List[int], per_line: int = 15) -> str:
    if not values:
        return "[]int{}"
    lines = ["[]int{"]
    for i in range(0, len(values), per_line):
        chunk = ", ".join(str(v) for v in values[i : i + per_line])
        lines.append(f"\t\t\t{chunk},")
    lines.append("\t\t}")
    return "\n".join(lines)


def _go_layer(layer: Layer) -> str:
    return (
        "\t{\n"
        f"\t\tID: {layer.id}, Name: {_go_string(layer.name)}, ZIndex: {layer.z_index},\n"
        f"\t\tTileData: {_go_int_slice(layer.tile_data)},\n"
        "\t},\n"
    )


def _go_node(ident: str, node: SceneNode) -> str:
    props = ", ".join(
        f"{_go_string(k)}: {go_prop_value(ident, node.properties[k])}" for k in sorted(node.properties)
    )
    params = ", ".join(_go_float(v) for v in node.collider_params)
    return (
        "\t{\n"
        f"\t\tName: {_go_string(node.name)}, Path: {_go_string(node.path)},\n"
        f"\t\tPosition: {_go_vec2(ident, node.position)}, Scale: {_go_vec2(ident, node.scale)},\n"
        f"\t\tRotation: {_go_float(node.rotation)}, ZIndex: {node.z_index},\n"
        f"\t\tPivot: {_go_vec2(ident, node.pivot)},\n"
        f"\t\tColliderType: {_go_string(node.collider_type)}, "
        f"ColliderPivot: {_go_vec2(ident, node.collider_pivot.inverted_y())}, "
        f"ColliderParams: []float64{{{params}}},\n"
        f"\t\tProperties: map[string]any{{{props}}},\n"
        "\t},\n"
    )


def generate_go(data: MapData, json_text: str, name: str, package: str = "tilemaps") -> str:
    ident = make_go_identifier(name)
    out: List[str] = []
    out.append("// Code generated by tscnc.py; DO NOT EDIT.\n\n")
    out.append(f"package {package}\n\n")

    out.append(f"type {ident}Vec2 struct {{\n\tX, Y float64\n}}\n\n")
    out.append(
        f"type {ident}Layer struct {{\n"
        "\tID       int\n"
        "\tName     string\n"
        "\tZIndex   int\n"
        "\tTileData []int // groups of 5: source, x, y, atlasX, atlasY\n"
        "}\n\n"
    )
    out.append(
        f"type {ident}Node struct {{\n"
        "\tName           string\n"
        "\tPath           string\n"
        f"\tPosition       {ident}Vec2\n"
        f"\tScale          {ident}Vec2\n"
        "\tRotation       float64\n"
        "\tZIndex         int\n"
        f"\tPivot          {ident}Vec2\n"
        "\tColliderType   string\n"
        f"\tColliderPivot  {ident}Vec2\n"
        "\tColliderParams []float64\n"
        "\tProperties     map[string]any\n"
        "}\n\n"
    )

    out.append(f"var {ident}Layers = []{ident}Layer{{\n")
    for layer in data.tilemap.layers:
        out.append(_go_layer(layer))
    out.append("}\n\n")

    out.append(f"var {ident}Decorators = []{ident}Node{{\n")
    for node in data.decorators:
        out.append(_go_node(ident, node))
    out.append("}\n\n")

    out.append(f"var {ident}Sprites = []{ident}Node{{\n")
    for node in enrich_sprites(data):
        out.append(_go_node(ident, node))
    out.append("}\n\n")

    out.append(f"const {ident}JSON = {_go_raw_string(json_text)}\n")
    return "".join(out)
