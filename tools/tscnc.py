#!/usr/bin/env python3
"""
tscnc.py - Godot .tscn scene -> tilemap JSON compiler.

Usage:
  tscnc.py -i level1.tscn
  tscnc.py -i level1.tscn -o build/level1.json --prefab-dir scenes --shape decorators
  tscnc.py -i level1.tscn --replacements replacements.json --generate-go --preview level1.png

Writes:
  - <input>_tilemap.json (or -o)
  - optional Go source embedding the JSON (--generate-go)
  - optional PNG preview of the tile layers (--preview)
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from tscn_codegen import generate_go
from tscn_errors import ConfigError, ErrorCollector
from tscn_logging import setup_logging
from tscn_model import ConvertConfig, OutputShape, TileSize, load_config
from tscn_output import to_json
from tscn_parser import TscnConverter
from tscn_preview import render_preview
from tscn_replace import apply_replacements, load_replacement_rules


def default_output_path(input_path: str, suffix: str) -> str:
    p = Path(input_path)
    return str(p.with_name(f"{p.stem}_tilemap{suffix}"))


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Convert a Godot .tscn scene into tilemap JSON")
    ap.add_argument("-i", "--input", required=True, help="Input scene file (.tscn)")
    ap.add_argument(
        "-o",
        "--output",
        default="",
        help="Output JSON (default: <input>_tilemap.json)",
    )

    ap.add_argument("--replacements", default="", help="JSON file with literal output replacements")
    ap.add_argument("--old", default="", help="Extra literal to replace in the output")
    ap.add_argument("--new", default="", help="Replacement for --old")

    ap.add_argument("--prefab-dir", default="", help="Directory holding instanced prefab scenes")
    ap.add_argument("--tile-size", type=int, default=None, help="Tile width and height in pixels")
    ap.add_argument("--tile-width", type=int, default=None, help="Tile width in pixels")
    ap.add_argument("--tile-height", type=int, default=None, help="Tile height in pixels")
    ap.add_argument("--offset-x", type=int, default=None, help="Horizontal pixel offset")
    ap.add_argument("--offset-y", type=int, default=None, help="Vertical pixel offset")
    ap.add_argument(
        "--shape",
        choices=[s.value for s in OutputShape],
        default=None,
        help="Output layout (default: sprites)",
    )
    ap.add_argument("--config", default="", help="JSON config file; flags override its values")
    ap.add_argument(
        "--allow-odd-bounds",
        action="store_true",
        help="Warn instead of failing when the tile bounds are odd",
    )

    ap.add_argument(
        "--generate-go",
        nargs="?",
        const="",
        default=None,
        metavar="PATH",
        help="Also write Go source (default: <input>_tilemap.go)",
    )
    ap.add_argument("--go-package", default="tilemaps", help="Package name for generated Go")
    ap.add_argument("--preview", default="", help="Also write a PNG preview of the tile layers")

    ap.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-vv for debug)")
    ap.add_argument("--no-color", action="store_true", help="Disable colored log output")
    return ap


def config_from_args(args: argparse.Namespace) -> ConvertConfig:
    """ConvertConfig from --config (if any) with command-line flags on top."""
    cfg = load_config(args.config) if args.config else ConvertConfig()

    width, height = cfg.tile_size.width, cfg.tile_size.height
    if args.tile_size is not None:
        width = height = args.tile_size
    if args.tile_width is not None:
        width = args.tile_width
    if args.tile_height is not None:
        height = args.tile_height
    if width <= 0 or height <= 0:
        raise ConfigError(f"Tile size must be positive: {width}x{height}")

    overrides = {"tile_size": TileSize(width, height)}
    if args.offset_x is not None:
        overrides["offset_x"] = args.offset_x
    if args.offset_y is not None:
        overrides["offset_y"] = args.offset_y
    if args.prefab_dir:
        overrides["prefab_dir"] = Path(args.prefab_dir)
    if args.shape:
        overrides["shape"] = OutputShape(args.shape)
    if args.allow_odd_bounds:
        overrides["validate_bounds"] = False
    return replace(cfg, **overrides)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    if args.verbose >= 2:
        level = logging.DEBUG
    elif args.verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    setup_logging(level, use_colors=not args.no_color and sys.stderr.isatty())

    try:
        config = config_from_args(args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    errors = ErrorCollector()
    data = TscnConverter(config).convert(args.input, errors)
    if data is None:
        errors.report_and_exit("Parsing failed completely: ")
    errors.report_and_exit()

    output_text = to_json(data, config.shape)
    rules = load_replacement_rules(args.replacements) if args.replacements else []
    if args.old:
        rules.append((args.old, args.new))
    output_text = apply_replacements(output_text, rules)

    if not args.output:
        args.output = default_output_path(args.input, ".json")

    # JSON
    try:
        out_path = Path(args.output)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(output_text, encoding="utf-8")
        if errors.has_warnings():
            print(f"Wrote {args.output} ({len(errors.warnings)} warning(s))")
        else:
            print(f"Wrote {args.output}")
    except OSError as e:
        print(f"Error writing JSON file {args.output}: {e}", file=sys.stderr)
        sys.exit(1)

    # Go source
    if args.generate_go is not None:
        go_path = args.generate_go or default_output_path(args.input, ".go")
        try:
            go_src = generate_go(data, output_text, Path(args.input).stem, args.go_package)
            Path(go_path).parent.mkdir(parents=True, exist_ok=True)
            Path(go_path).write_text(go_src, encoding="utf-8")
            print(f"Wrote {go_path}")
        except OSError as e:
            print(f"Error writing Go source {go_path}: {e}", file=sys.stderr)
            sys.exit(1)

    # preview
    if args.preview:
        try:
            img = render_preview(data.tilemap.layers)
            if img is not None:
                Path(args.preview).parent.mkdir(parents=True, exist_ok=True)
                img.save(args.preview)
                print(f"Wrote {args.preview} ({img.width}x{img.height})")
        except OSError as e:
            print(f"Error writing preview {args.preview}: {e}", file=sys.stderr)
            sys.exit(1)

    return 0


if __name__ == "__main__":
    sys.exit(main())
