"""Tests for prefab resolution, the reduced prefab scanner and its cache."""

from pathlib import Path

from tscn_errors import ErrorCollector
from tscn_model import ConvertConfig, WorldPoint
from tscn_parser import TscnConverter
from tscn_prefab import PrefabResolver, parse_prefab_document

POLYGON_PREFAB = """\
[gd_scene format=3]

[node name="Crate" type="StaticBody2D"]

[node name="Body" type="Node2D" parent="."]

[node name="Sprite2D" type="Sprite2D" parent="Body"]
position = Vector2(2, 2)

[node name="CollisionPolygon2D" type="CollisionPolygon2D" parent="Body"]
position = Vector2(1, 3)
polygon = PackedVector2Array(0, 0, 8, 0, 8, 8)

[node name="Second" type="CollisionShape2D" parent="."]
position = Vector2(50, 50)
"""


class TestPrefabDocument:
    """Geometry recovered from one prefab document."""

    def test_sprite_and_collider(self, prefab_dir: Path) -> None:
        text = (prefab_dir / "tree.tscn").read_text(encoding="utf-8")
        prefab = parse_prefab_document(text, "res://scenes/tree.tscn")
        assert prefab.name == "Tree"
        assert prefab.path == "res://scenes/tree.tscn"
        assert prefab.texture == "res://art/tree.png"
        assert prefab.pivot == WorldPoint(0.0, 16.0)
        assert prefab.scale == WorldPoint(1.5, 1.5)
        assert prefab.rotation == 0.25
        assert prefab.z_index == 3
        assert prefab.collider_type == "Rectangle"
        assert prefab.collider_params == [10.0, 20.0]

    def test_root_collider_relative_to_sprite(self, prefab_dir: Path) -> None:
        """A collider parented to the scene root is made relative to the sprite pivot."""
        text = (prefab_dir / "tree.tscn").read_text(encoding="utf-8")
        prefab = parse_prefab_document(text, "res://scenes/tree.tscn")
        # world (4, 10) minus sprite pivot (0, 16)
        assert prefab.collider_pivot == WorldPoint(4.0, -6.0)

    def test_polygon_collider_first_only(self) -> None:
        """CollisionPolygon2D becomes a convex polygon; later colliders are ignored."""
        prefab = parse_prefab_document(POLYGON_PREFAB, "res://crate.tscn")
        assert prefab.name == "Crate"
        assert prefab.collider_type == "ConvexPolygon"
        assert prefab.collider_params == [0.0, 0.0, 8.0, 0.0, 8.0, 8.0]
        # parent is not the scene root: pivot is kept as read
        assert prefab.collider_pivot == WorldPoint(1.0, -3.0)

    def test_no_collider(self) -> None:
        prefab = parse_prefab_document('[node name="Empty" type="Node2D"]\n', "res://e.tscn")
        assert prefab.name == "Empty"
        assert prefab.collider_type == ""
        assert prefab.collider_params == []


class TestPrefabResolver:
    """Path resolution and caching."""

    def test_resolve_strips_scheme_and_scenes(self, tmp_path: Path) -> None:
        resolver = PrefabResolver(tmp_path)
        assert resolver.resolve_path("res://scenes/props/tree.tscn") == tmp_path / "props" / "tree.tscn"
        assert resolver.resolve_path("res://tree.tscn") == tmp_path / "tree.tscn"

    def test_no_dir_is_soft_failure(self) -> None:
        resolver = PrefabResolver(None)
        assert resolver.resolve_path("res://scenes/tree.tscn") is None
        assert resolver.get("res://scenes/tree.tscn") is None
        assert resolver.parse_count == 0

    def test_missing_file_is_soft_failure(self, tmp_path: Path) -> None:
        resolver = PrefabResolver(tmp_path)
        assert resolver.get("res://scenes/missing.tscn") is None
        # failures are cached too
        assert "res://scenes/missing.tscn" in resolver.cache

    def test_parsed_once(self, prefab_dir: Path) -> None:
        resolver = PrefabResolver(prefab_dir)
        first = resolver.get("res://scenes/tree.tscn")
        second = resolver.get("res://scenes/tree.tscn")
        assert first is second
        assert resolver.parse_count == 1

    def test_converter_parses_shared_prefab_once(self, level_text: str, prefab_dir: Path) -> None:
        """Two instances of the same prefab trigger one sub-document parse."""
        resolver = PrefabResolver(prefab_dir)
        converter = TscnConverter(ConvertConfig(prefab_dir=prefab_dir), resolver)
        data = converter.convert_content(level_text, ErrorCollector())
        assert len(data.sprites) == 2
        assert resolver.parse_count == 1
        assert list(data.prefabs_by_path) == ["res://scenes/tree.tscn"]
