"""Tests for the section scanner and TscnConverter."""

from pathlib import Path

from tscn_errors import ErrorCollector
from tscn_model import ConvertConfig, PropKind, TileSize, WorldPoint
from tscn_parser import Section, TscnConverter, classify_header, convert_tscn, normalize_parent
from tscn_resources import ResourceTables


def convert(text: str, config: ConvertConfig = None):
    errors = ErrorCollector()
    data = TscnConverter(config).convert_content(text, errors)
    return data, errors


class TestHeaders:
    """Header classification."""

    def test_classify(self) -> None:
        assert classify_header('[ext_resource type="Texture2D" id="1"]') == Section.EXT_RESOURCE
        assert classify_header('[sub_resource type="TileSet" id="a"]') == Section.SUB_RESOURCE
        assert classify_header('[node name="TileMap" type="TileMap" parent="."]') == Section.TILEMAP
        assert classify_header('[node name="Ground" type="TileMap" parent="."]') == Section.TILEMAP
        assert classify_header('[node name="Rock" type="Sprite2D" parent="."]') == Section.DECORATOR
        assert classify_header('[node name="T" parent="." instance=ExtResource("2")]') == Section.SPRITE
        assert classify_header('[node name="Level" type="Node2D"]') == Section.OTHER
        assert classify_header("[gd_scene format=3]") == Section.OTHER

    def test_normalize_parent(self) -> None:
        assert normalize_parent(".") == ""
        assert normalize_parent("./Props") == "Props"
        assert normalize_parent("Props/Trees") == "Props/Trees"


class TestResourceTables:
    """External resources and tileset sources."""

    def test_duplicate_ext_resource_last_wins(self) -> None:
        """Two declarations with the same id leave one entry."""
        text = "\n".join(
            [
                '[ext_resource type="Texture2D" path="res://old.png" id="1"]',
                '[ext_resource type="Texture2D" path="res://new.png" id="1"]',
            ]
        )
        tables = ResourceTables(TileSize())
        for line in text.splitlines():
            tables.add_ext_resource(line)
        assert len(tables.ext_resources) == 1
        assert tables.ext_path("1") == "res://new.png"

    def test_sources_sorted_by_id(self) -> None:
        text = "\n".join(
            [
                '[sub_resource type="TileSet" id="ts"]',
                'sources/3 = SubResource("none")',
                'sources/0 = SubResource("none")',
                'sources/1 = SubResource("none")',
            ]
        )
        data, _ = convert(text)
        assert [s.id for s in data.tilemap.sources] == [0, 1, 3]

    def test_unresolved_texture_is_unknown(self) -> None:
        text = '[sub_resource type="TileSet" id="ts"]\nsources/0 = SubResource("missing")\n'
        data, _ = convert(text)
        assert data.tilemap.sources[0].texture_path == "unknown"

    def test_same_source_id_last_wins(self) -> None:
        text = "\n".join(
            [
                '[ext_resource type="Texture2D" path="res://a.png" id="a"]',
                '[ext_resource type="Texture2D" path="res://b.png" id="b"]',
                '[sub_resource type="TileSetAtlasSource" id="sa"]',
                'texture = ExtResource("a")',
                '[sub_resource type="TileSetAtlasSource" id="sb"]',
                'texture = ExtResource("b")',
                '[sub_resource type="TileSet" id="ts"]',
                'sources/0 = SubResource("sa")',
                'sources/0 = SubResource("sb")',
            ]
        )
        data, _ = convert(text)
        assert len(data.tilemap.sources) == 1
        assert data.tilemap.sources[0].texture_path == "res://b.png"

    def test_physics_points_set_tile_size(self, level_text) -> None:
        """A 4-point collision box overrides the working tile size."""
        config = ConvertConfig(tile_size=TileSize(32, 32))
        data, _ = convert(level_text, config)
        assert data.tilemap.tile_size == TileSize(16, 16)
        tile = data.tilemap.sources[0].tiles[0]
        assert len(tile.physics.collision_points) == 4
        assert tile.physics.collision_points[0] == WorldPoint(-8.0, -8.0)

    def test_shape_sub_resources(self) -> None:
        text = "\n".join(
            [
                '[sub_resource type="CircleShape2D" id="c"]',
                "radius = 6.5",
                '[sub_resource type="CapsuleShape2D" id="cap"]',
                "radius = 3.0",
                "height = 12.0",
                '[sub_resource type="ConvexPolygonShape2D" id="p"]',
                "points = PackedVector2Array(0, 0, 4, 0, 4, 4)",
            ]
        )
        tables = ResourceTables(TileSize())
        sub_id = ""
        for line in text.splitlines():
            if line.startswith("["):
                sub_id = tables.begin_sub_resource(line)
            else:
                tables.parse_sub_resource_line(line, sub_id)
        assert tables.shape("c").params() == [6.5]
        assert tables.shape("cap").params() == [3.0, 12.0]
        assert tables.shape("p").params() == [0.0, 0.0, 4.0, 0.0, 4.0, 4.0]
        assert tables.shape("missing") is None


class TestNodes:
    """Decorator and instance nodes."""

    def test_decorator(self, level_text) -> None:
        data, _ = convert(level_text)
        assert len(data.decorators) == 1
        rock = data.decorators[0]
        assert rock.name == "Rock"
        assert rock.parent == ""
        assert rock.path == "res://art/rock.png"
        assert rock.position == WorldPoint(32.0, -48.0)
        assert rock.z_index == 2

    def test_instances_in_scan_order(self, level_text) -> None:
        data, _ = convert(level_text)
        assert [s.name for s in data.sprites] == ["Tree1", "Tree2"]
        tree1, tree2 = data.sprites
        assert tree1.path == "res://scenes/tree.tscn"
        assert tree1.parent == "Props"
        assert tree1.position == WorldPoint(100.0, -200.0)
        assert tree1.scale == WorldPoint(2.0, 2.0)
        assert tree1.rotation == 0.5
        assert tree2.parent == ""

    def test_property_bag_variants(self, level_text) -> None:
        """zoom is a vector, gid an int, anything else a raw string."""
        data, _ = convert(level_text)
        tree1, tree2 = data.sprites
        assert tree1.properties["zoom"].kind == PropKind.VECTOR2
        assert tree1.properties["zoom"].value == WorldPoint(1.5, 1.5)
        assert tree1.properties["custom"].kind == PropKind.STRING
        assert tree1.properties["custom"].value == '"hello"'
        assert tree2.properties["gid"].kind == PropKind.INT
        assert tree2.properties["gid"].value == 7

    def test_unknown_instance_path(self) -> None:
        data, _ = convert('[node name="X" parent="." instance=ExtResource("nope")]\n')
        assert data.sprites[0].path == "unknown"

    def test_comments_and_garbage_skipped(self) -> None:
        """Comment lines and unmatched lines never raise."""
        text = "\n".join(
            [
                "; comment",
                "# another",
                '[node name="Rock" type="Sprite2D" parent="."]',
                "position = Vector2(oops)",
                "!!!",
                "",
            ]
        )
        data, errors = convert(text)
        assert not errors.has_errors()
        assert data.decorators[0].position == WorldPoint(0.0, 0.0)
        assert data.decorators[0].properties == {}


class TestConverter:
    """File-level conversion and validation."""

    def test_minimal_end_to_end(self, minimal_file: Path) -> None:
        """One source, one layer, tile (0, 1) emitted with Y negated."""
        data, errors = convert_tscn(minimal_file)
        assert data is not None
        assert data.tilemap.format == 2
        assert len(data.tilemap.sources) == 1
        assert data.tilemap.sources[0].id == 0
        assert data.tilemap.sources[0].texture_path == "res://tiles.png"
        assert len(data.tilemap.layers) == 1
        assert data.tilemap.layers[0].name == "layer_0"
        assert data.tilemap.layers[0].tile_data == [0, 0, -1, 0, 0]
        # a single tile is a 1x1 world: odd, reported alongside the result
        assert errors.has_errors()
        assert data.bounds_error

    def test_even_level_has_no_errors(self, level_file: Path) -> None:
        data, errors = convert_tscn(level_file)
        assert not errors.has_errors()
        assert data.world_size == TileSize(2, 2)
        assert data.tilemap.layers[0].tile_data == [
            0, 0, 0, 0, 0,
            0, 1, 0, 0, 1,
            0, 0, -1, 1, 0,
            0, 1, -1, 1, 1,
        ]

    def test_odd_bounds_downgraded(self, minimal_file: Path) -> None:
        data, errors = convert_tscn(minimal_file, ConvertConfig(validate_bounds=False))
        assert not errors.has_errors()
        assert data.bounds_error
        assert len(errors.warnings) == 1
        assert "Tilemap bounds must be even" in errors.warnings[0]

    def test_pixel_offset(self, level_file: Path) -> None:
        """Pixel offsets are truncated to whole tiles."""
        data, _ = convert_tscn(level_file, ConvertConfig(offset_x=33, offset_y=-17))
        assert data.tilemap.layers[0].tile_data[:5] == [0, 2, 1, 0, 0]

    def test_missing_file(self, tmp_path: Path) -> None:
        data, errors = convert_tscn(tmp_path / "nope.tscn")
        assert data is None
        assert errors.has_errors()
        assert "not found" in errors.errors[0]

    def test_no_prefab_dir_is_soft(self, level_file: Path) -> None:
        data, errors = convert_tscn(level_file)
        assert not errors.has_errors()
        assert data.prefabs_by_path == {}
        assert len(data.sprites) == 2
