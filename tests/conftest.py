"""Shared TSCN fixtures for the converter tests."""

from pathlib import Path

import pytest

LEVEL_TSCN = """\
[gd_scene load_steps=6 format=3 uid="uid://c3level1"]

[ext_resource type="Texture2D" uid="uid://b1tiles" path="res://art/tiles.png" id="1_tiles"]
[ext_resource type="PackedScene" uid="uid://d2tree" path="res://scenes/tree.tscn" id="2_tree"]
[ext_resource type="Texture2D" path="res://art/rock.png" id="3_rock"]

[sub_resource type="TileSetAtlasSource" id="TileSetAtlasSource_a"]
texture = ExtResource("1_tiles")
0:0/0 = 0
0:0/0/physics_layer_0/polygon_0/points = PackedVector2Array(-8, -8, 8, -8, 8, 8, -8, 8)

[sub_resource type="TileSet" id="TileSet_b"]
physics_layer_0/collision_layer = 1
sources/0 = SubResource("TileSetAtlasSource_a")

[node name="Level" type="Node2D"]

[node name="TileMap" type="TileMap" parent="."]
tile_set = SubResource("TileSet_b")
format = 2
layer_0/name = "ground"
layer_0/z_index = -1
layer_0/tile_data = PackedInt32Array(0, 0, 0, 1, 0, 65536, 65536, 0, 1, 65537, 0, 65537)

[node name="Rock" type="Sprite2D" parent="."]
position = Vector2(32, 48)
texture = ExtResource("3_rock")
z_index = 2

[node name="Tree1" parent="Props" instance=ExtResource("2_tree")]
position = Vector2(100, 200)
scale = Vector2(2, 2)
rotation = 0.5
zoom = Vector2(1.5, 1.5)
custom = "hello"

[node name="Tree2" parent="." instance=ExtResource("2_tree")]
position = Vector2(-40, 0)
gid = 7
"""

TREE_TSCN = """\
[gd_scene load_steps=3 format=3]

[ext_resource type="Texture2D" path="res://art/tree.png" id="1_tex"]

[sub_resource type="RectangleShape2D" id="RectangleShape2D_x"]
size = Vector2(10, 20)

[node name="Tree" type="StaticBody2D"]

[node name="Sprite2D" type="Sprite2D" parent="."]
position = Vector2(0, -16)
scale = Vector2(1.5, 1.5)
rotation = 0.25
z_index = 3
texture = ExtResource("1_tex")

[node name="CollisionShape2D" type="CollisionShape2D" parent="."]
position = Vector2(4, -10)
shape = SubResource("RectangleShape2D_x")
"""

MINIMAL_TSCN = """\
[gd_scene format=3]

[ext_resource type="Texture2D" path="res://tiles.png" id="1"]

[sub_resource type="TileSetAtlasSource" id="atlas_1"]
texture = ExtResource("1")

[sub_resource type="TileSet" id="tileset_1"]
sources/0 = SubResource("atlas_1")

[node name="TileMap" type="TileMap"]
format = 2
layer_0/tile_data = PackedInt32Array(65536, 0, 0)
"""


@pytest.fixture
def level_text() -> str:
    return LEVEL_TSCN


@pytest.fixture
def prefab_dir(tmp_path: Path) -> Path:
    """A prefab root holding tree.tscn, as res://scenes/tree.tscn resolves to."""
    root = tmp_path / "prefabs"
    root.mkdir()
    (root / "tree.tscn").write_text(TREE_TSCN, encoding="utf-8")
    return root


@pytest.fixture
def level_file(tmp_path: Path) -> Path:
    path = tmp_path / "level1.tscn"
    path.write_text(LEVEL_TSCN, encoding="utf-8")
    return path


@pytest.fixture
def minimal_file(tmp_path: Path) -> Path:
    path = tmp_path / "minimal.tscn"
    path.write_text(MINIMAL_TSCN, encoding="utf-8")
    return path
