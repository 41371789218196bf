"""Tests for prop tables and style props compilation."""

from __future__ import annotations

import copy

import pytest

from mapcompiler.errors import LayerCompileError, UnsupportedLayerTypeError
from mapcompiler.layer_map import Nested, Rename, Transform, get_layer_props, merge_prop_maps
from mapcompiler.models import Dataset
from mapcompiler.style import HIGHLIGHT_COLOR_3D, create_style_props, map_props


@pytest.fixture
def dataset(table_rows):
    return Dataset(id="cells", provider_id="bigquery", type="query", data=table_rows)


def test_map_props_rules() -> None:
    table = {
        "a": Rename("renamed"),
        "b": Transform(lambda v: {"doubled": v * 2}),
        "items": Nested({0: Rename("first"), 5: Rename("sixth")}),
        "nested": Nested({"inner": Rename("inner_out")}),
        "absent": Rename("never"),
    }
    target: dict = {}

    map_props({"a": 1, "b": 4, "items": ["x", "y"], "nested": {"inner": True}, "absent": None}, target, table)

    assert target == {"renamed": 1, "doubled": 8, "first": "x", "inner_out": True}


def test_map_props_rejects_unknown_rule() -> None:
    with pytest.raises(TypeError):
        map_props({"a": 1}, {}, {"a": "not-a-rule"})


def test_merge_prop_maps_combines_nested_tables() -> None:
    merged = merge_prop_maps(
        {"visConfig": Nested({"a": Rename("x")}), "color": Rename("getFillColor")},
        {"visConfig": Nested({"b": Rename("y")}), "color": Rename("getIconColor")},
    )
    assert set(merged["visConfig"].table) == {"a", "b"}
    assert merged["color"] == Rename("getIconColor")


def test_unsupported_type(dataset) -> None:
    with pytest.raises(UnsupportedLayerTypeError) as excinfo:
        get_layer_props("trips", {}, dataset)
    assert excinfo.value.layer_type == "trips"
    assert isinstance(excinfo.value, LayerCompileError)


def test_shared_style_props(dataset) -> None:
    config = {
        "color": [10, 20, 30],
        "isVisible": False,
        "label": "Cities",
        "textLabel": [{"color": [5, 6, 7], "size": 12, "anchor": "start", "alignment": "bottom"}],
        "visConfig": {
            "opacity": 0.5,
            "strokeColor": [1, 1, 1],
            "strokeOpacity": 1,
            "stroked": True,
            "filled": True,
            "thickness": 2,
            "radius": 8,
            "enable3d": True,
            "elevationScale": 5,
            "wireframe": False,
        },
    }
    prop_map, _ = get_layer_props("tileset", config, dataset)

    props = create_style_props(config, prop_map)

    assert props["getFillColor"] == [10, 20, 30, 128]
    assert props["getLineColor"] == [1, 1, 1, 255]
    assert props["getTextColor"] == [5, 6, 7, 128]
    assert props["getTextSize"] == 12
    assert props["getTextAnchor"] == "start"
    assert props["getTextAlignmentBaseline"] == "bottom"
    assert props["visible"] is False
    assert props["cartoLabel"] == "Cities"
    assert props["getLineWidth"] == 2
    assert props["getPointRadius"] == 8
    assert props["extruded"] is True
    assert props["elevationScale"] == 5
    assert props["wireframe"] is False
    assert props["highlightColor"] == HIGHLIGHT_COLOR_3D


def test_style_props_do_not_mutate_config(dataset) -> None:
    config = {"color": [10, 20, 30], "visConfig": {"opacity": 0.1, "stroked": True}}
    snapshot = copy.deepcopy(config)
    prop_map, _ = get_layer_props("point", config, dataset)

    props = create_style_props(config, prop_map)

    assert config == snapshot
    assert props["getFillColor"] is not config["color"]
    assert props["getLineColor"] == [10, 20, 30, 255]


def test_point_outline_and_altitude(dataset) -> None:
    config = {"columns": {"altitude": "alt"}, "visConfig": {"outline": True}}
    prop_map, defaults = get_layer_props("point", config, dataset)

    props = create_style_props(config, prop_map)

    assert props["stroked"] is True
    assert props["parameters"] == {"depthWriteEnabled": True}
    assert defaults["lineWidthUnits"] == "pixels"


def test_grid_and_hexagon_aggregation_props(dataset) -> None:
    config = {
        "visConfig": {
            "worldUnitSize": 0.5,
            "colorAggregation": "average",
            "colorRange": {"colors": ["#ff0000", "#00ff00"]},
            "coverage": 0.9,
            "percentile": [5, 95],
            "elevationPercentile": [10, 90],
        }
    }
    grid_map, _ = get_layer_props("grid", config, dataset)
    hexagon_map, _ = get_layer_props("hexagon", config, dataset)

    grid = create_style_props(config, grid_map)
    hexagon = create_style_props(config, hexagon_map)

    assert grid["cellSize"] == pytest.approx(500)
    assert hexagon["radius"] == pytest.approx(500)
    assert grid["colorAggregation"] == "MEAN"
    assert grid["colorRange"] == [[255, 0, 0, 255], [0, 255, 0, 255]]
    assert grid["coverage"] == 0.9
    assert (grid["lowerPercentile"], grid["upperPercentile"]) == (5, 95)
    assert (grid["elevationLowerPercentile"], grid["elevationUpperPercentile"]) == (10, 90)


def test_unknown_color_aggregation_falls_back_to_sum(dataset) -> None:
    config = {"visConfig": {"colorAggregation": "median"}}
    prop_map, _ = get_layer_props("grid", config, dataset)
    assert create_style_props(config, prop_map)["colorAggregation"] == "SUM"


def test_heatmap_props(dataset) -> None:
    config = {"visConfig": {"radius": 30, "colorRange": {"colors": ["#000000"]}}}
    prop_map, _ = get_layer_props("heatmapTile", config, dataset)

    props = create_style_props(config, prop_map)

    assert props["radiusPixels"] == 30
    assert props["colorRange"] == [[0, 0, 0, 255]]


def test_hexagon_id_and_quadbin_getters(dataset, table_rows) -> None:
    _, hex_defaults = get_layer_props("hexagonId", {"columns": {"hex_id": "h3"}}, dataset)
    _, quadbin_defaults = get_layer_props("quadbin", {}, dataset)

    assert hex_defaults["getHexagon"](table_rows[0]) == "8a2a1072b59ffff"
    assert quadbin_defaults["getQuadbin"]({"quadbin": "5265"}) == "5265"


def test_custom_marker_props(dataset) -> None:
    config = {"color": [1, 2, 3], "visConfig": {"customMarkers": True, "radius": 12}}
    prop_map, _ = get_layer_props("point", config, dataset)

    props = create_style_props(config, prop_map)

    assert props["getIconColor"] == [1, 2, 3]
    assert props["getIconSize"] == 12
    assert "getFillColor" not in props
