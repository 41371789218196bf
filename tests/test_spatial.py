"""Tests for viewport spatial filters and GeoJSON feature selection."""

from __future__ import annotations

import pytest

from mapcompiler.spatial import create_viewport_spatial_filter, geojson_features

SPATIAL_FILTER = create_viewport_spatial_filter([-10, -10, 10, 10])


def _collection(geometries, properties):
    return {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "geometry": geometry, "properties": props}
            for geometry, props in zip(geometries, properties)
        ],
    }


def _distinct(geometry_for):
    return _collection(
        [geometry_for(i) for i in range(3)],
        [{"cartodb_id": i + 1, "other_prop": i} for i in range(3)],
    )


def _repeated(geometry):
    return _collection([geometry] * 4, [{"cartodb_id": 1, "other_prop": 1}] * 4)


EXPECTED_DISTINCT = [
    {"cartodb_id": 1, "other_prop": 0},
    {"cartodb_id": 2, "other_prop": 1},
    {"cartodb_id": 3, "other_prop": 2},
]


def test_viewport_filter_polygon() -> None:
    assert SPATIAL_FILTER == {
        "type": "Polygon",
        "coordinates": [[[-10.0, -10.0], [10.0, -10.0], [10.0, 10.0], [-10.0, 10.0], [-10.0, -10.0]]],
    }


def test_global_viewport_has_no_filter() -> None:
    assert create_viewport_spatial_filter([-180, -90, 180, 90]) is None


def test_viewport_needs_four_values() -> None:
    with pytest.raises(ValueError):
        create_viewport_spatial_filter([0, 0, 1])


def test_empty_collection() -> None:
    assert geojson_features({"type": "FeatureCollection", "features": []}, SPATIAL_FILTER) == []


def test_no_spatial_filter_selects_nothing() -> None:
    geojson = _distinct(lambda i: {"type": "Point", "coordinates": [0, 0]})
    assert geojson_features(geojson, None, "cartodb_id") == []


@pytest.mark.parametrize(
    "geometry_for",
    [
        lambda i: {"type": "Point", "coordinates": [0, 0]},
        lambda i: {
            "type": "MultiLineString",
            "coordinates": [[[i, i], [i + 1, i + 1]], [[i + 2, i + 2], [i + 3, i + 3]]],
        },
        lambda i: {
            "type": "Polygon",
            "coordinates": [[[i, i], [i + 1, i], [i + 1, i + 1], [i, i + 1], [i, i]]],
        },
        lambda i: {
            "type": "MultiPolygon",
            "coordinates": [
                [[[i, i], [i + 1, i], [i + 1, i + 1], [i, i + 1], [i, i]]],
                [[[i + 1, i + 1], [i + 2, i + 1], [i + 2, i + 2], [i + 1, i + 2], [i + 1, i + 1]]],
            ],
        },
    ],
    ids=["points", "multilinestrings", "polygons", "multipolygons"],
)
def test_distinct_features_are_returned(geometry_for) -> None:
    properties = geojson_features(_distinct(geometry_for), SPATIAL_FILTER, "cartodb_id")
    assert properties == EXPECTED_DISTINCT


@pytest.mark.parametrize(
    "geometry",
    [
        {"type": "Point", "coordinates": [0, 0]},
        {"type": "LineString", "coordinates": [[0, 0], [0, 1], [1, 2]]},
        {"type": "MultiLineString", "coordinates": [[[0, 0], [1, 1]], [[2, 2], [3, 3]]]},
        {"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 2], [0, 0]]]},
        {
            "type": "MultiPolygon",
            "coordinates": [
                [[[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]],
                [[[1, 1], [2, 1], [2, 2], [1, 2], [1, 1]]],
            ],
        },
    ],
    ids=["points", "linestrings", "multilinestrings", "polygons", "multipolygons"],
)
def test_repeated_features_are_returned_once(geometry) -> None:
    assert geojson_features(_repeated(geometry), SPATIAL_FILTER, "cartodb_id") == [
        {"cartodb_id": 1, "other_prop": 1}
    ]


def test_features_outside_viewport_are_skipped() -> None:
    geojson = _collection(
        [{"type": "Point", "coordinates": [0, 0]}, {"type": "Point", "coordinates": [50, 50]}, None],
        [{"id": "in"}, {"id": "out"}, {"id": "no-geometry"}],
    )
    assert geojson_features(geojson, SPATIAL_FILTER, "id") == [{"id": "in"}]


def test_without_id_property_every_feature_counts() -> None:
    geojson = _repeated({"type": "Point", "coordinates": [1, 1]})
    assert len(geojson_features(geojson, SPATIAL_FILTER)) == 4
