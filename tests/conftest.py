"""Shared fixtures building small map documents and datasets."""

from __future__ import annotations

from typing import Any, Callable

import pytest


@pytest.fixture
def point_features() -> dict[str, Any]:
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [-3.7, 40.4]},
                "properties": {
                    "name": "Madrid",
                    "value": 10,
                    "category": "a",
                    "rotation": 30,
                    "alt": 650,
                },
            },
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [2.35, 48.85]},
                "properties": {
                    "name": "Paris",
                    "value": 20,
                    "category": "b",
                    "rotation": 90,
                    "alt": 35,
                },
            },
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [13.4, 52.5]},
                "properties": {
                    "name": "Berlin",
                    "value": 30,
                    "category": "a",
                    "rotation": 0,
                    "alt": 34,
                },
            },
        ],
    }


@pytest.fixture
def table_rows() -> list[dict[str, Any]]:
    return [
        {"h3": "8a2a1072b59ffff", "value": 1, "category": "x"},
        {"h3": "8a2a1072b5bffff", "value": 3, "category": "y"},
        {"h3": "8a2a1072b5dffff", "value": 8, "category": "x"},
    ]


@pytest.fixture
def make_layer() -> Callable[..., dict[str, Any]]:
    def _make(
        layer_id: str,
        layer_type: str = "point",
        *,
        data_id: str = "cities",
        vis_config: dict[str, Any] | None = None,
        visual_channels: dict[str, Any] | None = None,
        **config: Any,
    ) -> dict[str, Any]:
        return {
            "id": layer_id,
            "type": layer_type,
            "config": {"dataId": data_id, "visConfig": vis_config or {}, **config},
            "visualChannels": visual_channels or {},
        }

    return _make


@pytest.fixture
def make_document(point_features: dict[str, Any]) -> Callable[..., dict[str, Any]]:
    def _make(
        layers: list[dict[str, Any]],
        *,
        datasets: list[dict[str, Any]] | None = None,
        layer_blending: str | None = None,
        interaction_config: dict[str, Any] | None = None,
        filters: Any = None,
        token: str = "secret-token",
        version: str = "v1",
    ) -> dict[str, Any]:
        if datasets is None:
            datasets = [{"id": "cities", "providerId": "bigquery", "type": "query", "data": point_features}]
        vis_state: dict[str, Any] = {"layers": layers}
        if layer_blending is not None:
            vis_state["layerBlending"] = layer_blending
        if interaction_config is not None:
            vis_state["interactionConfig"] = interaction_config
        config: dict[str, Any] = {
            "visState": vis_state,
            "mapState": {"latitude": 45.0, "longitude": 5.0, "zoom": 4},
            "mapStyle": {"styleType": "positron"},
        }
        if filters is not None:
            config["filters"] = filters
        return {
            "id": "map-1",
            "title": "European capitals",
            "description": "Test map",
            "createdAt": "2024-01-01T00:00:00Z",
            "updatedAt": "2024-01-02T00:00:00Z",
            "token": token,
            "keplerMapConfig": {"version": version, "config": config},
            "datasets": datasets,
        }

    return _make
