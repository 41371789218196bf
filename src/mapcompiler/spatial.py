"""Viewport spatial filters and client-side feature selection for GeoJSON data."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Mapping, Sequence

_LOGGER = logging.getLogger("mapcompiler.spatial")

# A viewport wider than this in both axes already shows the whole world.
_GLOBAL_HALF_WIDTH = 179.5
_GLOBAL_HALF_HEIGHT = 85.05


@lru_cache(maxsize=1)
def _require_shapely_shape() -> Any:
    try:
        from shapely.geometry import shape
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for spatial filtering of GeoJSON features") from exc
    return shape


@lru_cache(maxsize=1)
def _require_shapely_prepare() -> Any:
    try:
        from shapely.prepared import prep
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for spatial filtering of GeoJSON features") from exc
    return prep


def _is_global_viewport(viewport: Sequence[float]) -> bool:
    west, south, east, north = viewport
    return east - west > 2 * _GLOBAL_HALF_WIDTH and north - south > 2 * _GLOBAL_HALF_HEIGHT


def create_viewport_spatial_filter(viewport: Sequence[float]) -> dict[str, Any] | None:
    """Polygon for a `[west, south, east, north]` viewport.

    Returns None for a viewport covering the whole world, meaning no spatial
    filtering at all.
    """
    if len(viewport) != 4:
        raise ValueError(f"Expected [west, south, east, north] viewport, got {list(viewport)!r}")
    if _is_global_viewport(viewport):
        return None
    west, south, east, north = (float(v) for v in viewport)
    return {
        "type": "Polygon",
        "coordinates": [
            [[west, south], [east, south], [east, north], [west, north], [west, south]]
        ],
    }


def geojson_features(
    geojson: Mapping[str, Any],
    spatial_filter: Mapping[str, Any] | None,
    unique_id_property: str | None = None,
) -> list[dict[str, Any]]:
    """Properties of the features intersecting `spatial_filter`.

    With `unique_id_property`, repeated features keep only their first
    occurrence. Without a spatial filter nothing is selected.
    """
    if not spatial_filter:
        return []
    shape = _require_shapely_shape()
    area = _require_shapely_prepare()(shape(spatial_filter))

    seen: set[Any] = set()
    selected: list[dict[str, Any]] = []
    for idx, feature in enumerate(geojson.get("features") or []):
        geometry = feature.get("geometry")
        if not geometry:
            continue
        properties = dict(feature.get("properties") or {})
        if unique_id_property and unique_id_property in properties:
            unique_id = properties[unique_id_property]
        else:
            unique_id = ("feature", idx)
        if unique_id in seen:
            continue
        if not area.intersects(shape(geometry)):
            continue
        seen.add(unique_id)
        selected.append(properties)

    _LOGGER.debug("Selected %d features inside spatial filter", len(selected))
    return selected
