"""Declarative tables mapping map-config fields onto renderer props.

A table maps a source key to one of three rules:

- `Rename(key)` copies the value to the target key,
- `Transform(fn)` calls `fn(value)` and merges the returned mapping,
- `Nested(table)` applies `table` to the nested object (or list, by index).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Union

from .accessors import AGGREGATION, normalize_accessor
from .colors import hex_to_rgba
from .errors import UnsupportedLayerTypeError
from .models import Dataset


@dataclass(frozen=True, slots=True)
class Rename:
    key: str


@dataclass(frozen=True, slots=True)
class Transform:
    fn: Callable[[Any], Mapping[str, Any]]


@dataclass(frozen=True, slots=True)
class Nested:
    table: PropMap


PropRule = Union[Rename, Transform, Nested]
PropMap = Mapping[Union[str, int], PropRule]


def _color_range(value: Mapping[str, Any]) -> dict[str, Any]:
    return {"colorRange": [hex_to_rgba(color) for color in value.get("colors") or []]}


def _color_aggregation(value: str) -> dict[str, Any]:
    return {"colorAggregation": AGGREGATION.get(value, AGGREGATION["sum"])}


SHARED_PROP_MAP: PropMap = {
    "color": Rename("getFillColor"),
    "isVisible": Rename("visible"),
    "label": Rename("cartoLabel"),
    "textLabel": Nested(
        {
            0: Nested(
                {
                    "alignment": Rename("getTextAlignmentBaseline"),
                    "anchor": Rename("getTextAnchor"),
                    "color": Rename("getTextColor"),
                    "size": Rename("getTextSize"),
                }
            )
        }
    ),
    "visConfig": Nested(
        {
            "enable3d": Rename("extruded"),
            "elevationScale": Rename("elevationScale"),
            "filled": Rename("filled"),
            "strokeColor": Rename("getLineColor"),
            "stroked": Rename("stroked"),
            "thickness": Rename("getLineWidth"),
            "radius": Rename("getPointRadius"),
            "wireframe": Rename("wireframe"),
        }
    ),
}

CUSTOM_MARKERS_PROP_MAP: PropMap = {
    "color": Rename("getIconColor"),
    "visConfig": Nested({"radius": Rename("getIconSize")}),
}

AGGREGATION_VIS_CONFIG: PropMap = {
    "colorAggregation": Transform(_color_aggregation),
    "colorRange": Transform(_color_range),
    "coverage": Rename("coverage"),
    "elevationPercentile": Nested(
        {0: Rename("elevationLowerPercentile"), 1: Rename("elevationUpperPercentile")}
    ),
    "percentile": Nested({0: Rename("lowerPercentile"), 1: Rename("upperPercentile")}),
}

DEFAULT_PROPS: Mapping[str, Any] = {
    "lineMiterLimit": 2,
    "lineWidthUnits": "pixels",
    "pointRadiusUnits": "pixels",
    "rounded": True,
    "wrapLongitude": False,
}


@dataclass(frozen=True, slots=True)
class _LayerTypeDef:
    prop_map: PropMap
    default_props: Callable[[Mapping[str, Any], Dataset], Mapping[str, Any]]


def _no_defaults(config: Mapping[str, Any], dataset: Dataset) -> Mapping[str, Any]:
    return {}


def _column_getter(prop: str, column_key: str, fallback: str) -> Callable[..., Mapping[str, Any]]:
    def _defaults(config: Mapping[str, Any], dataset: Dataset) -> Mapping[str, Any]:
        column = (config.get("columns") or {}).get(column_key) or fallback
        return {prop: normalize_accessor(lambda properties: properties.get(column), dataset.data)}

    return _defaults


def _depth_parameters(altitude: Any) -> dict[str, Any]:
    return {"parameters": {"depthWriteEnabled": bool(altitude)}}


_VECTOR_DEF = _LayerTypeDef(prop_map={}, default_props=_no_defaults)

LAYER_TYPE_DEFS: Mapping[str, _LayerTypeDef] = {
    "point": _LayerTypeDef(
        prop_map={
            "columns": Nested({"altitude": Transform(_depth_parameters)}),
            "visConfig": Nested({"outline": Rename("stroked")}),
        },
        default_props=_no_defaults,
    ),
    "tileset": _VECTOR_DEF,
    "mvt": _VECTOR_DEF,
    "grid": _LayerTypeDef(
        prop_map={
            "visConfig": Nested(
                {
                    **AGGREGATION_VIS_CONFIG,
                    "worldUnitSize": Transform(lambda x: {"cellSize": 1000 * x}),
                }
            )
        },
        default_props=_no_defaults,
    ),
    "hexagon": _LayerTypeDef(
        prop_map={
            "visConfig": Nested(
                {
                    **AGGREGATION_VIS_CONFIG,
                    "worldUnitSize": Transform(lambda x: {"radius": 1000 * x}),
                }
            )
        },
        default_props=_no_defaults,
    ),
    "hexagonId": _LayerTypeDef(
        prop_map={"visConfig": Nested({"coverage": Rename("coverage")})},
        default_props=_column_getter("getHexagon", "hex_id", "h3"),
    ),
    "quadbin": _LayerTypeDef(
        prop_map={"visConfig": Nested({"coverage": Rename("coverage")})},
        default_props=_column_getter("getQuadbin", "quadbin", "quadbin"),
    ),
    "heatmapTile": _LayerTypeDef(
        prop_map={
            "visConfig": Nested(
                {"colorRange": Transform(_color_range), "radius": Rename("radiusPixels")}
            )
        },
        default_props=_no_defaults,
    ),
    "clusterTile": _VECTOR_DEF,
}

SUPPORTED_LAYER_TYPES = frozenset(LAYER_TYPE_DEFS)


def merge_prop_maps(base: PropMap, extra: PropMap) -> dict[Any, PropRule]:
    """Merge two tables, combining `Nested` rules present in both."""
    merged: dict[Any, PropRule] = dict(base)
    for key, rule in extra.items():
        current = merged.get(key)
        if isinstance(current, Nested) and isinstance(rule, Nested):
            merged[key] = Nested(merge_prop_maps(current.table, rule.table))
        else:
            merged[key] = rule
    return merged


def get_layer_props(
    layer_type: str, config: Mapping[str, Any], dataset: Dataset
) -> tuple[PropMap, dict[str, Any]]:
    """Return the prop table and default props for one layer."""
    layer_def = LAYER_TYPE_DEFS.get(layer_type)
    if layer_def is None:
        raise UnsupportedLayerTypeError(layer_type)

    base: PropMap = SHARED_PROP_MAP
    if (config.get("visConfig") or {}).get("customMarkers"):
        base = merge_prop_maps(SHARED_PROP_MAP, CUSTOM_MARKERS_PROP_MAP)

    prop_map = merge_prop_maps(base, layer_def.prop_map)
    default_props = {**DEFAULT_PROPS, **layer_def.default_props(config, dataset)}
    return prop_map, default_props
