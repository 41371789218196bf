"""Accessor factories turning visual channel config into per-row functions.

Every accessor built here takes `(row, info=None)`. For GeoJSON and tiled
data the row is a feature, and the accessor reads its `properties`; for
tabular data the row is the property mapping itself.
"""

from __future__ import annotations

import math
import statistics
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Sequence

from .colors import UNKNOWN_COLOR, to_rgba
from .scales import IdentityScale, Scale, create_scale

Accessor = Callable[..., Any]

# Aggregations the renderer can compute itself from a per-row weight.
AGGREGATION = {
    "average": "MEAN",
    "maximum": "MAX",
    "minimum": "MIN",
    "sum": "SUM",
}

OPACITY_MAP = {
    "getFillColor": "opacity",
    "getLineColor": "strokeOpacity",
    "getTextColor": "opacity",
}

TEXT_LABEL_INDEX = 0
TEXT_OUTLINE_OPACITY = 64
DEFAULT_POINT_RADIUS = 10
DEFAULT_COLOR_SCALE = "quantize"
DEFAULT_AGGREGATION_EXP_ALIAS = "__aggregationValue"
AGGREGATED_LAYER_TYPES = frozenset({"clusterTile", "hexagonId", "quadbin", "heatmapTile"})

FALLBACK_ICON = (
    "data:image/svg+xml;charset=utf-8,"
    "%3Csvg xmlns='http://www.w3.org/2000/svg' width='100' height='100' viewBox='0 0 100 100'%3E"
    "%3Ccircle cx='50' cy='50' r='50'/%3E%3C/svg%3E"
)

_COMPACT_UNITS = ((1e12, "T"), (1e9, "B"), (1e6, "M"), (1e3, "K"))


def _numbers(values: Iterable[Any]) -> list[float]:
    out: list[float] = []
    for value in values:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        if math.isnan(value):
            continue
        out.append(value)
    return out


def _mode(values: Sequence[Any]) -> Any:
    if not values:
        return None
    return Counter(values).most_common(1)[0][0]


def _safe_stat(fn: Callable[[list[float]], float], minimum: int = 1) -> Callable[[Sequence[Any]], Any]:
    def _apply(values: Sequence[Any]) -> Any:
        numbers = _numbers(values)
        if len(numbers) < minimum:
            return None
        return fn(numbers)

    return _apply


AGGREGATION_FUNC: dict[str, Callable[[Sequence[Any]], Any]] = {
    "count": len,
    "average": _safe_stat(statistics.fmean),
    "maximum": _safe_stat(max),
    "minimum": _safe_stat(min),
    "sum": lambda values: sum(_numbers(values)),
    "median": _safe_stat(statistics.median),
    "stdev": _safe_stat(statistics.pstdev),
    "variance": _safe_stat(statistics.pvariance),
    "mode": _mode,
    "countUnique": lambda values: len({v for v in values if v is not None}),
}


def opacity_to_alpha(opacity: float | None) -> int:
    """Convert a layer opacity to an alpha byte.

    Values above 1 are percentages (0-100), anything else a fraction. The
    result rounds half up, so an opacity of 50 gives 128. Missing opacity
    means fully opaque.
    """
    if opacity is None:
        return 255
    fraction = float(opacity)
    if fraction > 1:
        fraction /= 100.0
    return max(0, min(255, math.floor(255 * fraction + 0.5)))


def row_properties(row: Any) -> Any:
    if isinstance(row, Mapping):
        if isinstance(row.get("properties"), Mapping):
            return row["properties"]
        source = row.get("__source")
        if isinstance(source, Mapping):
            return source.get("object", {}).get("properties", {})
    return row


def _is_feature_data(data: Any) -> bool:
    return isinstance(data, Mapping) and ("features" in data or "tilestats" in data or "tiles" in data)


def normalize_accessor(accessor: Callable[[Any], Any], data: Any) -> Accessor:
    if _is_feature_data(data):

        def _feature_accessor(row: Any, info: Any = None) -> Any:
            return accessor(row_properties(row))

        return _feature_accessor

    def _row_accessor(row: Any, info: Any = None) -> Any:
        return accessor(row)

    return _row_accessor


def _sort_key(value: Any) -> tuple[int, Any]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value)
    return (1, str(value))


def _column_values(data: Any, name: str) -> list[Any]:
    if isinstance(data, Mapping) and isinstance(data.get("features"), list):
        return [row_properties(feature).get(name) for feature in data["features"]]
    if isinstance(data, Sequence) and not isinstance(data, str):
        return [row.get(name) for row in data if isinstance(row, Mapping)]
    return []


def _tilestats_attribute(data: Mapping[str, Any], name: str) -> Mapping[str, Any] | None:
    layers = (data.get("tilestats") or {}).get("layers") or []
    if not layers:
        return None
    for attribute in layers[0].get("attributes") or []:
        if attribute.get("attribute") == name:
            return attribute
    return None


def calculate_domain(data: Any, name: str, scale_type: str) -> list[Any]:
    """Derive a scale domain for column `name` from the loaded data."""
    if isinstance(data, Mapping) and "tilestats" in data:
        attribute = _tilestats_attribute(data, name)
        if attribute is None:
            return []
        if scale_type in ("ordinal", "point") and attribute.get("categories"):
            return [item.get("category") for item in attribute["categories"]]
        return [attribute.get("min"), attribute.get("max")]

    values = _column_values(data, name)
    if scale_type in ("ordinal", "point"):
        counts = Counter(v for v in values if v is not None)
        return sorted(counts, key=lambda v: (-counts[v], _sort_key(v)))

    numbers = _numbers(values)
    if scale_type == "quantile":
        return sorted(numbers)
    if not numbers:
        return []
    low, high = min(numbers), max(numbers)
    if scale_type == "log" and low == 0:
        low = 1e-5
    return [low, high]


def _accessor_keys(name: str, aggregation: str | None) -> list[str]:
    keys = [name]
    if aggregation:
        keys.extend(f"{name}_{suffix}" for suffix in (aggregation, aggregation.upper()))
    return keys


def _property_reader(name: str, aggregation: str | None) -> Callable[[Mapping[str, Any]], Any]:
    """Read `name`, or its aggregated variant, locking onto the first key found."""
    keys = _accessor_keys(name, aggregation)
    resolved: list[str] = []

    def _read(properties: Mapping[str, Any]) -> Any:
        if resolved:
            return properties.get(resolved[0])
        for key in keys:
            if key in properties:
                resolved.append(key)
                return properties[key]
        raise KeyError(f"Could not find property for any accessor key: {', '.join(keys)}")

    return _read


def _calculate_layer_scale(
    name: str,
    scale_type: str,
    color_range: Mapping[str, Any] | None,
    data: Any,
) -> Scale:
    scale = create_scale(scale_type)
    if scale_type != "identity":
        color_range = color_range or {}
        color_map = color_range.get("colorMap")
        if isinstance(color_map, list) and color_map:
            domain = [entry[0] for entry in color_map]
            colors = [entry[1] for entry in color_map]
        else:
            domain = calculate_domain(data, name, scale_type)
            colors = list(color_range.get("colors") or [])
        if scale_type == "ordinal":
            domain = domain[: len(colors)]
        scale.set_domain(domain).set_range(colors)
    return scale.set_unknown(UNKNOWN_COLOR)


def get_color_accessor(
    field: Mapping[str, Any],
    scale_type: str | None,
    *,
    aggregation: str | None = None,
    color_range: Mapping[str, Any] | None = None,
    opacity: float | None = None,
    data: Any = None,
) -> Accessor:
    name = field["name"]
    scale = _calculate_layer_scale(
        field.get("colorColumn") or name, scale_type or DEFAULT_COLOR_SCALE, color_range, data
    )
    alpha = opacity_to_alpha(opacity)
    read = _property_reader(name, aggregation)

    def _color(properties: Mapping[str, Any]) -> list[int]:
        value = read(properties)
        r, g, b, _ = to_rgba(scale(value))
        return [r, g, b, 0 if value is None else alpha]

    return normalize_accessor(_color, data)


def get_color_value_accessor(field: Mapping[str, Any], aggregation: str | None, data: Any) -> Accessor:
    """Accessor reducing the rows of one aggregation bin to a color value."""
    name = field["name"]
    aggregator = AGGREGATION_FUNC.get(aggregation or "count")
    if aggregator is None:
        raise ValueError(f"Unsupported color aggregation: {aggregation!r}")

    def _value(points: Iterable[Any], info: Any = None) -> Any:
        return aggregator([row_properties(p).get(name) for p in points])

    return _value


def get_size_accessor(
    field: Mapping[str, Any],
    scale_type: str | None,
    aggregation: str | None,
    size_range: Sequence[float] | None,
    data: Any,
) -> Accessor:
    name = field["name"]
    scale: Scale
    if scale_type:
        scale = create_scale(scale_type)
        if aggregation != "count":
            scale.set_domain(calculate_domain(data, name, scale_type))
        scale.set_range(size_range)
    else:
        scale = IdentityScale()
    read = _property_reader(name, aggregation)

    def _size(properties: Mapping[str, Any]) -> Any:
        return scale(read(properties))

    return normalize_accessor(_size, data)


def _format_date(value: Any) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        moment = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    else:
        moment = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        if moment.tzinfo is not None:
            moment = moment.astimezone(timezone.utc)
    suffix = "am" if moment.hour < 12 else "pm"
    return moment.strftime("%m/%d/%y %H:%M:%S") + suffix


def _format_integer(value: Any) -> str:
    return str(int(round(float(value))))


def _format_float(value: Any) -> str:
    return f"{float(value):.5f}"


TEXT_FORMATS: dict[str, Callable[[Any], str]] = {
    "date": _format_date,
    "timestamp": _format_date,
    "integer": _format_integer,
    "float": _format_float,
}


def get_text_accessor(field: Mapping[str, Any], data: Any) -> Accessor:
    name = field["name"]
    formatter = TEXT_FORMATS.get(field.get("type") or "", str)

    def _text(properties: Mapping[str, Any]) -> str:
        value = properties.get(name)
        if value is None:
            return ""
        return formatter(value)

    return normalize_accessor(_text, data)


def get_icon_url_accessor(
    field: Mapping[str, Any] | None,
    markers_range: Mapping[str, Any] | None,
    *,
    fallback_url: str | None,
    max_icon_size: int,
    use_masked_icons: bool,
    data: Any,
) -> Accessor:
    def _icon(url: str) -> dict[str, Any]:
        return {
            "id": f"{url}@@{max_icon_size}",
            "url": url,
            "width": max_icon_size,
            "height": max_icon_size,
            "mask": bool(use_masked_icons),
        }

    unknown_url = fallback_url or FALLBACK_ICON
    if markers_range and markers_range.get("othersMarker"):
        unknown_url = markers_range["othersMarker"]
    unknown_icon = _icon(unknown_url)

    if not markers_range or not field:

        def _constant(row: Any, info: Any = None) -> dict[str, Any]:
            return unknown_icon

        return _constant

    mapping = {
        entry.get("value"): _icon(entry["markerUrl"])
        for entry in markers_range.get("markerMap") or []
        if entry.get("markerUrl")
    }
    name = field["name"]

    def _marker(properties: Mapping[str, Any]) -> dict[str, Any]:
        return mapping.get(properties.get(name), unknown_icon)

    return normalize_accessor(_marker, data)


def negate_accessor(accessor: Any) -> Any:
    if callable(accessor):

        def _negated(*args: Any, **kwargs: Any) -> Any:
            return -accessor(*args, **kwargs)

        return _negated
    return -accessor


def get_max_marker_size(vis_config: Mapping[str, Any], visual_channels: Mapping[str, Any]) -> int:
    radius_range = vis_config.get("radiusRange")
    radius = vis_config.get("radius")
    if radius is None:
        radius = DEFAULT_POINT_RADIUS
    field = visual_channels.get("radiusField") or visual_channels.get("sizeField")
    size = radius_range[1] if radius_range and field else radius
    return int(math.ceil(size))


def calculate_cluster_radius(
    properties: Mapping[str, Any],
    stats: Mapping[str, Any],
    radius_range: Sequence[float],
    column: str,
) -> float:
    """Scale a cluster's aggregate value linearly into `radius_range`."""
    column_stats = stats[column]
    low, high = column_stats["min"], column_stats["max"]
    if low == high:
        return radius_range[1]
    value = properties[column]
    normalized = min(1.0, max(0.0, (value - low) / (high - low)))
    return radius_range[0] + normalized * (radius_range[1] - radius_range[0])


def calculate_cluster_text_font_size(radius: float) -> int:
    if radius >= 80:
        return 20
    if radius >= 48:
        return 18
    if radius >= 32:
        return 16
    if radius >= 24:
        return 15
    if radius >= 18:
        return 14
    return 13


def get_default_aggregation_exp_column_alias(
    layer_type: str,
    provider_id: str | None,
    schema: Sequence[Mapping[str, Any]] | None,
) -> str:
    alias = DEFAULT_AGGREGATION_EXP_ALIAS
    if provider_id == "snowflake":
        alias = alias.upper()
    if schema and layer_type in AGGREGATED_LAYER_TYPES:
        for column in schema:
            name = column.get("name")
            if isinstance(name, str) and name.casefold() == alias.casefold():
                return name
    return alias


def format_compact_number(value: Any) -> str:
    """Short label such as `1.23K` or `4.5M`, at most two fraction digits."""
    if value is None:
        return ""
    number = float(value)
    magnitude = abs(number)
    sign = "-" if number < 0 else ""
    for idx, (threshold, suffix) in enumerate(_COMPACT_UNITS):
        if magnitude < threshold:
            continue
        scaled = round(magnitude / threshold, 2)
        if scaled >= 1000 and idx > 0:
            bigger, bigger_suffix = _COMPACT_UNITS[idx - 1]
            scaled, suffix = round(magnitude / bigger, 2), bigger_suffix
        return f"{sign}{_trim(scaled)}{suffix}"
    rounded = round(magnitude, 2)
    if rounded >= 1000:
        return f"{sign}1K"
    return f"{sign}{_trim(rounded)}"


def _trim(number: float) -> str:
    return f"{number:.2f}".rstrip("0").rstrip(".")
