"""Visual channel resolution: per-row accessors from channel config.

Resolution runs as an ordered list of steps over one shared result mapping.
Steps are additive and later steps may read what earlier ones produced (icon
size reuses the radius accessor, text labels reuse it for collisions). The
order below is part of the contract; reordering changes which accessor wins
on shared keys such as `getWeight` and `pointType`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from .accessors import (
    AGGREGATION,
    DEFAULT_POINT_RADIUS,
    TEXT_LABEL_INDEX,
    TEXT_OUTLINE_OPACITY,
    calculate_cluster_radius,
    calculate_cluster_text_font_size,
    format_compact_number,
    get_color_accessor,
    get_color_value_accessor,
    get_default_aggregation_exp_column_alias,
    get_icon_url_accessor,
    get_max_marker_size,
    get_size_accessor,
    get_text_accessor,
    negate_accessor,
    row_properties,
)
from .models import Dataset, LayerConfig

_LOGGER = logging.getLogger("mapcompiler.channels")

TEXT_FONT_FAMILY = "Inter, sans"
TEXT_FONT_WEIGHT = 600
CLUSTER_TEXT_OUTLINE_WIDTH = 5
LABEL_TEXT_OUTLINE_WIDTH = 3
MAX_TEXT_LABELS = 2


@dataclass(frozen=True, slots=True)
class ChannelContext:
    layer: LayerConfig
    dataset: Dataset
    style_props: Mapping[str, Any]

    @property
    def config(self) -> Mapping[str, Any]:
        return self.layer.config

    @property
    def vis_config(self) -> Mapping[str, Any]:
        return self.layer.vis_config

    @property
    def channels(self) -> Mapping[str, Any]:
        return self.layer.visual_channels

    @property
    def data(self) -> Any:
        return self.dataset.data


def _fixed_text_style(result: dict[str, Any]) -> None:
    result["textCharacterSet"] = "auto"
    result["textFontFamily"] = TEXT_FONT_FAMILY
    result["textFontSettings"] = {"sdf": True}
    result["textFontWeight"] = TEXT_FONT_WEIGHT


def _resolve_aggregated_color(ctx: ChannelContext, result: dict[str, Any]) -> None:
    color_field = ctx.channels.get("colorField")
    result["colorScaleType"] = ctx.channels.get("colorScale")
    if not color_field:
        return
    aggregation = ctx.vis_config.get("colorAggregation")
    if aggregation in AGGREGATION:
        name = color_field["name"]

        def _weight(row: Any, info: Any = None) -> Any:
            return row_properties(row).get(name)

        result["getColorWeight"] = _weight
    else:
        result["getColorValue"] = get_color_value_accessor(color_field, aggregation, ctx.data)


def _resolve_fill_color(ctx: ChannelContext, result: dict[str, Any]) -> None:
    color_field = ctx.channels.get("colorField")
    if not color_field:
        return
    result["getFillColor"] = get_color_accessor(
        color_field,
        ctx.channels.get("colorScale"),
        aggregation=ctx.vis_config.get("colorAggregation"),
        color_range=ctx.vis_config.get("colorRange"),
        opacity=ctx.vis_config.get("opacity"),
        data=ctx.data,
    )


def _resolve_point_altitude(ctx: ChannelContext, result: dict[str, Any]) -> None:
    altitude = (ctx.config.get("columns") or {}).get("altitude")
    if not altitude:
        return

    def _with_altitude(feature: Mapping[str, Any]) -> Mapping[str, Any]:
        geometry = feature.get("geometry") or {}
        if geometry.get("type") != "Point":
            return feature
        z = (feature.get("properties") or {}).get(altitude)
        coordinates = [*geometry["coordinates"][:2], z]
        return {**feature, "geometry": {**geometry, "coordinates": coordinates}}

    def _data_transform(data: Any) -> Any:
        if not isinstance(data, Mapping) or "features" not in data:
            return data
        return {**data, "features": [_with_altitude(f) for f in data["features"] or []]}

    result["dataTransform"] = _data_transform


def _resolve_cluster_tile(ctx: ChannelContext, result: dict[str, Any]) -> None:
    vis_config = ctx.vis_config
    alias = get_default_aggregation_exp_column_alias(
        ctx.layer.type, ctx.dataset.provider_id, ctx.dataset.resolved_schema
    )
    radius_range = vis_config.get("radiusRange") or [DEFAULT_POINT_RADIUS, DEFAULT_POINT_RADIUS]

    result["pointType"] = "circle+text" if vis_config.get("isTextVisible") else "circle"
    result["clusterLevel"] = vis_config.get("clusterLevel")

    def _cluster_radius(row: Any, info: Any) -> float:
        stats = info["data"]["attributes"]["stats"]
        return calculate_cluster_radius(row["properties"], stats, radius_range, alias)

    def _weight(row: Any, info: Any = None) -> Any:
        return row["properties"].get(alias)

    def _text(row: Any, info: Any = None) -> str:
        return format_compact_number(row["properties"].get(alias))

    def _text_size(row: Any, info: Any) -> int:
        return calculate_cluster_text_font_size(_cluster_radius(row, info))

    result["getWeight"] = _weight
    result["getPointRadius"] = _cluster_radius
    _fixed_text_style(result)
    result["getText"] = _text

    labels = ctx.config.get("textLabel") or []
    label = labels[TEXT_LABEL_INDEX] if labels else {}
    if label.get("color") is not None:
        result["getTextColor"] = label["color"]
    if label.get("outlineColor") is not None:
        result["textOutlineColor"] = [*label["outlineColor"][:3], TEXT_OUTLINE_OPACITY]
    result["textOutlineWidth"] = CLUSTER_TEXT_OUTLINE_WIDTH
    result["textSizeUnits"] = "pixels"
    result["getTextSize"] = _text_size


def _resolve_size(ctx: ChannelContext, result: dict[str, Any]) -> None:
    channels = ctx.channels
    field = channels.get("radiusField") or channels.get("sizeField")
    if not field:
        return
    vis_config = ctx.vis_config
    result["getPointRadius"] = get_size_accessor(
        field,
        channels.get("radiusScale") or channels.get("sizeScale"),
        vis_config.get("sizeAggregation"),
        vis_config.get("radiusRange") or vis_config.get("sizeRange"),
        ctx.data,
    )


def _resolve_stroke_color(ctx: ChannelContext, result: dict[str, Any]) -> None:
    field = ctx.channels.get("strokeColorField")
    if not field:
        return
    vis_config = ctx.vis_config
    fallback_opacity = vis_config.get("opacity") if ctx.layer.type == "point" else 1
    opacity = vis_config.get("strokeOpacity")
    if opacity is None:
        opacity = fallback_opacity
    result["getLineColor"] = get_color_accessor(
        field,
        ctx.channels.get("strokeColorScale"),
        aggregation=vis_config.get("strokeColorAggregation"),
        color_range=vis_config.get("strokeColorRange"),
        opacity=opacity,
        data=ctx.data,
    )


def _resolve_height(ctx: ChannelContext, result: dict[str, Any]) -> None:
    channels = ctx.channels
    if ctx.layer.type == "hexagonId":
        field, scale = channels.get("sizeField"), channels.get("sizeScale")
    else:
        field, scale = channels.get("heightField"), channels.get("heightScale")
    vis_config = ctx.vis_config
    if not field or not vis_config.get("enable3d"):
        return
    result["getElevation"] = get_size_accessor(
        field,
        scale,
        vis_config.get("heightAggregation"),
        vis_config.get("heightRange") or vis_config.get("sizeRange"),
        ctx.data,
    )


def _resolve_weight(ctx: ChannelContext, result: dict[str, Any]) -> None:
    field = ctx.channels.get("weightField")
    if not field:
        return
    result["getWeight"] = get_size_accessor(
        field, None, ctx.vis_config.get("weightAggregation"), None, ctx.data
    )


def _resolve_custom_markers(ctx: ChannelContext, result: dict[str, Any]) -> None:
    vis_config = ctx.vis_config
    if not vis_config.get("customMarkers"):
        if ctx.layer.type in ("point", "tileset"):
            result["pointType"] = "circle"
        return

    max_icon_size = get_max_marker_size(vis_config, ctx.channels)
    use_masked_icons = bool(vis_config.get("filled"))

    result["pointType"] = "icon"
    result["getIcon"] = get_icon_url_accessor(
        ctx.channels.get("customMarkersField"),
        vis_config.get("customMarkersRange"),
        fallback_url=vis_config.get("customMarkersUrl"),
        max_icon_size=max_icon_size,
        use_masked_icons=use_masked_icons,
        data=ctx.data,
    )
    result["_subLayerProps"] = {
        "points-icon": {
            "loadOptions": {
                "image": {"type": "imagebitmap"},
                "imagebitmap": {
                    "resizeWidth": max_icon_size,
                    "resizeHeight": max_icon_size,
                    "resizeQuality": "high",
                },
            }
        }
    }

    fill_color = result.get("getFillColor", ctx.style_props.get("getFillColor"))
    if fill_color is not None and use_masked_icons:
        result["getIconColor"] = fill_color

    if result.get("getPointRadius") is not None:
        result["getIconSize"] = result["getPointRadius"]

    rotation_field = ctx.channels.get("rotationField")
    if rotation_field:
        # Authored rotation is counter-clockwise, icon angles are clockwise.
        result["getIconAngle"] = negate_accessor(
            get_size_accessor(rotation_field, None, None, None, ctx.data)
        )


_PRIMARY_LABEL_PROPS = (
    ("alignment", "getTextAlignmentBaseline"),
    ("anchor", "getTextAnchor"),
    ("color", "getTextColor"),
    ("outlineColor", "textOutlineColor"),
    ("size", "textSizeScale"),
)


def _resolve_text_labels(ctx: ChannelContext, result: dict[str, Any]) -> None:
    labels = list(ctx.config.get("textLabel") or [])[:MAX_TEXT_LABELS]
    if not labels or not labels[0].get("field"):
        return
    main_label = labels[0]
    secondary_label = labels[1] if len(labels) > 1 else {}

    for source_key, prop in _PRIMARY_LABEL_PROPS:
        if main_label.get(source_key) is not None:
            result[prop] = main_label[source_key]

    result["getText"] = get_text_accessor(main_label["field"], ctx.data)
    result["pointType"] = f"{result.get('pointType', 'circle')}+text"
    _fixed_text_style(result)
    result["textOutlineWidth"] = LABEL_TEXT_OUTLINE_WIDTH

    text_props: dict[str, Any] = {
        "collisionEnabled": True,
        "collisionGroup": ctx.layer.id,
    }
    # A resolved radius accessor already includes the radius scale.
    if result.get("getPointRadius") is not None:
        text_props["getRadius"] = result["getPointRadius"]
    else:
        radius = ctx.vis_config.get("radius")
        text_props["radiusScale"] = DEFAULT_POINT_RADIUS if radius is None else radius

    secondary_field = secondary_label.get("field")
    if secondary_field:
        text_props["getSecondaryText"] = get_text_accessor(secondary_field, ctx.data)
        text_props["getSecondaryColor"] = secondary_label.get("color")
        text_props["secondarySizeScale"] = secondary_label.get("size")
        text_props["secondaryOutlineColor"] = secondary_label.get("outlineColor")

    result["_subLayerProps"] = {**result.get("_subLayerProps", {}), "points-text": text_props}


ChannelStep = Callable[[ChannelContext, dict[str, Any]], None]

_COLOR_STEPS: Mapping[str, ChannelStep] = {
    "grid": _resolve_aggregated_color,
    "hexagon": _resolve_aggregated_color,
}

_TYPE_STEPS: Mapping[str, ChannelStep] = {
    "point": _resolve_point_altitude,
    "clusterTile": _resolve_cluster_tile,
}


def _resolve_color(ctx: ChannelContext, result: dict[str, Any]) -> None:
    _COLOR_STEPS.get(ctx.layer.type, _resolve_fill_color)(ctx, result)


def _resolve_type_specific(ctx: ChannelContext, result: dict[str, Any]) -> None:
    step = _TYPE_STEPS.get(ctx.layer.type)
    if step is not None:
        step(ctx, result)


CHANNEL_STEPS: tuple[ChannelStep, ...] = (
    _resolve_color,
    _resolve_type_specific,
    _resolve_size,
    _resolve_stroke_color,
    _resolve_height,
    _resolve_weight,
    _resolve_custom_markers,
    _resolve_text_labels,
)


def create_channel_props(
    layer: LayerConfig, dataset: Dataset, style_props: Mapping[str, Any]
) -> dict[str, Any]:
    ctx = ChannelContext(layer=layer, dataset=dataset, style_props=style_props)
    result: dict[str, Any] = {}
    for step in CHANNEL_STEPS:
        step(ctx, result)
    _LOGGER.debug("Layer %s resolved channel props: %s", layer.id, sorted(result))
    return result
