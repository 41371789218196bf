"""Style props compilation from a layer's config object."""

from __future__ import annotations

from typing import Any, Mapping, MutableMapping, Sequence

from .accessors import OPACITY_MAP, opacity_to_alpha
from .layer_map import Nested, PropMap, Rename, Transform

HIGHLIGHT_COLOR_3D = [255, 255, 255, 60]
HIGHLIGHT_COLOR_FLAT = [252, 242, 26, 255]


def _lookup(source: Any, key: Any) -> Any:
    if isinstance(source, Mapping):
        return source.get(key)
    if isinstance(key, int) and isinstance(source, Sequence) and not isinstance(source, str):
        return source[key] if -len(source) <= key < len(source) else None
    return None


def map_props(source: Any, target: MutableMapping[str, Any], table: PropMap) -> None:
    """Apply `table` to `source`, writing results into `target`."""
    for source_key, rule in table.items():
        value = _lookup(source, source_key)
        if value is None:
            continue
        if isinstance(rule, Rename):
            target[rule.key] = value
        elif isinstance(rule, Transform):
            target.update(rule.fn(value))
        elif isinstance(rule, Nested):
            map_props(value, target, rule.table)
        else:
            raise TypeError(f"Unknown prop rule for '{source_key}': {rule!r}")


def create_style_props(config: Mapping[str, Any], table: PropMap) -> dict[str, Any]:
    result: dict[str, Any] = {}
    map_props(config, result, table)
    vis_config = config.get("visConfig") or {}

    # Configs can omit strokeColor while stroke is enabled.
    if result.get("stroked") and not result.get("getLineColor"):
        result["getLineColor"] = result.get("getFillColor")

    for color_prop, opacity_key in OPACITY_MAP.items():
        color = result.get(color_prop)
        if isinstance(color, (list, tuple)):
            rgba = list(color[:3])
            rgba.append(opacity_to_alpha(vis_config.get(opacity_key)))
            result[color_prop] = rgba

    result["highlightColor"] = list(
        HIGHLIGHT_COLOR_3D if vis_config.get("enable3d") else HIGHLIGHT_COLOR_FLAT
    )
    return result
