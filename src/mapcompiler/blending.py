"""Blend parameters, interaction flags, and authenticated load options."""

from __future__ import annotations

from typing import Any, Mapping

ADDITIVE_BLEND: Mapping[str, str] = {
    "blendColorSrcFactor": "src-alpha",
    "blendColorDstFactor": "dst-alpha",
    "blendColorOperation": "add",
    "blendAlphaSrcFactor": "src-alpha",
    "blendAlphaDstFactor": "dst-alpha",
    "blendAlphaOperation": "add",
}

SUBTRACTIVE_BLEND: Mapping[str, str] = {
    "blendColorSrcFactor": "one",
    "blendColorDstFactor": "one-minus-dst-color",
    "blendColorOperation": "subtract",
    "blendAlphaSrcFactor": "src-alpha",
    "blendAlphaDstFactor": "dst-alpha",
    "blendAlphaOperation": "add",
}

BLEND_MODES: Mapping[str, Mapping[str, str]] = {
    "additive": ADDITIVE_BLEND,
    "subtractive": SUBTRACTIVE_BLEND,
}


def create_parameters_prop(
    layer_blending: str | None, parameters: Mapping[str, Any] | None = None
) -> dict[str, Any]:
    """Merge the blend mode into `parameters`.

    Normal blending adds nothing. When the merged parameters are empty the
    result has no `parameters` key, leaving the renderer on its defaults.
    """
    merged = dict(parameters or {})
    merged.update(BLEND_MODES.get(layer_blending or "normal", {}))
    return {"parameters": merged} if merged else {}


def create_interaction_props(interaction_config: Mapping[str, Any] | None) -> dict[str, Any]:
    tooltip = (interaction_config or {}).get("tooltip") or {}
    pickable = bool(tooltip.get("enabled"))
    return {"autoHighlight": pickable, "pickable": pickable}


def create_load_options(token: str | None) -> dict[str, Any]:
    return {"loadOptions": {"fetch": {"headers": {"Authorization": f"Bearer {token}"}}}}
