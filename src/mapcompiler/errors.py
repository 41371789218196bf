"""Compiler error types."""

from __future__ import annotations


class MapConfigError(ValueError):
    """The map document cannot be compiled at all."""


class LayerCompileError(RuntimeError):
    """One layer cannot be compiled; the rest of the map is unaffected."""


class UnsupportedLayerTypeError(LayerCompileError):
    def __init__(self, layer_type: str) -> None:
        super().__init__(f"Unsupported layer type: {layer_type!r}")
        self.layer_type = layer_type
