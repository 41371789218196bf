"""JSON-safe rendering of compiled descriptors."""

from __future__ import annotations

from typing import Any, Mapping

from .models import LayerDescriptor, ParseMapResult

DEFAULT_ACCESSOR_PLACEHOLDER = "<accessor>"


def descriptor_to_jsonable(value: Any, placeholder: str = DEFAULT_ACCESSOR_PLACEHOLDER) -> Any:
    """Recursively convert `value`, replacing accessors with `placeholder`.

    Two compilations of the same document serialize to equal structures
    even though their accessors are distinct closures.
    """
    if isinstance(value, LayerDescriptor):
        value = value.to_dict()
    if isinstance(value, Mapping):
        return {str(key): descriptor_to_jsonable(item, placeholder) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [descriptor_to_jsonable(item, placeholder) for item in value]
    if callable(value):
        return placeholder
    return value


def result_to_jsonable(
    result: ParseMapResult,
    *,
    placeholder: str = DEFAULT_ACCESSOR_PLACEHOLDER,
    include_data: bool = True,
) -> dict[str, Any]:
    payload = result.to_dict()
    if not include_data:
        for layer in payload["layers"]:
            layer["props"] = {k: v for k, v in layer["props"].items() if k != "data"}
    return descriptor_to_jsonable(payload, placeholder)
