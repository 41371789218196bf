"""Domain models shared across compiler modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence


def _require_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value


def _optional_mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return value


@dataclass(frozen=True, slots=True)
class Dataset:
    """A loaded data source referenced by layers through `dataId`.

    `data` is already resident: a list of row mappings, a GeoJSON
    FeatureCollection, or a tilejson mapping carrying `tilestats`.
    """

    id: str
    provider_id: str | None = None
    type: str | None = None
    data: Any = None
    schema: Sequence[Mapping[str, Any]] | None = None

    @property
    def has_data(self) -> bool:
        return self.data is not None

    @property
    def resolved_schema(self) -> Sequence[Mapping[str, Any]] | None:
        """Dataset schema, falling back to the one embedded in tilejson data."""
        if self.schema is not None:
            return self.schema
        if isinstance(self.data, Mapping):
            schema = self.data.get("schema")
            if isinstance(schema, Sequence) and not isinstance(schema, str):
                return schema
        return None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Dataset:
        schema_raw = data.get("schema")
        if schema_raw is not None and (
            not isinstance(schema_raw, Sequence) or isinstance(schema_raw, str)
        ):
            raise ValueError("Expected list for dataset 'schema'")
        return cls(
            id=_require_str(data.get("id"), "id"),
            provider_id=data.get("providerId"),
            type=data.get("type"),
            data=data.get("data"),
            schema=schema_raw,
        )


@dataclass(frozen=True, slots=True)
class LayerConfig:
    """One authored layer of the map config."""

    id: str
    type: str
    config: Mapping[str, Any]
    visual_channels: Mapping[str, Any] = field(default_factory=dict)

    @property
    def data_id(self) -> str | None:
        return self.config.get("dataId")

    @property
    def vis_config(self) -> Mapping[str, Any]:
        return self.config.get("visConfig") or {}

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> LayerConfig:
        return cls(
            id=_require_str(data.get("id"), "id"),
            type=_require_str(data.get("type"), "type"),
            config=_optional_mapping(data.get("config"), "config"),
            visual_channels=_optional_mapping(data.get("visualChannels"), "visualChannels"),
        )


@dataclass(slots=True)
class LayerDescriptor:
    """Compiled instructions for one renderable layer.

    `props` is handed over to the caller as-is; values are either plain data
    or accessors taking `(row, info=None)`.
    """

    type: str
    props: dict[str, Any]
    filters: Any = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type, "props": self.props}
        if self.filters is not None:
            out["filters"] = self.filters
        return out


@dataclass(slots=True)
class ParseMapResult:
    id: str | None
    title: str | None
    description: str | None
    created_at: str | None
    updated_at: str | None
    initial_view_state: Any
    map_style: Any
    popup_settings: Any
    legend_settings: Any
    token: str | None
    layers: list[LayerDescriptor] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "initialViewState": self.initial_view_state,
            "mapStyle": self.map_style,
            "popupSettings": self.popup_settings,
            "legendSettings": self.legend_settings,
            "token": self.token,
            "layers": [layer.to_dict() for layer in self.layers],
        }


@dataclass(slots=True)
class Report:
    """Messages collected by one pipeline step, rendered as report lines."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)
