"""Request and response contracts of the remote widget aggregation service.

The compiler never talks to the service. These types only describe the
payloads a caller sends (`to_params`, camelCase keys, unset options left
out) and parse what comes back (`from_payload`).
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Mapping, Sequence

OPERATIONS = frozenset({"count", "avg", "min", "max", "sum"})
FORMULA_OPERATIONS = OPERATIONS | {"custom"}
GROUP_DATE_TYPES = frozenset({"year", "month", "week", "day", "hour", "minute", "second"})
SORT_DIRECTIONS = frozenset({"asc", "desc"})
SORT_COLUMN_TYPES = frozenset({"number", "string", "date"})
SPATIAL_FILTER_MODES = frozenset({"center", "intersects", "contains"})
FEATURE_DATA_TYPES = frozenset({"points", "lines", "polygons"})
TILE_RESOLUTIONS = frozenset({0.25, 0.5, 1, 2, 4})


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _check_choice(value: Any, allowed: frozenset[Any], field_name: str) -> None:
    if value is not None and value not in allowed:
        raise ValueError(f"Unsupported value for '{field_name}': {value!r}")


def _require_mapping(payload: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise ValueError(f"Expected mapping for {what} response")
    return payload


@dataclass(frozen=True, slots=True)
class ViewState:
    zoom: float
    latitude: float
    longitude: float

    def to_params(self) -> dict[str, Any]:
        return {"zoom": self.zoom, "latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True, slots=True, kw_only=True)
class BaseRequestOptions:
    spatial_filter: Mapping[str, Any] | None = None
    spatial_filters_mode: str | None = None
    filters: Mapping[str, Any] | None = None
    filter_owner: str | None = None

    def __post_init__(self) -> None:
        _check_choice(self.spatial_filters_mode, SPATIAL_FILTER_MODES, "spatialFiltersMode")

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if value is None:
                continue
            params[_camel(item.name)] = list(value) if isinstance(value, tuple) else value
        return params


@dataclass(frozen=True, slots=True, kw_only=True)
class CategoryRequestOptions(BaseRequestOptions):
    column: str
    operation: str | None = None
    operation_column: str | None = None
    join_operation: str | None = None

    def __post_init__(self) -> None:
        BaseRequestOptions.__post_init__(self)
        _check_choice(self.operation, OPERATIONS, "operation")
        _check_choice(self.join_operation, OPERATIONS, "joinOperation")


@dataclass(frozen=True, slots=True, kw_only=True)
class FeaturesRequestOptions(BaseRequestOptions):
    feature_ids: tuple[str, ...]
    columns: tuple[str, ...]
    data_type: str
    z: int | None = None
    limit: int | None = None
    tile_resolution: float | None = None

    def __post_init__(self) -> None:
        BaseRequestOptions.__post_init__(self)
        _check_choice(self.data_type, FEATURE_DATA_TYPES, "dataType")
        _check_choice(self.tile_resolution, TILE_RESOLUTIONS, "tileResolution")
        if self.data_type == "points" and self.z is None:
            raise ValueError("Zoom level 'z' is required for the 'points' data type")


@dataclass(frozen=True, slots=True, kw_only=True)
class FormulaRequestOptions(BaseRequestOptions):
    column: str
    operation: str | None = None
    operation_exp: str | None = None
    join_operation: str | None = None

    def __post_init__(self) -> None:
        BaseRequestOptions.__post_init__(self)
        _check_choice(self.operation, FORMULA_OPERATIONS, "operation")
        _check_choice(self.join_operation, OPERATIONS, "joinOperation")
        if self.operation == "custom" and not self.operation_exp:
            raise ValueError("'operationExp' is required for the 'custom' operation")


@dataclass(frozen=True, slots=True, kw_only=True)
class HistogramRequestOptions(BaseRequestOptions):
    column: str
    ticks: tuple[float, ...]
    operation: str | None = None
    join_operation: str | None = None

    def __post_init__(self) -> None:
        BaseRequestOptions.__post_init__(self)
        _check_choice(self.operation, OPERATIONS, "operation")
        _check_choice(self.join_operation, OPERATIONS, "joinOperation")


@dataclass(frozen=True, slots=True, kw_only=True)
class RangeRequestOptions(BaseRequestOptions):
    column: str


@dataclass(frozen=True, slots=True, kw_only=True)
class ScatterRequestOptions(BaseRequestOptions):
    x_axis_column: str
    y_axis_column: str
    x_axis_join_operation: str | None = None
    y_axis_join_operation: str | None = None

    def __post_init__(self) -> None:
        BaseRequestOptions.__post_init__(self)
        _check_choice(self.x_axis_join_operation, OPERATIONS, "xAxisJoinOperation")
        _check_choice(self.y_axis_join_operation, OPERATIONS, "yAxisJoinOperation")


@dataclass(frozen=True, slots=True, kw_only=True)
class TableRequestOptions(BaseRequestOptions):
    columns: tuple[str, ...]
    sort_by: str | None = None
    sort_direction: str | None = None
    sort_by_column_type: str | None = None
    offset: int | None = None
    limit: int | None = None

    def __post_init__(self) -> None:
        BaseRequestOptions.__post_init__(self)
        _check_choice(self.sort_direction, SORT_DIRECTIONS, "sortDirection")
        _check_choice(self.sort_by_column_type, SORT_COLUMN_TYPES, "sortByColumnType")


@dataclass(frozen=True, slots=True, kw_only=True)
class TimeSeriesRequestOptions(BaseRequestOptions):
    column: str
    step_size: str
    step_multiplier: int | None = None
    operation: str | None = None
    operation_column: str | None = None
    join_operation: str | None = None
    split_by_category: str | None = None
    split_by_category_limit: int | None = None
    split_by_category_values: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        BaseRequestOptions.__post_init__(self)
        _check_choice(self.step_size, GROUP_DATE_TYPES, "stepSize")
        _check_choice(self.operation, OPERATIONS, "operation")
        _check_choice(self.join_operation, OPERATIONS, "joinOperation")


@dataclass(frozen=True, slots=True)
class FormulaResponse:
    value: float | None

    @classmethod
    def from_payload(cls, payload: Any) -> FormulaResponse:
        return cls(value=_require_mapping(payload, "formula").get("value"))


@dataclass(frozen=True, slots=True)
class CategoryItem:
    name: str
    value: float


@dataclass(frozen=True, slots=True)
class CategoryResponse:
    items: tuple[CategoryItem, ...] = ()

    @classmethod
    def from_payload(cls, payload: Any) -> CategoryResponse:
        if not isinstance(payload, Sequence) or isinstance(payload, str):
            raise ValueError("Expected list for categories response")
        return cls(
            items=tuple(
                CategoryItem(name=item["name"], value=item["value"])
                for item in (_require_mapping(entry, "category") for entry in payload)
            )
        )


@dataclass(frozen=True, slots=True)
class RangeResponse:
    min: float
    max: float

    @classmethod
    def from_payload(cls, payload: Any) -> RangeResponse | None:
        # An empty selection has no range at all.
        if payload is None:
            return None
        data = _require_mapping(payload, "range")
        return cls(min=data["min"], max=data["max"])


@dataclass(frozen=True, slots=True)
class TableResponse:
    total_count: int
    rows: tuple[Mapping[str, Any], ...] = ()

    @classmethod
    def from_payload(cls, payload: Any) -> TableResponse:
        data = _require_mapping(payload, "table")
        return cls(total_count=int(data.get("totalCount", 0)), rows=tuple(data.get("rows") or ()))


@dataclass(frozen=True, slots=True)
class TimeSeriesResponse:
    rows: tuple[CategoryItem, ...] = ()
    categories: tuple[str, ...] | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> TimeSeriesResponse:
        data = _require_mapping(payload, "time series")
        categories = data.get("categories")
        return cls(
            rows=tuple(CategoryItem(name=row["name"], value=row["value"]) for row in data.get("rows") or ()),
            categories=tuple(categories) if categories is not None else None,
        )


@dataclass(frozen=True, slots=True)
class FeaturesResponse:
    rows: tuple[Mapping[str, Any], ...] = field(default_factory=tuple)

    @classmethod
    def from_payload(cls, payload: Any) -> FeaturesResponse:
        return cls(rows=tuple(_require_mapping(payload, "features").get("rows") or ()))


def scatter_from_payload(payload: Any) -> list[tuple[float, float]]:
    return [(float(x), float(y)) for x, y in payload or ()]


def histogram_from_payload(payload: Any) -> list[float]:
    return [float(v) for v in payload or ()]
