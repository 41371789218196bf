"""Top-level compilation of a v1 map document into layer descriptors."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence

from .blending import create_interaction_props, create_load_options, create_parameters_prop
from .channels import create_channel_props
from .datasets import find_dataset, is_remote_calculation_supported, load_datasets
from .errors import LayerCompileError, MapConfigError, UnsupportedLayerTypeError
from .layer_map import get_layer_props
from .models import Dataset, LayerConfig, LayerDescriptor, ParseMapResult, Report
from .style import create_style_props

_LOGGER = logging.getLogger("mapcompiler.parse_map")

SUPPORTED_VERSION = "v1"


@dataclass(slots=True)
class CompileReport(Report):
    summary: dict[str, int] = field(default_factory=dict)

    @property
    def dropped(self) -> int:
        return self.summary.get("dropped", 0)


def format_report_lines(report: CompileReport) -> Sequence[str]:
    lines: list[str] = []
    lines.extend(f"[INFO] {msg}" for msg in report.infos)
    lines.extend(f"[WARN] {msg}" for msg in report.warnings)
    lines.extend(f"[ERROR] {msg}" for msg in report.errors)
    if report.ok:
        lines.append("[OK] Map compiled with no errors.")
    return lines


@dataclass(frozen=True, slots=True)
class _LayerBuild:
    """Everything the prop producers of one layer read from."""

    layer: LayerConfig
    dataset: Dataset
    default_props: Mapping[str, Any]
    style_props: Mapping[str, Any]
    interaction_config: Mapping[str, Any] | None
    layer_blending: str | None
    token: str | None


PropsProducer = Callable[[_LayerBuild], Mapping[str, Any]]

# Later producers override earlier ones on shared keys.
PROPS_ASSEMBLY_ORDER: tuple[tuple[str, PropsProducer], ...] = (
    ("base", lambda build: {"id": build.layer.id, "data": build.dataset.data}),
    ("defaults", lambda build: build.default_props),
    ("interaction", lambda build: create_interaction_props(build.interaction_config)),
    ("style", lambda build: build.style_props),
    (
        "channels",
        lambda build: create_channel_props(build.layer, build.dataset, build.style_props),
    ),
    (
        "parameters",
        lambda build: create_parameters_prop(
            build.layer_blending, build.style_props.get("parameters")
        ),
    ),
    ("load_options", lambda build: create_load_options(build.token)),
)


def _vis_state(config: Mapping[str, Any]) -> Mapping[str, Any]:
    vis_state = config.get("visState")
    if vis_state is None:
        return config
    if not isinstance(vis_state, Mapping):
        raise MapConfigError("Expected mapping for 'keplerMapConfig.config.visState'")
    return vis_state


def _layer_filters(filters: Any, dataset: Dataset) -> Any:
    if not filters or is_remote_calculation_supported(dataset):
        return None
    if isinstance(filters, Mapping):
        return filters.get(dataset.id)
    return None


def _compile_layer(
    raw_layer: Any,
    *,
    datasets: Sequence[Dataset],
    filters: Any,
    interaction_config: Mapping[str, Any] | None,
    layer_blending: str | None,
    token: str | None,
) -> LayerDescriptor:
    if not isinstance(raw_layer, Mapping):
        raise LayerCompileError("Layer entry is not a mapping")
    try:
        layer = LayerConfig.from_mapping(raw_layer)
    except ValueError as exc:
        raise LayerCompileError(f"Malformed layer: {exc}") from exc

    data_id = layer.data_id
    dataset = find_dataset(datasets, data_id)
    if dataset is None:
        raise LayerCompileError(f"No dataset matching dataId: {data_id}")
    if not dataset.has_data:
        raise LayerCompileError(f"No data loaded for dataId: {data_id}")

    prop_map, default_props = get_layer_props(layer.type, layer.config, dataset)
    build = _LayerBuild(
        layer=layer,
        dataset=dataset,
        default_props=default_props,
        style_props=create_style_props(layer.config, prop_map),
        interaction_config=interaction_config,
        layer_blending=layer_blending,
        token=token,
    )

    props: dict[str, Any] = {}
    for _, producer in PROPS_ASSEMBLY_ORDER:
        props.update(producer(build))
    return LayerDescriptor(
        type=layer.type,
        props=props,
        filters=_layer_filters(filters, dataset),
    )


def parse_map(
    document: Mapping[str, Any],
    *,
    token: str | None = None,
    report: CompileReport | None = None,
) -> ParseMapResult:
    """Compile a map document into draw-ordered layer descriptors.

    Only the version check is fatal. A layer whose dataset is missing, whose
    type is unsupported, or whose config fails to compile is logged, noted in
    `report` when one is given, and left out of the result. `token`, when set,
    replaces the document's own token.
    """
    kepler = document.get("keplerMapConfig")
    if not isinstance(kepler, Mapping):
        raise MapConfigError("Expected mapping for 'keplerMapConfig'")
    version = kepler.get("version")
    if version != SUPPORTED_VERSION:
        raise MapConfigError(f"Only support Kepler {SUPPORTED_VERSION}, got {version!r}")

    config = kepler.get("config") or {}
    if not isinstance(config, Mapping):
        raise MapConfigError("Expected mapping for 'keplerMapConfig.config'")
    vis_state = _vis_state(config)
    raw_layers = vis_state.get("layers") or []
    if not isinstance(raw_layers, Sequence) or isinstance(raw_layers, str):
        raise MapConfigError("Expected list for 'layers'")

    datasets = load_datasets(document.get("datasets"), skip_invalid=True)

    effective_token = token if token is not None else document.get("token")
    compiled: list[LayerDescriptor] = []
    dropped = 0
    for raw_layer in reversed(raw_layers):
        layer_id = raw_layer.get("id") if isinstance(raw_layer, Mapping) else None
        try:
            descriptor = _compile_layer(
                raw_layer,
                datasets=datasets,
                filters=config.get("filters"),
                interaction_config=vis_state.get("interactionConfig"),
                layer_blending=vis_state.get("layerBlending"),
                token=effective_token,
            )
        except UnsupportedLayerTypeError as exc:
            dropped += 1
            _LOGGER.warning("Skipping layer %s: %s", layer_id, exc)
            if report is not None:
                report.add_warning(f"Layer {layer_id} skipped: {exc}")
            continue
        except Exception as exc:
            dropped += 1
            _LOGGER.error("Failed compiling layer %s: %s", layer_id, exc)
            if report is not None:
                report.add_error(f"Layer {layer_id} dropped: {exc}")
            continue
        _LOGGER.debug("Compiled layer %s (%s)", layer_id, descriptor.type)
        compiled.append(descriptor)

    if report is not None:
        report.summary.update(
            {"layers": len(raw_layers), "compiled": len(compiled), "dropped": dropped}
        )
        report.add_info(f"Compiled {len(compiled)} of {len(raw_layers)} layers")

    return ParseMapResult(
        id=document.get("id"),
        title=document.get("title"),
        description=document.get("description"),
        created_at=document.get("createdAt"),
        updated_at=document.get("updatedAt"),
        initial_view_state=config.get("mapState"),
        map_style=config.get("mapStyle"),
        popup_settings=config.get("popupSettings"),
        legend_settings=config.get("legendSettings"),
        token=effective_token,
        layers=compiled,
    )
