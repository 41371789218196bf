"""Structural checks of a map document before compilation."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from .datasets import find_dataset, load_datasets
from .layer_map import SUPPORTED_LAYER_TYPES
from .models import Dataset, Report
from .parse_map import SUPPORTED_VERSION


@dataclass(slots=True)
class ValidationReport(Report):
    pass


class Validator:
    """Minimal structural validator for v1 map documents.

    Only problems that would make layers disappear from the compiled map are
    errors. Unsupported layer types are warnings, since compilation skips
    them and carries on.
    """

    def __init__(self, document: Mapping[str, Any]) -> None:
        self.document = document

    def run(self) -> ValidationReport:
        report = ValidationReport()
        config = self._validate_version(report)
        if config is None:
            return report
        datasets = self._validate_datasets(report)
        self._validate_layers(report, config=config, datasets=datasets)
        return report

    def _validate_version(self, report: ValidationReport) -> Mapping[str, Any] | None:
        kepler = self.document.get("keplerMapConfig")
        if not isinstance(kepler, Mapping):
            report.add_error("Missing 'keplerMapConfig' mapping")
            return None
        version = kepler.get("version")
        if version != SUPPORTED_VERSION:
            report.add_error(f"Unsupported map config version {version!r}, expected {SUPPORTED_VERSION!r}")
            return None
        config = kepler.get("config") or {}
        if not isinstance(config, Mapping):
            report.add_error("Expected mapping for 'keplerMapConfig.config'")
            return None
        return config

    def _validate_datasets(self, report: ValidationReport) -> list[Dataset]:
        try:
            datasets = load_datasets(self.document.get("datasets"))
        except ValueError as exc:
            report.add_error(f"Failed parsing datasets: {exc}")
            return []
        report.add_info(f"Found {len(datasets)} datasets")

        counts = Counter(dataset.id for dataset in datasets)
        for dataset_id, count in sorted(counts.items()):
            if count > 1:
                report.add_warning(f"Dataset id {dataset_id!r} appears {count} times; the first one wins")
        return datasets

    def _validate_layers(
        self,
        report: ValidationReport,
        *,
        config: Mapping[str, Any],
        datasets: Sequence[Dataset],
    ) -> None:
        vis_state = config.get("visState")
        if vis_state is None:
            vis_state = config
        if not isinstance(vis_state, Mapping):
            report.add_error("Expected mapping for 'visState'")
            return
        layers = vis_state.get("layers") or []
        if not isinstance(layers, list):
            report.add_error("Expected list for 'layers'")
            return
        report.add_info(f"Found {len(layers)} layers")

        for idx, layer in enumerate(layers):
            if not isinstance(layer, Mapping):
                report.add_error(f"layers[{idx}] is not a mapping")
                continue
            label = layer.get("id") or f"layers[{idx}]"
            layer_type = layer.get("type")
            if layer_type not in SUPPORTED_LAYER_TYPES:
                report.add_warning(f"Layer {label}: unsupported type {layer_type!r} will be skipped")
            layer_config = layer.get("config")
            if not isinstance(layer_config, Mapping):
                report.add_error(f"Layer {label}: missing 'config' mapping")
                continue
            data_id = layer_config.get("dataId")
            dataset = find_dataset(datasets, data_id)
            if dataset is None:
                report.add_error(f"Layer {label}: no dataset matching dataId {data_id!r}")
            elif not dataset.has_data:
                report.add_error(f"Layer {label}: no data loaded for dataset {data_id!r}")


def format_report_lines(report: ValidationReport) -> Iterable[str]:
    for info in report.infos:
        yield f"[INFO] {info}"
    for warning in report.warnings:
        yield f"[WARN] {warning}"
    for error in report.errors:
        yield f"[ERROR] {error}"
    if report.ok:
        yield "[OK] Validation completed with no errors."
