"""Dataset lookup, remote-filter capability, and payload loading."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from .models import Dataset
from .util import read_json

_LOGGER = logging.getLogger("mapcompiler.datasets")

_CLIENT_SIDE_DATASET_TYPES = frozenset({"tileset", "raster"})
_CLIENT_SIDE_PROVIDERS = frozenset({"databricks"})
_PAYLOAD_SUFFIXES = (".json", ".geojson")


def load_datasets(raw: Any, *, skip_invalid: bool = False) -> list[Dataset]:
    """Build `Dataset` records from the document's `datasets` list.

    With `skip_invalid`, malformed entries are logged and left out instead of
    raising, so layers referencing them simply fail to resolve.
    """
    if raw is None:
        return []
    if not isinstance(raw, Sequence) or isinstance(raw, str):
        if skip_invalid:
            _LOGGER.warning("Ignoring 'datasets': expected list, got %s", type(raw).__name__)
            return []
        raise ValueError("Expected list for 'datasets'")
    datasets: list[Dataset] = []
    for idx, item in enumerate(raw):
        try:
            if not isinstance(item, Mapping):
                raise ValueError(f"Expected mapping at datasets[{idx}]")
            datasets.append(Dataset.from_mapping(item))
        except ValueError as exc:
            if not skip_invalid:
                raise
            _LOGGER.warning("Skipping datasets[%d]: %s", idx, exc)
    return datasets


def find_dataset(datasets: Iterable[Dataset], data_id: str | None) -> Dataset | None:
    if data_id is None:
        return None
    for dataset in datasets:
        if dataset.id == data_id:
            return dataset
    return None


def is_remote_calculation_supported(dataset: Dataset) -> bool:
    """Whether filters for this dataset are evaluated by the data service.

    Tilesets and rasters are pre-generated, and some providers cannot run
    filter queries, so their filters stay client side.
    """
    if dataset.type in _CLIENT_SIDE_DATASET_TYPES:
        return False
    if dataset.provider_id in _CLIENT_SIDE_PROVIDERS:
        return False
    return True


def attach_dataset_payloads(document: Mapping[str, Any], datasets_dir: Path | None) -> dict[str, Any]:
    """Return a copy of `document` with missing dataset `data` loaded from disk.

    Payloads are looked up as `<datasets_dir>/<dataset id>.json` (or
    `.geojson`). Datasets that already carry data are left alone.
    """
    out = dict(document)
    raw_datasets = document.get("datasets")
    if datasets_dir is None or not isinstance(raw_datasets, list):
        return out

    attached: list[Any] = []
    for item in raw_datasets:
        if not isinstance(item, Mapping) or item.get("data") is not None:
            attached.append(item)
            continue
        payload_path = _find_payload(datasets_dir, str(item.get("id")))
        if payload_path is None:
            _LOGGER.debug("No payload file for dataset %s in %s", item.get("id"), datasets_dir)
            attached.append(item)
            continue
        loaded = dict(item)
        loaded["data"] = read_json(payload_path)
        _LOGGER.info("Loaded dataset %s from %s", item.get("id"), payload_path)
        attached.append(loaded)
    out["datasets"] = attached
    return out


def _find_payload(datasets_dir: Path, dataset_id: str) -> Path | None:
    for suffix in _PAYLOAD_SUFFIXES:
        candidate = datasets_dir / f"{dataset_id}{suffix}"
        if candidate.exists():
            return candidate
    return None
