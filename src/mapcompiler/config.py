"""Typed configuration loader for `config.yaml`."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _optional_mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    return _mapping(value, field_name)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _optional_str(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    return _str(value, field_name)


def _int(value: Any, field_name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"Expected integer for '{field_name}'")
    return value


def _bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"Expected bool for '{field_name}'")
    return value


def _path_from_cfg(value: Any, field_name: str, root_dir: Path) -> Path:
    raw = _str(value, field_name)
    p = Path(raw)
    return p if p.is_absolute() else root_dir / p


@dataclass(frozen=True, slots=True)
class PathsConfig:
    datasets_dir: Path | None
    output_dir: Path
    logs_dir: Path

    @property
    def build_directories(self) -> tuple[Path, ...]:
        return (self.output_dir, self.logs_dir)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> PathsConfig:
        datasets_raw = raw.get("datasets_dir")
        return cls(
            datasets_dir=(
                None
                if datasets_raw is None
                else _path_from_cfg(datasets_raw, "paths.datasets_dir", root_dir)
            ),
            output_dir=_path_from_cfg(
                raw.get("output_dir", "build/descriptors"), "paths.output_dir", root_dir
            ),
            logs_dir=_path_from_cfg(raw.get("logs_dir", "build/logs"), "paths.logs_dir", root_dir),
        )


@dataclass(frozen=True, slots=True)
class CompileConfig:
    token: str | None
    fail_on_dropped_layers: bool

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> CompileConfig:
        return cls(
            token=_optional_str(raw.get("token"), "compile.token"),
            fail_on_dropped_layers=_bool(
                raw.get("fail_on_dropped_layers", False), "compile.fail_on_dropped_layers"
            ),
        )


@dataclass(frozen=True, slots=True)
class OutputConfig:
    indent: int
    sort_keys: bool
    accessor_placeholder: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> OutputConfig:
        indent = _int(raw.get("indent", 2), "output.indent")
        if indent < 0:
            raise ValueError("output.indent must be >= 0")
        return cls(
            indent=indent,
            sort_keys=_bool(raw.get("sort_keys", True), "output.sort_keys"),
            accessor_placeholder=_str(
                raw.get("accessor_placeholder", "<accessor>"), "output.accessor_placeholder"
            ),
        )


@dataclass(frozen=True, slots=True)
class AppConfig:
    source_path: Path | None
    paths: PathsConfig
    compile: CompileConfig
    output: OutputConfig

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path) -> AppConfig:
        root_dir = source_path.parent.resolve()
        return cls(
            source_path=source_path.resolve(),
            paths=PathsConfig.from_mapping(_optional_mapping(raw.get("paths"), "paths"), root_dir),
            compile=CompileConfig.from_mapping(
                _optional_mapping(raw.get("compile"), "compile")
            ),
            output=OutputConfig.from_mapping(_optional_mapping(raw.get("output"), "output")),
        )

    @classmethod
    def default(cls, root_dir: Path) -> AppConfig:
        """Settings used when no config file is present."""
        return cls(
            source_path=None,
            paths=PathsConfig.from_mapping({}, root_dir.resolve()),
            compile=CompileConfig.from_mapping({}),
            output=OutputConfig.from_mapping({}),
        )


def load_config(path: str | Path) -> AppConfig:
    """Load and validate the YAML config file into typed settings."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return AppConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
