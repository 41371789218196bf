"""CLI entrypoint for the map layer compiler."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Sequence

from .config import AppConfig, load_config
from .datasets import attach_dataset_payloads
from .errors import MapConfigError
from .parse_map import CompileReport, format_report_lines, parse_map
from .serialize import result_to_jsonable
from .util import ensure_directories, read_json, setup_logging, write_json
from .validate import Validator
from .validate import format_report_lines as format_validation_lines

LOGGER = logging.getLogger("mapcompiler.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mapcompiler",
        description="Compile v1 map configs into renderer layer descriptors.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("map_path", metavar="MAP.json", help="Path to the map document.")
        p.add_argument(
            "--config",
            default=None,
            help="Path to YAML config. Built-in defaults are used when omitted.",
        )
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")

    compile_p = subparsers.add_parser("compile", help="Compile a map into layer descriptors.")
    add_common(compile_p)
    compile_p.add_argument(
        "--output",
        default=None,
        help="Output JSON path. Defaults to <output_dir>/<map name>.layers.json.",
    )
    compile_p.add_argument(
        "--omit-data",
        action="store_true",
        help="Leave dataset payloads out of the written layer props.",
    )

    validate_p = subparsers.add_parser("validate", help="Check a map document's structure.")
    add_common(validate_p)

    return parser


def _load_and_setup(args: argparse.Namespace) -> AppConfig:
    if args.config is None:
        cfg = AppConfig.default(Path.cwd())
    else:
        cfg = load_config(args.config)
    setup_logging(cfg.paths.logs_dir / "mapcompiler.log", verbose=args.verbose)
    ensure_directories(cfg.paths.build_directories)
    return cfg


def _load_document(cfg: AppConfig, map_path: Path) -> dict[str, Any] | None:
    try:
        document = read_json(map_path)
    except (OSError, ValueError) as exc:
        LOGGER.error("Failed reading map document %s: %s", map_path, exc)
        return None
    if not isinstance(document, dict):
        LOGGER.error("Map document %s must be a JSON object", map_path)
        return None
    return attach_dataset_payloads(document, cfg.paths.datasets_dir)


def _run_validate(cfg: AppConfig, map_path: Path) -> int:
    document = _load_document(cfg, map_path)
    if document is None:
        return 1
    report = Validator(document).run()
    for line in format_validation_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _run_compile(
    cfg: AppConfig,
    map_path: Path,
    *,
    output: str | None,
    omit_data: bool,
) -> int:
    document = _load_document(cfg, map_path)
    if document is None:
        return 1

    report = CompileReport()
    try:
        result = parse_map(document, token=cfg.compile.token, report=report)
    except MapConfigError as exc:
        LOGGER.error("Cannot compile %s: %s", map_path, exc)
        return 1
    for line in format_report_lines(report):
        LOGGER.info(line)

    output_path = Path(output) if output else cfg.paths.output_dir / f"{map_path.stem}.layers.json"
    payload = result_to_jsonable(
        result,
        placeholder=cfg.output.accessor_placeholder,
        include_data=not omit_data,
    )
    write_json(output_path, payload, indent=cfg.output.indent, sort_keys=cfg.output.sort_keys)
    LOGGER.info("Layer descriptors written to %s", output_path)

    if cfg.compile.fail_on_dropped_layers and report.dropped:
        LOGGER.error("%d layers were dropped during compilation.", report.dropped)
        return 1
    return 0


def _dispatch(args: argparse.Namespace) -> int:
    cfg = _load_and_setup(args)
    command = str(args.command)
    map_path = Path(args.map_path)
    if command == "compile":
        return _run_compile(cfg, map_path, output=args.output, omit_data=bool(args.omit_data))
    if command == "validate":
        return _run_validate(cfg, map_path)
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    raise SystemExit(main())
