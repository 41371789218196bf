"""Tests for structural validation of map documents."""

from __future__ import annotations

from mapcompiler.models import Report
from mapcompiler.parse_map import CompileReport
from mapcompiler.validate import ValidationReport, Validator, format_report_lines


def test_valid_document(make_document, make_layer) -> None:
    report = Validator(make_document([make_layer("a"), make_layer("b", "tileset")])).run()

    assert report.ok
    assert report.warnings == []
    assert "Found 2 layers" in report.infos
    assert list(format_report_lines(report))[-1] == "[OK] Validation completed with no errors."


def test_wrong_version(make_document, make_layer) -> None:
    report = Validator(make_document([make_layer("a")], version="v0")).run()

    assert not report.ok
    assert "v0" in report.errors[0]


def test_missing_kepler_config() -> None:
    report = Validator({"datasets": []}).run()
    assert report.errors == ["Missing 'keplerMapConfig' mapping"]


def test_layer_problems(make_document, make_layer) -> None:
    doc = make_document(
        [
            make_layer("unknown-type", "arc"),
            make_layer("lost", data_id="nowhere"),
            make_layer("empty", data_id="pending"),
            {"id": "no-config", "type": "point"},
            "junk",
        ],
        datasets=[
            {"id": "cities", "data": []},
            {"id": "pending"},
        ],
    )

    report = Validator(doc).run()

    assert report.warnings == ["Layer unknown-type: unsupported type 'arc' will be skipped"]
    assert report.errors == [
        "Layer lost: no dataset matching dataId 'nowhere'",
        "Layer empty: no data loaded for dataset 'pending'",
        "Layer no-config: missing 'config' mapping",
        "layers[4] is not a mapping",
    ]
    lines = list(format_report_lines(report))
    assert any(line.startswith("[WARN]") for line in lines)
    assert lines[-1].startswith("[ERROR]")


def test_duplicate_and_malformed_datasets(make_document, make_layer) -> None:
    duplicated = make_document(
        [make_layer("a")],
        datasets=[{"id": "cities", "data": []}, {"id": "cities", "data": []}],
    )
    malformed = make_document([make_layer("a")], datasets=[{"providerId": "x"}])

    assert "appears 2 times" in Validator(duplicated).run().warnings[0]
    malformed_report = Validator(malformed).run()
    assert malformed_report.errors[0].startswith("Failed parsing datasets")


def test_reports_share_one_message_shape() -> None:
    validation = ValidationReport()
    compile_report = CompileReport()

    for report in (validation, compile_report):
        assert isinstance(report, Report)
        report.add_warning("careful")
        assert report.ok
        report.add_error("broken")
        assert not report.ok

    assert compile_report.dropped == 0
    assert list(format_report_lines(validation))[-1] == "[ERROR] broken"
