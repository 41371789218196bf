"""Tests for scale functions and color helpers."""

from __future__ import annotations

import pytest

from mapcompiler import scales
from mapcompiler.colors import UNKNOWN_COLOR, hex_to_rgba, interpolate_rgb, to_rgba
from mapcompiler.scales import SCALE_FUNCS, create_scale


def test_all_scale_types_are_registered() -> None:
    assert set(SCALE_FUNCS) == {
        "linear",
        "log",
        "sqrt",
        "ordinal",
        "point",
        "quantile",
        "quantize",
        "custom",
        "identity",
    }


def test_unknown_scale_type() -> None:
    with pytest.raises(ValueError, match="bogus"):
        create_scale("bogus")


def test_linear_numeric_interpolation() -> None:
    scale = create_scale("linear").set_domain([0, 10]).set_range([100, 200])
    assert scale(5) == pytest.approx(150)
    assert scale(0) == pytest.approx(100)
    assert scale("five") is None


def test_linear_polylinear_segments() -> None:
    scale = create_scale("linear").set_domain([0, 10, 100]).set_range([0, 1, 2])
    assert scale(5) == pytest.approx(0.5)
    assert scale(55) == pytest.approx(1.5)


def test_linear_color_interpolation() -> None:
    scale = create_scale("linear").set_domain([0, 1]).set_range(["#000000", "#ffffff"])
    assert scale(0.5) == [128, 128, 128, 255]


def test_zero_width_domain_returns_midpoint() -> None:
    scale = create_scale("linear").set_domain([3, 3]).set_range([0, 10])
    assert scale(3) == pytest.approx(5)


def test_log_scale() -> None:
    scale = create_scale("log").set_domain([1, 100]).set_range([0, 2]).set_unknown(-1)
    assert scale(10) == pytest.approx(1)
    assert scale(0) == -1


def test_sqrt_scale() -> None:
    scale = create_scale("sqrt").set_domain([0, 100]).set_range([0, 10])
    assert scale(25) == pytest.approx(5)


def test_quantile_scale() -> None:
    scale = create_scale("quantile").set_domain([1, 2, 3, 4, 5, 6, 7, 8]).set_range(["a", "b", "c", "d"])
    assert [scale(v) for v in (1, 3, 5, 8)] == ["a", "b", "c", "d"]


def test_quantile_thresholds_computed_once_per_domain(monkeypatch) -> None:
    calls = []
    original = scales._quantile_sorted

    def counting(values, p):
        calls.append(p)
        return original(values, p)

    monkeypatch.setattr(scales, "_quantile_sorted", counting)
    scale = create_scale("quantile").set_domain(range(10_000)).set_range(["a", "b", "c", "d"])

    assert [scale(v) for v in range(0, 10_000, 10)][-1] == "d"
    assert len(calls) == 3

    scale.set_range(["low", "high"])
    assert scale(0) == "low"
    assert scale(9_999) == "high"
    assert len(calls) == 4


def test_quantize_scale() -> None:
    scale = create_scale("quantize").set_domain([0, 100]).set_range(["low", "high"])
    assert scale(49) == "low"
    assert scale(50) == "high"
    assert scale(1000) == "high"


def test_threshold_scale() -> None:
    scale = create_scale("custom").set_domain([10, 20]).set_range(["a", "b", "c"]).set_unknown("?")
    assert [scale(v) for v in (5, 10, 25)] == ["a", "b", "c"]
    scale.set_range(["a", "b"])
    assert scale(25) == "?"


def test_ordinal_scale() -> None:
    scale = create_scale("ordinal").set_domain(["x", "y"]).set_range(["red", "blue"]).set_unknown("grey")
    assert scale("y") == "blue"
    assert scale("z") == "grey"


def test_point_scale() -> None:
    scale = create_scale("point").set_domain(["a", "b", "c"]).set_range([0, 10])
    assert [scale(v) for v in "abc"] == [pytest.approx(0), pytest.approx(5), pytest.approx(10)]
    assert scale("d") is None


def test_identity_scale() -> None:
    scale = create_scale("identity").set_unknown("n/a")
    assert scale(42) == 42
    assert scale(None) == "n/a"


def test_color_parsing() -> None:
    assert hex_to_rgba("#ff8000") == [255, 128, 0, 255]
    assert to_rgba("#ff800080") == [255, 128, 0, 128]
    assert to_rgba("red") == [255, 0, 0, 255]
    assert to_rgba([1, 2, 3]) == [1, 2, 3, 255]
    assert to_rgba(UNKNOWN_COLOR) == [134, 141, 145, 255]
    with pytest.raises(ValueError):
        to_rgba("not-a-color")
    with pytest.raises(ValueError):
        to_rgba(42)


def test_interpolate_rgb() -> None:
    assert interpolate_rgb([0, 0, 0], [200, 100, 50], 0.5) == [100, 50, 25, 255]
