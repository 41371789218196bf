"""Scale functions mapping data values onto colors and sizes.

Each scale is a small callable object with a `domain`, a `range` and an
`unknown` value returned for inputs it cannot place. Continuous scales
interpolate numbers numerically and anything else as RGB colors.
"""

from __future__ import annotations

import math
from bisect import bisect_right
from typing import Any, Callable, Sequence

from .colors import interpolate_rgb


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def _interpolate(start: Any, end: Any, t: float) -> Any:
    if _is_number(start) and _is_number(end):
        return start + (end - start) * t
    return interpolate_rgb(start, end, t)


class Scale:
    kind = "base"

    def __init__(self) -> None:
        self.domain: list[Any] = []
        self.range: list[Any] = []
        self.unknown: Any = None

    def set_domain(self, values: Sequence[Any]) -> Scale:
        self.domain = list(values)
        return self

    def set_range(self, values: Sequence[Any] | None) -> Scale:
        self.range = list(values) if values is not None else []
        return self

    def set_unknown(self, value: Any) -> Scale:
        self.unknown = value
        return self

    def __call__(self, value: Any) -> Any:  # pragma: no cover - abstract
        raise NotImplementedError


class ContinuousScale(Scale):
    kind = "linear"

    def __init__(self) -> None:
        super().__init__()
        self.domain = [0, 1]
        self.range = [0, 1]

    def transform(self, value: float) -> float:
        return value

    def __call__(self, value: Any) -> Any:
        if not _is_number(value) or len(self.domain) < 2 or len(self.range) < 2:
            return self.unknown
        try:
            x = self.transform(float(value))
            stops = [self.transform(float(d)) for d in self.domain]
        except (TypeError, ValueError):
            return self.unknown
        pieces = min(len(stops), len(self.range)) - 1
        if pieces > 1:
            idx = min(max(bisect_right(stops, x, 1, pieces) - 1, 0), pieces - 1)
        else:
            idx = 0
        t0, t1 = stops[idx], stops[idx + 1]
        t = (x - t0) / (t1 - t0) if t1 != t0 else 0.5
        return _interpolate(self.range[idx], self.range[idx + 1], t)


class LinearScale(ContinuousScale):
    kind = "linear"


class LogScale(ContinuousScale):
    kind = "log"

    def __init__(self) -> None:
        super().__init__()
        self.domain = [1, 10]

    def transform(self, value: float) -> float:
        if value <= 0:
            raise ValueError("log scale requires positive values")
        return math.log10(value)


class SqrtScale(ContinuousScale):
    kind = "sqrt"

    def transform(self, value: float) -> float:
        return math.copysign(math.sqrt(abs(value)), value)


class OrdinalScale(Scale):
    kind = "ordinal"

    def __call__(self, value: Any) -> Any:
        if not self.range:
            return self.unknown
        for idx, item in enumerate(self.domain):
            if item == value:
                return self.range[idx % len(self.range)]
        return self.unknown


class PointScale(Scale):
    """Evenly spaced positions across a two-value numeric range."""

    kind = "point"

    def __init__(self) -> None:
        super().__init__()
        self.range = [0, 1]

    def __call__(self, value: Any) -> Any:
        if value not in self.domain or len(self.range) < 2:
            return self.unknown
        start, stop = float(self.range[0]), float(self.range[1])
        n = len(self.domain)
        step = (stop - start) / max(1, n - 1)
        offset = (stop - start - step * (n - 1)) * 0.5
        return start + offset + step * self.domain.index(value)


class QuantileScale(Scale):
    """Quantile breaks of the domain; thresholds are cached until it changes."""

    kind = "quantile"

    def __init__(self) -> None:
        super().__init__()
        self._cached_thresholds: list[float] | None = None

    def set_domain(self, values: Sequence[Any]) -> Scale:
        self._cached_thresholds = None
        return super().set_domain(values)

    def set_range(self, values: Sequence[Any] | None) -> Scale:
        self._cached_thresholds = None
        return super().set_range(values)

    def _thresholds(self) -> list[float]:
        if self._cached_thresholds is None:
            values = sorted(float(v) for v in self.domain if _is_number(v))
            n = len(self.range)
            if not values or n == 0:
                self._cached_thresholds = []
            else:
                self._cached_thresholds = [_quantile_sorted(values, i / n) for i in range(1, n)]
        return self._cached_thresholds

    def __call__(self, value: Any) -> Any:
        if not _is_number(value) or not self.range:
            return self.unknown
        return self.range[bisect_right(self._thresholds(), float(value))]


class QuantizeScale(Scale):
    kind = "quantize"

    def __init__(self) -> None:
        super().__init__()
        self.domain = [0, 1]

    def __call__(self, value: Any) -> Any:
        if not _is_number(value) or not self.range or len(self.domain) < 2:
            return self.unknown
        x0, x1 = float(self.domain[0]), float(self.domain[-1])
        n = len(self.range)
        thresholds = [x0 + (x1 - x0) * (i + 1) / n for i in range(n - 1)]
        return self.range[bisect_right(thresholds, float(value))]


class ThresholdScale(Scale):
    """Custom breaks: `domain` holds ascending break values."""

    kind = "custom"

    def __call__(self, value: Any) -> Any:
        if not _is_number(value):
            return self.unknown
        idx = bisect_right(self.domain, value)
        if idx >= len(self.range):
            return self.unknown
        return self.range[idx]


class IdentityScale(Scale):
    kind = "identity"

    def __call__(self, value: Any) -> Any:
        return self.unknown if value is None else value


def _quantile_sorted(values: Sequence[float], p: float) -> float:
    h = (len(values) - 1) * p
    lo = math.floor(h)
    hi = min(lo + 1, len(values) - 1)
    return values[lo] + (values[hi] - values[lo]) * (h - lo)


SCALE_FUNCS: dict[str, Callable[[], Scale]] = {
    "linear": LinearScale,
    "log": LogScale,
    "sqrt": SqrtScale,
    "ordinal": OrdinalScale,
    "point": PointScale,
    "quantile": QuantileScale,
    "quantize": QuantizeScale,
    "custom": ThresholdScale,
    "identity": IdentityScale,
}


def create_scale(scale_type: str) -> Scale:
    try:
        factory = SCALE_FUNCS[scale_type]
    except KeyError:
        raise ValueError(f"Unsupported scale type: {scale_type!r}") from None
    return factory()
