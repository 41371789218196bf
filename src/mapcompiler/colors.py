"""Color parsing and interpolation."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Sequence

from PIL import ImageColor

UNKNOWN_COLOR = "#868d91"

RGBA = list[int]


@lru_cache(maxsize=1024)
def _parse_color_string(value: str) -> tuple[int, int, int, int]:
    parsed = ImageColor.getrgb(value)
    if len(parsed) == 3:
        r, g, b = parsed
        return (r, g, b, 255)
    r, g, b, a = parsed
    return (r, g, b, a)


def to_rgba(value: Any) -> RGBA:
    """Normalize a color string or RGB(A) sequence to `[r, g, b, a]`.

    Raises ValueError for values Pillow cannot parse.
    """
    if isinstance(value, str):
        return list(_parse_color_string(value.strip()))
    if isinstance(value, Sequence) and len(value) in (3, 4):
        channels = [_clamp_channel(v) for v in value]
        if len(channels) == 3:
            channels.append(255)
        return channels
    raise ValueError(f"Unsupported color value: {value!r}")


def hex_to_rgba(value: str) -> RGBA:
    return to_rgba(value)


def interpolate_rgb(start: Any, end: Any, t: float) -> RGBA:
    """Linear RGB interpolation; `t` outside [0, 1] is clamped per channel."""
    a = to_rgba(start)
    b = to_rgba(end)
    return [_clamp_channel(a[i] + (b[i] - a[i]) * t) for i in range(4)]


def _clamp_channel(value: float) -> int:
    return max(0, min(255, int(round(float(value)))))
