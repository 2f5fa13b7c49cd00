"""YUV to RGB conversion with fixed-point lookup tables."""

from __future__ import annotations

from typing import NamedTuple

__all__ = ["yuv_to_rgb", "yuyv_to_rgb"]


class _Row(NamedTuple):
    y: int
    v_r: int
    v_g: int
    u_g: int
    u_b: int


def _scaled(coefficient: int, offset: int) -> int:
    """coefficient/1000 * offset, truncated toward zero."""
    product = coefficient * offset
    magnitude = abs(product) // 1000
    return -magnitude if product < 0 else magnitude


def _build_table() -> tuple[_Row, ...]:
    return tuple(
        _Row(
            y=_scaled(1164, i - 16),
            v_r=_scaled(1596, i - 128),
            v_g=_scaled(-391, i - 128),
            u_g=_scaled(-813, i - 128),
            u_b=_scaled(2018, i - 128),
        )
        for i in range(256)
    )


_TABLE = _build_table()


def _clamp(value: int) -> int:
    return 0 if value < 0 else 255 if value > 255 else value


def _check(name: str, value: int) -> None:
    if not 0 <= value <= 255:
        raise ValueError(f"{name} must be in 0..255, got {value}")


def yuv_to_rgb(y: int, u: int, v: int) -> tuple[int, int, int]:
    """Convert one Y, U, V sample triple to an (r, g, b) tuple."""
    _check("y", y)
    _check("u", u)
    _check("v", v)
    luma = _TABLE[y].y
    r = luma + _TABLE[v].v_r
    g = luma + _TABLE[u].u_g + _TABLE[v].v_g
    b = luma + _TABLE[u].u_b
    return _clamp(r), _clamp(g), _clamp(b)


def yuyv_to_rgb(data: bytes) -> bytes:
    """Convert packed YUYV bytes to packed RGB888 bytes.

    Every 4 input bytes (Y0 U Y1 V) give two pixels; a trailing
    incomplete group is ignored.
    """
    out = bytearray()
    usable = len(data) - len(data) % 4
    view = memoryview(data)[:usable]
    for y0, u, y1, v in zip(*(iter(view),) * 4):
        out.extend(yuv_to_rgb(y0, u, v))
        out.extend(yuv_to_rgb(y1, u, v))
    return bytes(out)