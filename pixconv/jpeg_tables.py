"""Baseline JPEG building blocks: colour conversion, DCT, Huffman and quantisation tables."""

from __future__ import annotations

from collections.abc import Sequence
from typing import NamedTuple

__all__ = [
    "ZIGZAG",
    "STD_LUM_QUANT",
    "STD_CHROMA_QUANT",
    "DC_LUM_BITS",
    "DC_LUM_VALUES",
    "AC_LUM_BITS",
    "AC_LUM_VALUES",
    "DC_CHROMA_BITS",
    "DC_CHROMA_VALUES",
    "AC_CHROMA_BITS",
    "AC_CHROMA_VALUES",
    "HuffmanTable",
    "rgb_to_ycc",
    "rgb_to_y",
    "y_to_ycc",
    "forward_dct",
    "huffman_codes",
    "quant_table",
    "quantize",
]

ZIGZAG: tuple[int, ...] = (
    0, 1, 8, 16, 9, 2, 3, 10, 17, 24, 32, 25, 18, 11, 4, 5,
    12, 19, 26, 33, 40, 48, 41, 34, 27, 20, 13, 6, 7, 14, 21, 28,
    35, 42, 49, 56, 57, 50, 43, 36, 29, 22, 15, 23, 30, 37, 44, 51,
    58, 59, 52, 45, 38, 31, 39, 46, 53, 60, 61, 54, 47, 55, 62, 63,
)

# Quantisation tables are stored in zig-zag order, as written to a DQT segment.
STD_LUM_QUANT: tuple[int, ...] = (
    16, 11, 12, 14, 12, 10, 16, 14, 13, 14, 18, 17, 16, 19, 24, 40,
    26, 24, 22, 22, 24, 49, 35, 37, 29, 40, 58, 51, 61, 60, 57, 51,
    56, 55, 64, 72, 92, 78, 64, 68, 87, 69, 55, 56, 80, 109, 81, 87,
    95, 98, 103, 104, 103, 62, 77, 113, 121, 112, 100, 120, 92, 101, 103, 99,
)
STD_CHROMA_QUANT: tuple[int, ...] = (
    17, 18, 18, 24, 21, 24, 47, 26, 26, 47, 99, 66, 56, 66, 99, 99,
) + (99,) * 48

# Huffman "bits" tables have 17 entries; index 0 is unused.
DC_LUM_BITS: tuple[int, ...] = (0, 0, 1, 5, 1, 1, 1, 1, 1, 1, 0, 0, 0, 0, 0, 0, 0)
DC_LUM_VALUES: tuple[int, ...] = tuple(range(12))
AC_LUM_BITS: tuple[int, ...] = (0, 0, 2, 1, 3, 3, 2, 4, 3, 5, 5, 4, 4, 0, 0, 1, 0x7D)
AC_LUM_VALUES: tuple[int, ...] = (
    0x01, 0x02, 0x03, 0x00, 0x04, 0x11, 0x05, 0x12, 0x21, 0x31, 0x41, 0x06, 0x13, 0x51, 0x61, 0x07,
    0x22, 0x71, 0x14, 0x32, 0x81, 0x91, 0xA1, 0x08, 0x23, 0x42, 0xB1, 0xC1, 0x15, 0x52, 0xD1, 0xF0,
    0x24, 0x33, 0x62, 0x72, 0x82, 0x09, 0x0A, 0x16, 0x17, 0x18, 0x19, 0x1A, 0x25, 0x26, 0x27, 0x28,
    0x29, 0x2A, 0x34, 0x35, 0x36, 0x37, 0x38, 0x39, 0x3A, 0x43, 0x44, 0x45, 0x46, 0x47, 0x48, 0x49,
    0x4A, 0x53, 0x54, 0x55, 0x56, 0x57, 0x58, 0x59, 0x5A, 0x63, 0x64, 0x65, 0x66, 0x67, 0x68, 0x69,
    0x6A, 0x73, 0x74, 0x75, 0x76, 0x77, 0x78, 0x79, 0x7A, 0x83, 0x84, 0x85, 0x86, 0x87, 0x88, 0x89,
    0x8A, 0x92, 0x93, 0x94, 0x95, 0x96, 0x97, 0x98, 0x99, 0x9A, 0xA2, 0xA3, 0xA4, 0xA5, 0xA6, 0xA7,
    0xA8, 0xA9, 0xAA, 0xB2, 0xB3, 0xB4, 0xB5, 0xB6, 0xB7, 0xB8, 0xB9, 0xBA, 0xC2, 0xC3, 0xC4, 0xC5,
    0xC6, 0xC7, 0xC8, 0xC9, 0xCA, 0xD2, 0xD3, 0xD4, 0xD5, 0xD6, 0xD7, 0xD8, 0xD9, 0xDA, 0xE1, 0xE2,
    0xE3, 0xE4, 0xE5, 0xE6, 0xE7, 0xE8, 0xE9, 0xEA, 0xF1, 0xF2, 0xF3, 0xF4, 0xF5, 0xF6, 0xF7, 0xF8,
    0xF9, 0xFA,
)
DC_CHROMA_BITS: tuple[int, ...] = (0, 0, 3, 1, 1, 1, 1, 1, 1, 1, 1, 1, 0, 0, 0, 0, 0)
DC_CHROMA_VALUES: tuple[int, ...] = tuple(range(12))
AC_CHROMA_BITS: tuple[int, ...] = (0, 0, 2, 1, 2, 4, 4, 3, 4, 7, 5, 4, 4, 0, 1, 2, 0x77)
AC_CHROMA_VALUES: tuple[int, ...] = (
    0x00, 0x01, 0x02, 0x03, 0x11, 0x04, 0x05, 0x21, 0x31, 0x06, 0x12, 0x41, 0x51, 0x07, 0x61, 0x71,
    0x13, 0x22, 0x32, 0x81, 0x08, 0x14, 0x42, 0x91, 0xA1, 0xB1, 0xC1, 0x09, 0x23, 0x33, 0x52, 0xF0,
    0x15, 0x62, 0x72, 0xD1, 0x0A, 0x16, 0x24, 0x34, 0xE1, 0x25, 0xF1, 0x17, 0x18, 0x19, 0x1A, 0x26,
    0x27, 0x28, 0x29, 0x2A, 0x35, 0x36, 0x37, 0x38, 0x39, 0x3A, 0x43, 0x44, 0x45, 0x46, 0x47, 0x48,
    0x49, 0x4A, 0x53, 0x54, 0x55, 0x56, 0x57, 0x58, 0x59, 0x5A, 0x63, 0x64, 0x65, 0x66, 0x67, 0x68,
    0x69, 0x6A, 0x73, 0x74, 0x75, 0x76, 0x77, 0x78, 0x79, 0x7A, 0x82, 0x83, 0x84, 0x85, 0x86, 0x87,
    0x88, 0x89, 0x8A, 0x92, 0x93, 0x94, 0x95, 0x96, 0x97, 0x98, 0x99, 0x9A, 0xA2, 0xA3, 0xA4, 0xA5,
    0xA6, 0xA7, 0xA8, 0xA9, 0xAA, 0xB2, 0xB3, 0xB4, 0xB5, 0xB6, 0xB7, 0xB8, 0xB9, 0xBA, 0xC2, 0xC3,
    0xC4, 0xC5, 0xC6, 0xC7, 0xC8, 0xC9, 0xCA, 0xD2, 0xD3, 0xD4, 0xD5, 0xD6, 0xD7, 0xD8, 0xD9, 0xDA,
    0xE2, 0xE3, 0xE4, 0xE5, 0xE6, 0xE7, 0xE8, 0xE9, 0xEA, 0xF2, 0xF3, 0xF4, 0xF5, 0xF6, 0xF7, 0xF8,
    0xF9, 0xFA,
)

_YR, _YG, _YB = 19595, 38470, 7471
_CB_R, _CB_G, _CB_B = -11059, -21709, 32768
_CR_R, _CR_G, _CR_B = 32768, -27439, -5329

_CONST_BITS = 13
_ROW_BITS = 2


class HuffmanTable(NamedTuple):
    """Code and code length for each of the 256 possible symbols."""

    codes: list[int]
    sizes: list[int]


def _clamp(value: int) -> int:
    return 0 if value < 0 else 255 if value > 255 else value


def _triples(pixels: bytes) -> zip:
    if len(pixels) % 3:
        raise ValueError(f"RGB data length {len(pixels)} is not a multiple of 3")
    it = iter(pixels)
    return zip(it, it, it)


def rgb_to_ycc(pixels: bytes) -> bytes:
    """Convert packed RGB888 bytes to packed YCbCr bytes."""
    out = bytearray()
    for r, g, b in _triples(pixels):
        out.append((r * _YR + g * _YG + b * _YB + 32768) >> 16)
        out.append(_clamp(128 + ((r * _CB_R + g * _CB_G + b * _CB_B + 32768) >> 16)))
        out.append(_clamp(128 + ((r * _CR_R + g * _CR_G + b * _CR_B + 32768) >> 16)))
    return bytes(out)


def rgb_to_y(pixels: bytes) -> bytes:
    """Convert packed RGB888 bytes to one luminance byte per pixel."""
    return bytes(
        (r * _YR + g * _YG + b * _YB + 32768) >> 16 for r, g, b in _triples(pixels)
    )


def y_to_ycc(pixels: bytes) -> bytes:
    """Expand luminance bytes to YCbCr with neutral chroma."""
    out = bytearray()
    for y in pixels:
        out += bytes((y, 128, 128))
    return bytes(out)


def _int16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


def _mul(var: int, constant: int) -> int:
    return _int16(var) * constant


def _descale(x: int, n: int) -> int:
    return (x + (1 << (n - 1))) >> n


def _dct1d(s: Sequence[int]) -> tuple[int, ...]:
    s0, s1, s2, s3, s4, s5, s6, s7 = s
    t0, t7 = s0 + s7, s0 - s7
    t1, t6 = s1 + s6, s1 - s6
    t2, t5 = s2 + s5, s2 - s5
    t3, t4 = s3 + s4, s3 - s4
    t10, t13 = t0 + t3, t0 - t3
    t11, t12 = t1 + t2, t1 - t2
    u1 = _mul(t12 + t13, 4433)
    out2 = u1 + _mul(t13, 6270)
    out6 = u1 + _mul(t12, -15137)
    u1 = t4 + t7
    u2, u3, u4 = t5 + t6, t4 + t6, t5 + t7
    z5 = _mul(u3 + u4, 9633)
    t4, t5 = _mul(t4, 2446), _mul(t5, 16819)
    t6, t7 = _mul(t6, 25172), _mul(t7, 12299)
    u1, u2 = _mul(u1, -7373), _mul(u2, -20995)
    u3, u4 = _mul(u3, -16069) + z5, _mul(u4, -3196) + z5
    return (
        t10 + t11,
        t7 + u1 + u4,
        out2,
        t6 + u2 + u3,
        t10 - t11,
        t5 + u2 + u4,
        out6,
        t4 + u1 + u3,
    )


def forward_dct(block: Sequence[int]) -> list[int]:
    """Integer forward DCT of an 8x8 block of level-shifted samples (row-major)."""
    if len(block) != 64:
        raise ValueError(f"a DCT block has 64 samples, got {len(block)}")
    row_shift = _CONST_BITS - _ROW_BITS
    rows: list[int] = []
    for r in range(0, 64, 8):
        s = _dct1d(block[r:r + 8])
        rows.extend(
            v << _ROW_BITS if k in (0, 4) else _descale(v, row_shift)
            for k, v in enumerate(s)
        )
    col_shift = _CONST_BITS + _ROW_BITS + 3
    result = [0] * 64
    for c in range(8):
        s = _dct1d(rows[c::8])
        for k, v in enumerate(s):
            result[c + 8 * k] = (
                _descale(v, _ROW_BITS + 3) if k in (0, 4) else _descale(v, col_shift)
            )
    return result


def huffman_codes(bits: Sequence[int], values: Sequence[int]) -> HuffmanTable:
    """Build canonical Huffman codes from JPEG BITS (17 entries) and HUFFVAL lists."""
    if len(bits) != 17:
        raise ValueError(f"bits table must have 17 entries, got {len(bits)}")
    lengths = [length for length in range(1, 17) for _ in range(bits[length])]
    if len(values) < len(lengths):
        raise ValueError(
            f"{len(lengths)} codes declared but only {len(values)} values given"
        )
    codes = [0] * 256
    sizes = [0] * 256
    code = 0
    previous = lengths[0] if lengths else 0
    for value, length in zip(values, lengths):
        code <<= length - previous
        codes[value] = code
        sizes[value] = length
        code += 1
        previous = length
    return HuffmanTable(codes, sizes)


def quant_table(base: Sequence[int], quality: int) -> list[int]:
    """Scale a base quantisation table for a quality of 1..100."""
    if not 1 <= quality <= 100:
        raise ValueError(f"quality must be in 1..100, got {quality}")
    scale = 5000 // quality if quality < 50 else 200 - quality * 2
    return [min(max((q * scale + 50) // 100, 1), 255) for q in base]


def quantize(block: Sequence[int], table: Sequence[int]) -> list[int]:
    """Quantise DCT coefficients, returning them in zig-zag order.

    ``table`` is indexed by zig-zag position, like the DQT tables.
    """
    if len(block) != 64 or len(table) != 64:
        raise ValueError("block and table must both have 64 entries")
    out: list[int] = []
    for index, q in zip(ZIGZAG, table):
        sample = block[index]
        magnitude = abs(sample) + (q >> 1)
        level = 0 if magnitude < q else magnitude // q
        out.append(-level if sample < 0 else level)
    return out