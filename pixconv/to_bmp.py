"""Convert raw camera frames to BGR888 pixels and BMP files."""

from __future__ import annotations

import struct

from pixconv.formats import ConversionError, PixFormat
from pixconv.yuv import yuv_to_rgb

__all__ = ["BMP_HEADER_LEN", "bmp_header", "to_rgb888", "to_bmp"]

BMP_HEADER_LEN = 54
_DIB_HEADER_LEN = 40
_PIXELS_PER_METER = 0x0B13  # 72 DPI
_GRAY_PALETTE = b"".join(bytes((i, i, i, 0)) for i in range(256))

_HEADER = struct.Struct("<2sIIIIiiHHIIIIII")


def bmp_header(width: int, height: int, bits_per_pixel: int, palette_size: int) -> bytes:
    """Build the 54-byte file and info header of a top-down, uncompressed BMP."""
    if width < 0 or height < 0:
        raise ConversionError(f"invalid image size {width}x{height}")
    image_size = width * height * bits_per_pixel // 8
    return _HEADER.pack(
        b"BM",
        image_size + BMP_HEADER_LEN + palette_size,
        0,
        BMP_HEADER_LEN + palette_size,
        _DIB_HEADER_LEN,
        width,
        -height,
        1,
        bits_per_pixel,
        0,
        image_size,
        _PIXELS_PER_METER,
        _PIXELS_PER_METER,
        0,
        0,
    )


def _rgb565_to_bgr(src: bytes) -> bytes:
    out = bytearray()
    for hi, lo in zip(src[0::2], src[1::2]):
        out += bytes(((lo & 0x1F) << 3, (hi & 0x07) << 5 | (lo & 0xE0) >> 3, hi & 0xF8))
    return bytes(out)


def _yuyv_to_bgr(src: bytes) -> bytes:
    out = bytearray()
    usable = len(src) - len(src) % 4
    it = iter(src[:usable])
    for y0, u, y1, v in zip(it, it, it, it):
        r, g, b = yuv_to_rgb(y0, u, v)
        out += bytes((b, g, r))
        r, g, b = yuv_to_rgb(y1, u, v)
        out += bytes((b, g, r))
    return bytes(out)


def to_rgb888(src: bytes, fmt: PixFormat) -> bytes:
    """Convert a whole source buffer to three bytes per pixel, blue first.

    JPEG sources are not supported and raise ConversionError.
    """
    if fmt is PixFormat.JPEG:
        raise ConversionError("JPEG decoding is not supported")
    if fmt is PixFormat.RGB888:
        return bytes(src)
    if fmt is PixFormat.RGB565:
        return _rgb565_to_bgr(src)
    if fmt is PixFormat.GRAYSCALE:
        return bytes(b for value in src for b in (value, value, value))
    return _yuyv_to_bgr(src)


def to_bmp(src: bytes, width: int, height: int, fmt: PixFormat) -> bytes:
    """Build a BMP file from a raw frame.

    Grayscale frames become 8-bit images with a grey palette; the other
    formats become 24-bit images. Rows are written top to bottom.
    """
    if fmt is PixFormat.JPEG:
        raise ConversionError("JPEG decoding is not supported")
    if width < 0 or height < 0:
        raise ConversionError(f"invalid image size {width}x{height}")
    pix_count = width * height
    needed = pix_count * fmt.bytes_per_pixel()
    if len(src) < needed:
        raise ConversionError(f"source holds {len(src)} bytes, need {needed}")
    data = bytes(src[:needed])

    if fmt is PixFormat.GRAYSCALE:
        header = bmp_header(width, height, 8, len(_GRAY_PALETTE))
        return header + _GRAY_PALETTE + data

    pixels = to_rgb888(data, fmt).ljust(pix_count * 3, b"\x00")
    return bmp_header(width, height, 24, 0) + pixels