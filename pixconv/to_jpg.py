"""Encode raw camera frames (RGB565, RGB888, YUYV, grayscale) as JPEG."""

from __future__ import annotations

from collections.abc import Callable

from pixconv.formats import ConversionError, PixFormat
from pixconv.jpeg_encoder import EncoderParams, JpegEncoder, Subsampling
from pixconv.yuv import yuyv_to_rgb

__all__ = ["convert_line", "encode_image", "to_jpeg_stream", "to_jpeg"]

# Largest JPEG kept by to_jpeg; anything beyond is dropped.
MAX_JPEG_SIZE = 128 * 1024

StreamCallback = Callable[[int, bytes], "int | None"]


def _rgb565_line(row: bytes) -> bytes:
    out = bytearray()
    for hi, lo in zip(row[0::2], row[1::2]):
        out += bytes((hi & 0xF8, (hi & 0x07) << 5 | (lo & 0xE0) >> 3, (lo & 0x1F) << 3))
    return bytes(out)


def _swap_red_blue(row: bytes) -> bytes:
    out = bytearray(row)
    out[0::3] = row[2::3]
    out[2::3] = row[0::3]
    return bytes(out)


def convert_line(src: bytes, fmt: PixFormat, width: int, line: int) -> bytes:
    """Return row ``line`` of ``src`` as encoder input: gray bytes or RGB triples.

    RGB888 sources are stored blue first and come out red first.
    """
    if fmt is PixFormat.JPEG:
        raise ConversionError("a JPEG source cannot be re-encoded line by line")
    if width < 1 or line < 0:
        raise ConversionError(f"invalid width {width} or line {line}")
    if fmt is PixFormat.YUV422 and width % 2:
        raise ConversionError("YUV422 rows need an even width")
    stride = width * fmt.bytes_per_pixel()
    start = line * stride
    row = bytes(src[start:start + stride])
    if len(row) != stride:
        raise ConversionError(
            f"source too short for line {line}: need {start + stride} bytes, have {len(src)}"
        )
    if fmt is PixFormat.GRAYSCALE:
        return row
    if fmt is PixFormat.RGB888:
        return _swap_red_blue(row)
    if fmt is PixFormat.RGB565:
        return _rgb565_line(row)
    return yuyv_to_rgb(row)


def encode_image(
    src: bytes,
    width: int,
    height: int,
    fmt: PixFormat,
    quality: int,
    sink: Callable[[bytes], "bool | None"],
) -> None:
    """Encode a whole frame, passing JPEG chunks to ``sink``.

    Quality is clamped to 1..100. Grayscale frames are encoded luminance
    only; the rest use 2x2 chroma subsampling.
    """
    if fmt is PixFormat.GRAYSCALE:
        channels, subsampling = 1, Subsampling.Y_ONLY
    else:
        channels, subsampling = 3, Subsampling.H2V2
    quality = min(max(quality, 1), 100)
    params = EncoderParams(quality=quality, subsampling=subsampling)
    encoder = JpegEncoder(sink, width, height, channels, params)
    for line in range(height):
        encoder.process_scanline(convert_line(src, fmt, width, line))
    encoder.finish()


def to_jpeg_stream(
    src: bytes,
    width: int,
    height: int,
    fmt: PixFormat,
    quality: int,
    callback: StreamCallback,
) -> int:
    """Encode a frame and hand the output to ``callback(index, data)``.

    ``callback`` returns how many bytes it took (``None`` means all of
    them); ``index`` advances by that amount. A final call with empty
    data marks the end. Returns the final index.
    """
    index = 0

    def sink(chunk: bytes) -> bool:
        nonlocal index
        taken = callback(index, chunk)
        index += len(chunk) if taken is None else taken
        return True

    encode_image(src, width, height, fmt, quality, sink)
    sink(b"")
    return index


def to_jpeg(src: bytes, width: int, height: int, fmt: PixFormat, quality: int) -> bytes:
    """Encode a frame and return the JPEG bytes, at most MAX_JPEG_SIZE of them."""
    buffer = bytearray()

    def sink(chunk: bytes) -> None:
        room = MAX_JPEG_SIZE - len(buffer)
        if room > 0:
            buffer.extend(chunk[:room])

    encode_image(src, width, height, fmt, quality, sink)
    return bytes(buffer)