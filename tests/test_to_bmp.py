import struct

import pytest
from hypothesis import given
from hypothesis import strategies as st

from pixconv.formats import ConversionError, PixFormat
from pixconv.to_bmp import BMP_HEADER_LEN, bmp_header, to_bmp, to_rgb888
from pixconv.yuv import yuv_to_rgb

HEADER = struct.Struct("<2sIIIIiiHHIIIIII")


def test_header_fields_for_rgb():
    fields = HEADER.unpack(bmp_header(4, 3, 24, 0))
    assert fields[0] == b"BM"
    assert fields[1] == BMP_HEADER_LEN + 4 * 3 * 3
    assert fields[3] == BMP_HEADER_LEN
    assert fields[4] == 40
    assert fields[5:7] == (4, -3)
    assert fields[7:9] == (1, 24)
    assert fields[10] == 4 * 3 * 3
    assert fields[11:13] == (2835, 2835)
    assert fields[13:] == (0, 0)


def test_header_accounts_for_palette():
    header = bmp_header(2, 2, 8, 1024)
    assert len(header) == BMP_HEADER_LEN
    fields = HEADER.unpack(header)
    assert fields[1] == BMP_HEADER_LEN + 1024 + 4
    assert fields[3] == BMP_HEADER_LEN + 1024


def test_header_rejects_negative_size():
    with pytest.raises(ConversionError):
        bmp_header(-1, 2, 24, 0)


def test_rgb565_to_rgb888_is_blue_first():
    src = bytes([0xF8, 0x00, 0x07, 0xE0, 0x00, 0x1F])
    assert to_rgb888(src, PixFormat.RGB565) == bytes(
        [0, 0, 0xF8, 0, 0xFC, 0, 0xF8, 0, 0]
    )


def test_grayscale_to_rgb888_triples():
    assert to_rgb888(bytes([9, 200]), PixFormat.GRAYSCALE) == bytes(
        [9, 9, 9, 200, 200, 200]
    )


def test_yuv422_to_rgb888_reverses_channels():
    src = bytes([81, 90, 145, 240])
    out = to_rgb888(src, PixFormat.YUV422)
    assert out[:3] == bytes(reversed(yuv_to_rgb(81, 90, 240)))
    assert out[3:] == bytes(reversed(yuv_to_rgb(145, 90, 240)))


@given(st.binary(max_size=30).filter(lambda b: len(b) % 3 == 0))
def test_rgb888_to_rgb888_is_copy(src):
    assert to_rgb888(src, PixFormat.RGB888) == src


def test_to_rgb888_rejects_jpeg():
    with pytest.raises(ConversionError):
        to_rgb888(b"\xff\xd8", PixFormat.JPEG)


def test_grayscale_bmp_has_palette_and_pixels():
    src = bytes(range(6))
    bmp = to_bmp(src, 3, 2, PixFormat.GRAYSCALE)
    fields = HEADER.unpack(bmp[:BMP_HEADER_LEN])
    assert len(bmp) == fields[1] == BMP_HEADER_LEN + 1024 + 6
    assert fields[8] == 8
    palette = bmp[BMP_HEADER_LEN:BMP_HEADER_LEN + 1024]
    assert palette[:8] == bytes([0, 0, 0, 0, 1, 1, 1, 0])
    assert palette[-4:] == bytes([255, 255, 255, 0])
    assert bmp[fields[3]:] == src


@given(st.integers(1, 5), st.integers(1, 5), st.data())
def test_rgb888_bmp_payload_is_source(width, height, data):
    src = data.draw(st.binary(min_size=width * height * 3, max_size=width * height * 3))
    bmp = to_bmp(src, width, height, PixFormat.RGB888)
    fields = HEADER.unpack(bmp[:BMP_HEADER_LEN])
    assert fields[5:7] == (width, -height)
    assert bmp[BMP_HEADER_LEN:] == src
    assert len(bmp) == fields[1]


def test_rgb565_bmp_matches_to_rgb888():
    src = bytes([0xF8, 0x00, 0x07, 0xE0, 0x00, 0x1F, 0x12, 0x34])
    bmp = to_bmp(src, 2, 2, PixFormat.RGB565)
    assert bmp[BMP_HEADER_LEN:] == to_rgb888(src, PixFormat.RGB565)


def test_yuv422_bmp_size():
    src = bytes([16, 128, 235, 128] * 2)
    bmp = to_bmp(src, 2, 2, PixFormat.YUV422)
    assert len(bmp) == BMP_HEADER_LEN + 12
    assert bmp[BMP_HEADER_LEN:] == to_rgb888(src, PixFormat.YUV422)


def test_to_bmp_rejects_short_source():
    with pytest.raises(ConversionError):
        to_bmp(bytes(5), 2, 1, PixFormat.RGB888)


def test_to_bmp_rejects_jpeg():
    with pytest.raises(ConversionError):
        to_bmp(b"\xff\xd8\xff\xd9", 1, 1, PixFormat.JPEG)