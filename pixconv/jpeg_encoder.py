"""Streaming baseline JPEG encoder."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from functools import lru_cache

from pixconv.formats import ConversionError
from pixconv.jpeg_tables import (
    AC_CHROMA_BITS,
    AC_CHROMA_VALUES,
    AC_LUM_BITS,
    AC_LUM_VALUES,
    DC_CHROMA_BITS,
    DC_CHROMA_VALUES,
    DC_LUM_BITS,
    DC_LUM_VALUES,
    STD_CHROMA_QUANT,
    STD_LUM_QUANT,
    HuffmanTable,
    forward_dct,
    huffman_codes,
    quant_table,
    quantize,
    rgb_to_y,
    rgb_to_ycc,
    y_to_ycc,
)

__all__ = ["Subsampling", "EncoderParams", "EncoderError", "JpegEncoder"]

_M_SOF0 = 0xC0
_M_DHT = 0xC4
_M_SOI = 0xD8
_M_EOI = 0xD9
_M_SOS = 0xDA
_M_DQT = 0xDB
_M_APP0 = 0xE0

_OUT_BUF_SIZE = 512

Sink = Callable[[bytes], "bool | None"]


class EncoderError(ConversionError):
    """Raised when the encoder is misused or its output cannot be written."""


class Subsampling(IntEnum):
    """Chroma subsampling: Y_ONLY for grayscale, H2V2 is the common colour mode."""

    Y_ONLY = 0
    H1V1 = 1
    H2V1 = 2
    H2V2 = 3


@dataclass(frozen=True)
class EncoderParams:
    """Compression parameters: quality 1..100 and chroma subsampling."""

    quality: int = 85
    subsampling: Subsampling = Subsampling.H2V2

    def validate(self) -> None:
        """Raise EncoderError if the parameters are out of range."""
        if not isinstance(self.quality, int) or not 1 <= self.quality <= 100:
            raise EncoderError(f"quality must be in 1..100, got {self.quality!r}")
        if not isinstance(self.subsampling, Subsampling):
            raise EncoderError(f"unknown subsampling {self.subsampling!r}")


# (h, v) sampling of the luma component and MCU size in pixels.
_LAYOUT = {
    Subsampling.Y_ONLY: ((1, 1), (8, 8)),
    Subsampling.H1V1: ((1, 1), (8, 8)),
    Subsampling.H2V1: ((2, 1), (16, 8)),
    Subsampling.H2V2: ((2, 2), (16, 16)),
}

_HUFF_SPECS = (
    # (bits, values, table index, is AC)
    (DC_LUM_BITS, DC_LUM_VALUES, 0, False),
    (AC_LUM_BITS, AC_LUM_VALUES, 0, True),
    (DC_CHROMA_BITS, DC_CHROMA_VALUES, 1, False),
    (AC_CHROMA_BITS, AC_CHROMA_VALUES, 1, True),
)

_DC_TABLES: tuple[HuffmanTable, HuffmanTable] = (
    huffman_codes(DC_LUM_BITS, DC_LUM_VALUES),
    huffman_codes(DC_CHROMA_BITS, DC_CHROMA_VALUES),
)
_AC_TABLES: tuple[HuffmanTable, HuffmanTable] = (
    huffman_codes(AC_LUM_BITS, AC_LUM_VALUES),
    huffman_codes(AC_CHROMA_BITS, AC_CHROMA_VALUES),
)


@lru_cache(maxsize=8)
def _quant_tables(quality: int) -> tuple[tuple[int, ...], tuple[int, ...]]:
    return (
        tuple(quant_table(STD_LUM_QUANT, quality)),
        tuple(quant_table(STD_CHROMA_QUANT, quality)),
    )


class JpegEncoder:
    """Encode an image one scanline at a time, writing JPEG bytes to ``sink``.

    ``sink`` is called with chunks of at most 512 bytes; returning ``False``
    signals a write failure and makes the encoder raise EncoderError.
    Scanlines hold ``width * channels`` bytes: grayscale (1), RGB (3) or
    four-byte pixels (4).
    """

    def __init__(
        self,
        sink: Sink,
        width: int,
        height: int,
        channels: int,
        params: EncoderParams | None = None,
    ) -> None:
        params = EncoderParams() if params is None else params
        if not callable(sink):
            raise EncoderError("sink must be callable")
        if width < 1 or height < 1:
            raise EncoderError(f"invalid image size {width}x{height}")
        if channels not in (1, 3, 4):
            raise EncoderError(f"channels must be 1, 3 or 4, got {channels}")
        params.validate()

        self._sink = sink
        self._params = params
        self._width = width
        self._height = height
        self._channels = channels
        self._num_components = 1 if params.subsampling is Subsampling.Y_ONLY else 3
        (self._h_samp, self._v_samp), (self._mcu_x, self._mcu_y) = _LAYOUT[
            params.subsampling
        ]
        self._x_mcu = (width + self._mcu_x - 1) & ~(self._mcu_x - 1)
        self._bpl_xlt = width * self._num_components
        self._bpl_mcu = self._x_mcu * self._num_components
        self._mcus_per_row = self._x_mcu // self._mcu_x
        self._mcu_lines = [bytearray(self._bpl_mcu) for _ in range(self._mcu_y)]
        self._mcu_y_ofs = 0
        self._quant = _quant_tables(params.quality)

        self._out = bytearray()
        self._bit_buffer = 0
        self._bits_in = 0
        self._last_dc = [0, 0, 0]
        self._finished = False

        self._emit_marker(_M_SOI)
        self._emit_jfif_app0()
        self._emit_dqt()
        self._emit_sof()
        self._emit_dhts()
        self._emit_sos()

    # -- output -------------------------------------------------------------

    def _flush(self) -> None:
        if self._out:
            chunk = bytes(self._out)
            self._out.clear()
            if self._sink(chunk) is False:
                self._finished = True
                raise EncoderError("output sink rejected data")

    def _emit_byte(self, value: int) -> None:
        self._out.append(value)
        if len(self._out) == _OUT_BUF_SIZE:
            self._flush()

    def _emit(self, data: bytes) -> None:
        for value in data:
            self._emit_byte(value)

    def _emit_word(self, value: int) -> None:
        self._emit_byte((value >> 8) & 0xFF)
        self._emit_byte(value & 0xFF)

    def _emit_marker(self, marker: int) -> None:
        self._emit_byte(0xFF)
        self._emit_byte(marker)

    def _put_bits(self, bits: int, length: int) -> None:
        self._bits_in += length
        self._bit_buffer |= bits << (24 - self._bits_in)
        while self._bits_in >= 8:
            c = (self._bit_buffer >> 16) & 0xFF
            self._emit_byte(c)
            if c == 0xFF:
                self._emit_byte(0)
            self._bit_buffer = (self._bit_buffer << 8) & 0xFFFFFFFF
            self._bits_in -= 8

    # -- headers ------------------------------------------------------------

    def _emit_jfif_app0(self) -> None:
        self._emit_marker(_M_APP0)
        self._emit_word(2 + 4 + 1 + 2 + 1 + 2 + 2 + 1 + 1)
        self._emit(b"JFIF\x00")
        self._emit(bytes((1, 1, 0)))
        self._emit_word(1)
        self._emit_word(1)
        self._emit(bytes((0, 0)))

    def _emit_dqt(self) -> None:
        count = 2 if self._num_components == 3 else 1
        for index, table in enumerate(self._quant[:count]):
            self._emit_marker(_M_DQT)
            self._emit_word(64 + 1 + 2)
            self._emit_byte(index)
            self._emit(bytes(table))

    def _emit_sof(self) -> None:
        n = self._num_components
        self._emit_marker(_M_SOF0)
        self._emit_word(3 * n + 2 + 5 + 1)
        self._emit_byte(8)
        self._emit_word(self._height)
        self._emit_word(self._width)
        self._emit_byte(n)
        for i in range(n):
            h, v = (self._h_samp, self._v_samp) if i == 0 else (1, 1)
            self._emit(bytes((i + 1, (h << 4) + v, 1 if i > 0 else 0)))

    def _emit_dht(self, bits, values, index: int, ac: bool) -> None:
        self._emit_marker(_M_DHT)
        length = sum(bits[1:17])
        self._emit_word(length + 2 + 1 + 16)
        self._emit_byte(index + (16 if ac else 0))
        self._emit(bytes(bits[1:17]))
        self._emit(bytes(values[:length]))

    def _emit_dhts(self) -> None:
        for bits, values, index, ac in _HUFF_SPECS:
            if index == 0 or self._num_components == 3:
                self._emit_dht(bits, values, index, ac)

    def _emit_sos(self) -> None:
        n = self._num_components
        self._emit_marker(_M_SOS)
        self._emit_word(2 * n + 2 + 1 + 3)
        self._emit_byte(n)
        for i in range(n):
            self._emit(bytes((i + 1, 0x00 if i == 0 else 0x11)))
        self._emit(bytes((0, 63, 0)))

    # -- block loading ------------------------------------------------------

    def _load_grey(self, x: int) -> list[int]:
        x <<= 3
        return [
            line[x + k] - 128 for line in self._mcu_lines[:8] for k in range(8)
        ]

    def _load_8_8(self, x: int, y: int, c: int) -> list[int]:
        offset = x * 24 + c
        rows = self._mcu_lines[y * 8:y * 8 + 8]
        return [line[offset + k * 3] - 128 for line in rows for k in range(8)]

    def _load_16_8(self, x: int, c: int) -> list[int]:
        offset = x * 48 + c
        out: list[int] = []
        a, b = 0, 2
        for i in range(0, 16, 2):
            top, bottom = self._mcu_lines[i], self._mcu_lines[i + 1]
            for k in range(8):
                p0 = offset + 2 * k * 3
                p1 = p0 + 3
                rounding = a if k % 2 == 0 else b
                total = top[p0] + top[p1] + bottom[p0] + bottom[p1] + rounding
                out.append((total >> 2) - 128)
            a, b = b, a
        return out

    def _load_16_8_8(self, x: int, c: int) -> list[int]:
        offset = x * 48 + c
        out: list[int] = []
        for line in self._mcu_lines[:8]:
            for k in range(8):
                p0 = offset + 2 * k * 3
                out.append(((line[p0] + line[p0 + 3]) >> 1) - 128)
        return out

    # -- entropy coding -----------------------------------------------------

    def _code_block(self, samples: list[int], component: int) -> None:
        table = 1 if component > 0 else 0
        coefficients = quantize(forward_dct(samples), self._quant[table])
        dc, ac = _DC_TABLES[table], _AC_TABLES[table]

        diff = coefficients[0] - self._last_dc[component]
        self._last_dc[component] = coefficients[0]
        nbits = abs(diff).bit_length()
        self._put_bits(dc.codes[nbits], dc.sizes[nbits])
        if nbits:
            self._put_bits((diff - 1 if diff < 0 else diff) & ((1 << nbits) - 1), nbits)

        run = 0
        for value in coefficients[1:]:
            if value == 0:
                run += 1
                continue
            while run >= 16:
                self._put_bits(ac.codes[0xF0], ac.sizes[0xF0])
                run -= 16
            nbits = abs(value).bit_length()
            symbol = (run << 4) + nbits
            self._put_bits(ac.codes[symbol], ac.sizes[symbol])
            self._put_bits(
                (value - 1 if value < 0 else value) & ((1 << nbits) - 1), nbits
            )
            run = 0
        if run:
            self._put_bits(ac.codes[0], ac.sizes[0])

    def _process_mcu_row(self) -> None:
        if self._num_components == 1:
            for i in range(self._mcus_per_row):
                self._code_block(self._load_grey(i), 0)
        elif (self._h_samp, self._v_samp) == (1, 1):
            for i in range(self._mcus_per_row):
                for c in range(3):
                    self._code_block(self._load_8_8(i, 0, c), c)
        elif (self._h_samp, self._v_samp) == (2, 1):
            for i in range(self._mcus_per_row):
                self._code_block(self._load_8_8(i * 2, 0, 0), 0)
                self._code_block(self._load_8_8(i * 2 + 1, 0, 0), 0)
                self._code_block(self._load_16_8_8(i, 1), 1)
                self._code_block(self._load_16_8_8(i, 2), 2)
        else:
            for i in range(self._mcus_per_row):
                for y in (0, 1):
                    self._code_block(self._load_8_8(i * 2, y, 0), 0)
                    self._code_block(self._load_8_8(i * 2 + 1, y, 0), 0)
                self._code_block(self._load_16_8(i, 1), 1)
                self._code_block(self._load_16_8(i, 2), 2)

    # -- public API ---------------------------------------------------------

    def _check_open(self) -> None:
        if self._finished:
            raise EncoderError("encoder has already finished")

    def process_scanline(self, scanline: bytes) -> None:
        """Feed one row of ``width * channels`` source bytes."""
        self._check_open()
        expected = self._width * self._channels
        if len(scanline) != expected:
            raise EncoderError(
                f"scanline must hold {expected} bytes, got {len(scanline)}"
            )
        width = self._width
        if self._num_components == 1:
            row = rgb_to_y(scanline) if self._channels == 3 else bytes(scanline[:width])
        elif self._channels == 3:
            row = rgb_to_ycc(scanline)
        else:
            row = y_to_ycc(scanline[:width])

        line = self._mcu_lines[self._mcu_y_ofs]
        line[: self._bpl_xlt] = row
        n = self._num_components
        last = row[-n:]
        line[self._bpl_xlt:] = last * (self._x_mcu - width)

        self._mcu_y_ofs += 1
        if self._mcu_y_ofs == self._mcu_y:
            self._process_mcu_row()
            self._mcu_y_ofs = 0

    def finish(self) -> None:
        """Encode any pending rows, write the end marker and flush the output."""
        self._check_open()
        if self._mcu_y_ofs:
            last = self._mcu_lines[self._mcu_y_ofs - 1]
            for i in range(self._mcu_y_ofs, self._mcu_y):
                self._mcu_lines[i][:] = last
            self._process_mcu_row()
        self._put_bits(0x7F, 7)
        self._emit_marker(_M_EOI)
        self._flush()
        self._finished = True