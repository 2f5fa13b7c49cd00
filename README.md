# pixconv

Convert raw camera frame buffers into baseline JPEG and BMP files, in pure
Python with no third-party dependencies.

Supported input layouts (`pixconv.formats.PixFormat`):

- `RGB565`: two bytes per pixel, high byte first
- `RGB888`: three bytes per pixel, blue first
- `YUV422`: YUYV packed, four bytes per two pixels
- `GRAYSCALE`: one byte per pixel
- `JPEG`: accepted as a value, but every converter raises
  `ConversionError` for it (see "What it does not do")

`PixFormat.bytes_per_pixel()` gives the bytes one pixel uses. For `JPEG` it
raises `ConversionError`.

## Installation

```
pip install .
```

## Encoding to JPEG

```python
from pixconv.formats import PixFormat
from pixconv.to_jpg import to_jpeg

frame = bytes(64 * 48 * 2)          # an RGB565 frame
jpeg = to_jpeg(frame, 64, 48, PixFormat.RGB565, quality=80)
with open("frame.jpg", "wb") as fh:
    fh.write(jpeg)
```

A quality below 1 is treated as 1. A quality above 100 is treated as 100.
Colour frames are encoded with 2x2 chroma subsampling. Grayscale frames
produce a single-component JPEG. `YUV422` frames need an even width.
`to_jpeg` keeps at most `pixconv.to_jpg.MAX_JPEG_SIZE` bytes (128 KiB) and
drops any output beyond that.

To stream the output instead of collecting it, use `to_jpeg_stream` with a
callback. The callback is called as `callback(index, data)` and returns the
number of bytes it took. If it returns `None`, all of the bytes count as
taken. `index` advances by that amount. A final call with empty `data` marks
the end, and the function returns the final index:

```python
from pixconv.to_jpg import to_jpeg_stream

chunks = []

def write(index, data):
    chunks.append(data)
    return len(data)

total = to_jpeg_stream(frame, 64, 48, PixFormat.RGB565, 80, write)
```

Two lower-level pieces are available:

- `encode_image(src, width, height, fmt, quality, sink)` passes JPEG chunks
  to `sink(chunk)`.
- `convert_line(src, fmt, width, line)` returns one row as gray bytes or as
  RGB triples.

## Using the encoder directly

`pixconv.jpeg_encoder.JpegEncoder(sink, width, height, channels, params)`
encodes one scanline at a time:

- `sink` is called with chunks of at most 512 bytes. Returning `False` from
  it makes the encoder raise `EncoderError`.
- `channels` is 1 for grayscale rows or 3 for RGB rows.
- `params` is an `EncoderParams(quality=85, subsampling=Subsampling.H2V2)`.
  `Subsampling` has the members `Y_ONLY`, `H1V1`, `H2V1` and `H2V2`.

Call `process_scanline(row)` for each row of `width * channels` bytes, then
call `finish()`:

```python
from pixconv.jpeg_encoder import EncoderParams, JpegEncoder, Subsampling

out = bytearray()
encoder = JpegEncoder(out.extend, 16, 16, 1, EncoderParams(90, Subsampling.Y_ONLY))
for _ in range(16):
    encoder.process_scanline(bytes(range(16)))
encoder.finish()
```

The building blocks live in `pixconv.jpeg_tables`:

- `rgb_to_ycc`, `rgb_to_y` and `y_to_ycc` for colour conversion
- `forward_dct` for the integer 8x8 DCT
- `huffman_codes` for canonical Huffman tables
- `quant_table` and `quantize` for quantisation
- the standard JPEG tables

## Converting to BMP

```python
from pixconv.to_bmp import to_bmp, to_rgb888

bmp = to_bmp(frame, 64, 48, PixFormat.RGB565)
bgr = to_rgb888(frame, PixFormat.RGB565)
```

`to_bmp` writes top-down BMPs:

- Colour frames become 24-bit images.
- Grayscale frames become 8-bit images with a 256-entry grey palette.

`to_rgb888` returns three bytes per pixel, blue first. `bmp_header(width,
height, bits_per_pixel, palette_size)` builds the 54-byte header on its own.

## Colour conversion

`pixconv.yuv.yuv_to_rgb(y, u, v)` converts one sample to an `(r, g, b)` tuple
using a fixed-point lookup table. `yuyv_to_rgb(data)` converts a packed YUYV
buffer to RGB bytes and ignores any trailing incomplete group.

## What it does not do

There is no JPEG decoder. JPEG input raises `ConversionError` in `to_bmp`,
`to_rgb888` and the JPEG encoding functions. The package is a library only.
It has no command-line tool and does not talk to camera hardware.

## Errors

Invalid input raises `pixconv.formats.ConversionError`. Encoder misuse and
rejected output raise `pixconv.jpeg_encoder.EncoderError`, a subclass of
`ConversionError`. `pixconv.yuv` and `pixconv.jpeg_tables` raise `ValueError`
for out-of-range arguments.

## Running the tests

```
pip install ".[test]"
pytest
```