"""Pixel formats understood by the converters."""

from __future__ import annotations

from enum import Enum

__all__ = ["PixFormat", "ConversionError"]


class ConversionError(Exception):
    """Raised when an image cannot be converted."""


class PixFormat(Enum):
    """Layout of the pixels in a source buffer."""

    RGB565 = "rgb565"
    YUV422 = "yuv422"
    GRAYSCALE = "grayscale"
    JPEG = "jpeg"
    RGB888 = "rgb888"

    def bytes_per_pixel(self) -> int:
        """Bytes used by one pixel; JPEG has no fixed size and raises."""
        try:
            return _BYTES_PER_PIXEL[self]
        except KeyError:
            raise ConversionError(
                f"{self.name} is compressed and has no fixed pixel size"
            ) from None


_BYTES_PER_PIXEL = {
    PixFormat.RGB565: 2,
    PixFormat.YUV422: 2,
    PixFormat.GRAYSCALE: 1,
    PixFormat.RGB888: 3,
}