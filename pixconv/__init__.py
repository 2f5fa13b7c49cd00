"""Conversion of raw camera frames to baseline JPEG and BMP."""

__version__ = "0.1.0"
__all__ = ["formats", "yuv", "jpeg_tables", "jpeg_encoder", "to_jpg", "to_bmp"]