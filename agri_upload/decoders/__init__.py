# =============================================================================
# Format Decoders Library
# =============================================================================
# One decoder per upload format, selected by file extension.
# =============================================================================

"""
Format decoders for the upload pipeline.

This library provides:
- FormatDecoder: Base class for all decoders
- Tabular decoders: CsvDecoder, JsonDecoder, XlsxDecoder
- Spatial decoders: KmlDecoder, ShapefileZipDecoder
- DecoderRegistry / decode: Extension-based dispatch
"""

from .base import FormatDecoder, file_extension
from .tabular import CsvDecoder, JsonDecoder, XlsxDecoder
from .spatial import KmlDecoder, ShapefileZipDecoder
from .registry import DecoderRegistry, decode

__all__ = [
    "FormatDecoder",
    "file_extension",
    "CsvDecoder",
    "JsonDecoder",
    "XlsxDecoder",
    "KmlDecoder",
    "ShapefileZipDecoder",
    "DecoderRegistry",
    "decode",
]
