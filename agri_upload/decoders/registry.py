# =============================================================================
# Decoder Registry
# =============================================================================
# Extension-based lookup of format decoders.
# =============================================================================

import logging
from typing import Dict, List, Optional

from agri_upload.errors import UnsupportedFormat
from agri_upload.models import RawRecord, Schema

from .base import FormatDecoder, file_extension
from .spatial import KmlDecoder, ShapefileZipDecoder
from .tabular import CsvDecoder, JsonDecoder, XlsxDecoder

__all__ = ["DecoderRegistry", "decode"]

log = logging.getLogger(__name__)


class DecoderRegistry:
    """
    Registry of format decoders by file extension.

    Decoders are instantiated fresh on each lookup (no shared state).
    """

    _DECODERS = (CsvDecoder, JsonDecoder, KmlDecoder, XlsxDecoder, ShapefileZipDecoder)

    @classmethod
    def supported_extensions(cls) -> List[str]:
        return sorted(ext for decoder in cls._DECODERS for ext in decoder.extensions)

    @classmethod
    def get_decoder(cls, extension: str) -> FormatDecoder:
        """
        Get the decoder for an extension.

        Args:
            extension: File extension, with or without the leading dot

        Raises:
            UnsupportedFormat: If no decoder handles the extension
        """
        ext = extension.lower()
        if ext and not ext.startswith("."):
            ext = f".{ext}"

        by_extension: Dict[str, type] = {
            e: decoder for decoder in cls._DECODERS for e in decoder.extensions
        }
        if ext not in by_extension:
            raise UnsupportedFormat(ext, cls.supported_extensions())
        return by_extension[ext]()


def decode(data: bytes, file_name: str, schema: Optional[Schema] = None) -> List[RawRecord]:
    """
    Decode one uploaded file into raw records.

    Args:
        data: Complete file content
        file_name: Original file name; its extension selects the decoder
        schema: When given, the extension must also be accepted by the schema

    Returns:
        Raw records in file order

    Raises:
        UnsupportedFormat: Unknown extension, or one the schema does not accept
        DecodeError: Malformed content (no partial result is returned)
    """
    ext = file_extension(file_name)
    if schema is not None and not schema.accepts(ext):
        raise UnsupportedFormat(ext, list(schema.accepted_extensions))

    decoder = DecoderRegistry.get_decoder(ext)
    log.info(f"Decoding {file_name} with {type(decoder).__name__}")
    return decoder.decode(data, file_name)
