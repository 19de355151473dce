# =============================================================================
# Base Classes for Format Decoders
# =============================================================================
# Abstract base class for all file format decoders.
# =============================================================================

from abc import ABC, abstractmethod
from pathlib import PurePath
from typing import List, Tuple

from agri_upload.models import RawRecord

__all__ = ["FormatDecoder", "file_extension"]


def file_extension(file_name: str) -> str:
    """
    Return the lower-cased extension of a file name, including the dot.

    Examples:
        >>> file_extension("Farmers.CSV")
        '.csv'
        >>> file_extension("README")
        ''
    """
    return PurePath(file_name).suffix.lower()


class FormatDecoder(ABC):
    """
    Base class for all format decoders.

    A decoder turns the raw bytes of one uploaded file into an ordered list
    of flat records. Decoders either return the complete record list or
    raise ``DecodeError``; they never return a partial result.
    """

    #: Extensions (lower-case, with dot) handled by this decoder
    extensions: Tuple[str, ...] = ()

    @abstractmethod
    def decode(self, data: bytes, file_name: str) -> List[RawRecord]:
        """
        Decode file content into raw records.

        Args:
            data: Complete file content
            file_name: Original file name (used in error messages)

        Returns:
            Raw records in file order

        Raises:
            DecodeError: If the content cannot be parsed
        """
        pass
