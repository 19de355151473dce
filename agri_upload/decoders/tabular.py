# =============================================================================
# Tabular Decoders
# =============================================================================
# Decoders for attribute-only formats: CSV, JSON (incl. GeoJSON) and XLSX.
# =============================================================================

import io
import json
import logging
import zipfile
from typing import Any, Dict, List

import openpyxl
import pyarrow as pa
import pyarrow.csv as csv
from openpyxl.utils.exceptions import InvalidFileException

from agri_upload.errors import DecodeError
from agri_upload.models import RawRecord

from .base import FormatDecoder

__all__ = ["CsvDecoder", "JsonDecoder", "XlsxDecoder", "records_from_geojson"]

log = logging.getLogger(__name__)


class CsvDecoder(FormatDecoder):
    """
    Decode comma-separated text with a header row.

    Every column is read as a string so identifiers keep their leading zeros
    and dates keep the spelling used in the file. Empty lines are skipped.
    """

    extensions = (".csv",)

    def decode(self, data: bytes, file_name: str) -> List[RawRecord]:
        parse_options = csv.ParseOptions(delimiter=",", ignore_empty_lines=True)

        try:
            # First pass discovers the header; second pass pins every column to string
            names = csv.open_csv(
                pa.BufferReader(data), parse_options=parse_options
            ).schema.names
            table = csv.read_csv(
                pa.BufferReader(data),
                parse_options=parse_options,
                convert_options=csv.ConvertOptions(
                    column_types={name: pa.string() for name in names},
                    strings_can_be_null=False,
                    quoted_strings_can_be_null=False,
                ),
            )
        except pa.ArrowException as e:
            raise DecodeError(f"CSV parsing error: {e}", file_name) from e

        log.info(f"Read {len(table.column_names)} columns, {table.num_rows} rows from {file_name}")
        return [RawRecord(attributes=row) for row in table.to_pylist()]


def _feature_to_record(feature: Dict[str, Any], file_name: str) -> RawRecord:
    properties = feature.get("properties") or {}
    if not isinstance(properties, dict):
        raise DecodeError("GeoJSON feature properties must be an object", file_name)
    return RawRecord(attributes=properties, geometry=feature.get("geometry"))


def records_from_geojson(document: Dict[str, Any], file_name: str) -> List[RawRecord]:
    """
    Unpack a GeoJSON FeatureCollection or single Feature.

    Each feature's property bag becomes one record; its geometry is carried
    alongside.
    """
    if document.get("type") == "Feature":
        return [_feature_to_record(document, file_name)]

    features = document.get("features")
    if not isinstance(features, list):
        raise DecodeError("GeoJSON FeatureCollection must contain a features array", file_name)
    records = []
    for position, feature in enumerate(features):
        if not isinstance(feature, dict):
            raise DecodeError(f"GeoJSON feature {position} is not an object", file_name)
        records.append(_feature_to_record(feature, file_name))
    return records


class JsonDecoder(FormatDecoder):
    """
    Decode a JSON object or an array of objects.

    A single object is treated as a one-record batch. GeoJSON documents
    (FeatureCollection / Feature) are unpacked feature by feature.
    """

    extensions = (".json", ".geojson")

    def decode(self, data: bytes, file_name: str) -> List[RawRecord]:
        try:
            document = json.loads(data.decode("utf-8-sig"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DecodeError(f"JSON parsing error: {e}", file_name) from e

        if isinstance(document, dict):
            if document.get("type") in ("FeatureCollection", "Feature"):
                return records_from_geojson(document, file_name)
            return [RawRecord(attributes=document)]

        if isinstance(document, list):
            records = []
            for position, item in enumerate(document):
                if not isinstance(item, dict):
                    raise DecodeError(
                        f"JSON array item {position} is not an object", file_name
                    )
                if item.get("type") == "Feature":
                    records.append(_feature_to_record(item, file_name))
                else:
                    records.append(RawRecord(attributes=item))
            return records

        raise DecodeError(
            "JSON document must be an object or an array of objects", file_name
        )


def _sheet_records(ws) -> List[RawRecord]:
    rows_iter = ws.iter_rows(values_only=True)
    header_row = next(rows_iter, None)
    if header_row is None:
        return []

    headers = [
        (idx, str(cell).strip())
        for idx, cell in enumerate(header_row)
        if cell is not None and str(cell).strip()
    ]

    records: List[RawRecord] = []
    for row in rows_iter:
        if all(cell is None or str(cell).strip() == "" for cell in row):
            continue
        attributes = {}
        for idx, header in headers:
            cell = row[idx] if idx < len(row) else None
            attributes[header] = "" if cell is None else cell
        records.append(RawRecord(attributes=attributes))
    return records


class XlsxDecoder(FormatDecoder):
    """
    Decode the first worksheet of an Excel workbook.

    The first row holds the headers; absent cells become empty strings and
    fully blank rows are skipped. Columns with a blank header are ignored.
    """

    extensions = (".xlsx",)

    def decode(self, data: bytes, file_name: str) -> List[RawRecord]:
        try:
            wb = openpyxl.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, SyntaxError) as e:
            raise DecodeError(f"XLSX parsing error: {e}", file_name) from e

        # Read-only workbooks parse the sheet XML lazily, so corrupt worksheet
        # parts only surface while rows are iterated. SyntaxError covers both
        # ElementTree's ParseError and lxml's XMLSyntaxError.
        try:
            records = _sheet_records(wb.worksheets[0])
        except (SyntaxError, ValueError, KeyError, EOFError, zipfile.BadZipFile) as e:
            raise DecodeError(f"XLSX parsing error: {e}", file_name) from e
        finally:
            wb.close()

        log.info(f"Read {len(records)} rows from {file_name}")
        return records
