# =============================================================================
# Field Normalization Module
# =============================================================================
# Maps arbitrary header variants onto a schema's canonical field vocabulary.
# Unrecognized columns are dropped; canonical fields absent from the input
# are filled with an empty string so every record carries the full field set.
# =============================================================================

import logging
import math
from datetime import date, datetime, time
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from agri_upload.models import RawRecord, Record, Schema

__all__ = [
    "normalize",
    "normalize_headers",
    "stringify_value",
    "unrecognized_fields",
]

log = logging.getLogger(__name__)

RecordInput = Union[RawRecord, Record, Mapping[str, Any]]


# -----------------------------------------------------------------------------
# Value Conversion
# -----------------------------------------------------------------------------
def stringify_value(value: Any) -> str:
    """
    Convert a decoded cell/property value to its trimmed string form.

    - None and NaN become ""
    - datetimes at midnight become ISO dates, other datetimes ISO datetimes
    - integral floats lose their ".0" suffix (spreadsheet ids)

    Examples:
        >>> stringify_value(None)
        ''
        >>> stringify_value("  Ramesh ")
        'Ramesh'
        >>> stringify_value(datetime(2024, 3, 1))
        '2024-03-01'
        >>> stringify_value(101.0)
        '101'
    """
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, datetime):
        if value.time() == time(0, 0) and value.tzinfo is None:
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def _split_input(raw: RecordInput) -> Tuple[Mapping[str, Any], Optional[Dict[str, Any]]]:
    if isinstance(raw, RawRecord):
        return raw.attributes, raw.geometry
    if isinstance(raw, Record):
        return raw.values, raw.geometry
    return raw, None


# -----------------------------------------------------------------------------
# Header Normalization
# -----------------------------------------------------------------------------
def normalize_headers(
    headers: List[str],
    schema: Schema,
) -> Tuple[Dict[str, Optional[str]], List[str]]:
    """
    Resolve a list of raw headers against a schema.

    Args:
        headers: Original header strings (in file order)
        schema: Schema supplying the canonical vocabulary and aliases

    Returns:
        Tuple of:
        - header_mapping: original header -> canonical name (None if dropped)
        - dropped: original headers with no canonical counterpart

    Examples:
        >>> from agri_upload.schemas import FARMER_SCHEMA
        >>> mapping, dropped = normalize_headers(["Farmer Id", "Notes"], FARMER_SCHEMA)
        >>> mapping
        {'Farmer Id': 'farmer_id', 'Notes': None}
        >>> dropped
        ['Notes']
    """
    header_mapping: Dict[str, Optional[str]] = {}
    dropped: List[str] = []
    for header in headers:
        resolved = schema.resolve_field(header)
        if schema.is_canonical(resolved):
            header_mapping[header] = resolved
        else:
            header_mapping[header] = None
            dropped.append(header)
    return header_mapping, dropped


def unrecognized_fields(raw: RecordInput, schema: Schema) -> List[str]:
    """Return the raw keys that the normalizer would drop, in input order."""
    attributes, _ = _split_input(raw)
    _, dropped = normalize_headers(list(attributes.keys()), schema)
    return dropped


# -----------------------------------------------------------------------------
# Record Normalization
# -----------------------------------------------------------------------------
def normalize(raw: RecordInput, schema: Schema) -> Record:
    """
    Map one raw record onto the schema's canonical fields.

    Keys are matched case- and space-insensitively through the schema's alias
    table; values are stringified and trimmed. The output never depends on
    key order: when several raw keys resolve to the same canonical field the
    keys are visited in sorted order and the first non-empty value wins.
    Applying ``normalize`` to its own output is a no-op.

    Args:
        raw: RawRecord from a decoder, a plain mapping, or an existing Record
        schema: Target schema

    Returns:
        Record whose ``values`` hold exactly ``schema.field_names``
    """
    attributes, geometry = _split_input(raw)

    values: Dict[str, str] = {}
    dropped: List[str] = []
    for key in sorted(attributes.keys(), key=str):
        canonical = schema.resolve_field(key)
        if not schema.is_canonical(canonical):
            dropped.append(str(key))
            continue
        text = stringify_value(attributes[key])
        if not values.get(canonical):
            values[canonical] = text

    if dropped:
        log.debug(f"Dropped unrecognized fields for schema '{schema.name}': {dropped}")

    # Fill absent canonical fields, in schema order
    canonical_values = {name: values.get(name, "") for name in schema.field_names}

    return Record(
        values=canonical_values,
        geometry=geometry if schema.spatial else None,
    )
