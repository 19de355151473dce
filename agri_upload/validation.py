# =============================================================================
# Record Validation Module
# =============================================================================
# Evaluates a canonical record against its schema's constraints.
# Every constraint is checked (no short-circuit) so the result lists all
# broken rules. Validation is pure: it never mutates the record.
# =============================================================================

import math
import re
from datetime import date, datetime
from typing import Optional

from agri_upload.errors import ValidationFailure
from agri_upload.models import (
    ConstraintKind,
    FieldConstraint,
    Record,
    Schema,
    ValidationResult,
)

__all__ = [
    "validate",
    "ensure_valid",
    "is_positive_number",
    "parse_date",
]


# Day-first layouts accepted besides ISO-8601
_DATE_FORMATS = ("%d/%m/%Y", "%d-%m-%Y", "%Y/%m/%d", "%d.%m.%Y")
_ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}")
# Plain ASCII decimal or exponent notation only (no "1_000" or "0x10")
_NUMBER_PATTERN = re.compile(r"^[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?$")


def is_positive_number(value: str) -> bool:
    """
    Check that a value parses as a finite number greater than zero.

    Examples:
        >>> is_positive_number("12.5")
        True
        >>> is_positive_number("-5")
        False
        >>> is_positive_number("inf")
        False
    """
    try:
        text = value.strip()
    except AttributeError:
        return False
    if not _NUMBER_PATTERN.match(text):
        return False
    number = float(text)
    return math.isfinite(number) and number > 0


def parse_date(value: str) -> Optional[date]:
    """
    Parse a value as a real calendar date.

    Accepts ISO-8601 dates with an optional time part ("2024-03-01",
    "2024-03-01T10:00:00") and the day-first layouts in ``_DATE_FORMATS``.
    Impossible dates such as "2024-02-30" are rejected.

    Returns:
        The parsed date, or None when the value is not a valid date
    """
    text = value.strip()
    if not text:
        return None

    if _ISO_DATE_PATTERN.match(text):
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            return None

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _violates(constraint: FieldConstraint, record: Record) -> bool:
    if constraint.kind == ConstraintKind.GEOMETRY:
        return not record.geometry

    value = record.get(constraint.field).strip()
    if constraint.kind == ConstraintKind.REQUIRED:
        return not value
    if constraint.kind == ConstraintKind.POSITIVE_NUMBER:
        return not is_positive_number(value)
    if constraint.kind == ConstraintKind.DATE:
        return parse_date(value) is None
    if constraint.kind == ConstraintKind.ENUM:
        allowed = {choice.lower() for choice in constraint.choices}
        return value.lower() not in allowed
    raise ValueError(f"Unknown constraint kind: {constraint.kind}")


def validate(record: Record, schema: Schema) -> ValidationResult:
    """
    Validate a canonical record against a schema.

    Constraints are evaluated in schema order. Fields missing from the
    record are treated as empty.

    Args:
        record: Canonical record (output of ``normalize``)
        schema: Schema whose constraints apply

    Returns:
        ValidationResult listing every violated rule
    """
    violations = [
        constraint.violation_message()
        for constraint in schema.constraints
        if _violates(constraint, record)
    ]
    return ValidationResult(is_valid=not violations, violations=violations)


def ensure_valid(record: Record, schema: Schema) -> Record:
    """
    Validate and raise instead of returning a verdict.

    Raises:
        ValidationFailure: If the record breaks any constraint
    """
    result = validate(record, schema)
    if not result.is_valid:
        raise ValidationFailure(result.violations)
    return record
