# =============================================================================
# Data Models Library
# =============================================================================
# Pydantic models for the upload pipeline.
# =============================================================================

"""
Data models for the upload pipeline.

This library provides:
- Schema types: Schema, FieldConstraint, ConstraintKind, SchemaFamily
- Record types: RawRecord, Record, ValidationResult, SubmissionResult
- Configuration models
"""

# Schema types
from .schema import (
    ConstraintKind,
    FieldConstraint,
    Schema,
    SchemaFamily,
    clean_field_name,
)

# Record types
from .record import (
    GeoJSON,
    RawRecord,
    Record,
    SubmissionResult,
    ValidationResult,
)

# Configuration models
from .config import (
    UploadSettings,
    get_settings,
)

__all__ = [
    # Schema types
    "ConstraintKind",
    "FieldConstraint",
    "Schema",
    "SchemaFamily",
    "clean_field_name",
    # Record types
    "GeoJSON",
    "RawRecord",
    "Record",
    "SubmissionResult",
    "ValidationResult",
    # Configuration models
    "UploadSettings",
    "get_settings",
]
