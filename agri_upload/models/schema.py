# =============================================================================
# Schema Models Module
# =============================================================================
# Immutable description of one upload use case:
# - ConstraintKind / FieldConstraint: per-field validation rules
# - SchemaFamily: which remote ingestion endpoint a schema submits to
# - Schema: canonical fields, header aliases, constraints, accepted files
# =============================================================================

import re
from enum import Enum
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

__all__ = [
    "ConstraintKind",
    "FieldConstraint",
    "SchemaFamily",
    "Schema",
    "clean_field_name",
]


_WHITESPACE_PATTERN = re.compile(r"\s+")


def clean_field_name(name: object) -> str:
    """
    Reduce a header name to its lookup form.

    Lower-cases, strips, and collapses internal whitespace runs to a single
    space so that "Farmer  Id " and "farmer id" resolve identically.

    Examples:
        >>> clean_field_name("  Farmer   Id ")
        'farmer id'
        >>> clean_field_name(None)
        ''
    """
    if name is None:
        return ""
    return _WHITESPACE_PATTERN.sub(" ", str(name).strip().lower())


# =============================================================================
# Enums
# =============================================================================

class ConstraintKind(str, Enum):
    """Kinds of rule a field constraint can enforce."""
    REQUIRED = "required"
    POSITIVE_NUMBER = "positive_number"
    DATE = "date"
    ENUM = "enum"
    GEOMETRY = "geometry"


class SchemaFamily(str, Enum):
    """Schema family; each family has its own ingestion endpoint."""
    FARMER = "farmer"
    LAND_PARCEL = "land_parcel"


# =============================================================================
# Field Constraint
# =============================================================================

_DEFAULT_MESSAGES = {
    ConstraintKind.REQUIRED: "{field} is required",
    ConstraintKind.POSITIVE_NUMBER: "{field} must be a valid number",
    ConstraintKind.DATE: "{field} must be a valid date",
    ConstraintKind.ENUM: "{field} must be one of: {choices}",
    ConstraintKind.GEOMETRY: "geometry is required",
}


class FieldConstraint(BaseModel):
    """
    A single validation rule.

    Attributes:
        kind: Rule type
        field: Canonical field the rule applies to (None for geometry rules)
        choices: Allowed values for enum rules (compared case-insensitively)
        message: Optional violation message overriding the default template
    """

    kind: ConstraintKind = Field(..., description="Rule type")
    field: Optional[str] = Field(None, description="Canonical field name")
    choices: Tuple[str, ...] = Field(default=(), description="Allowed enum values")
    message: Optional[str] = Field(None, description="Violation message override")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_shape(self) -> "FieldConstraint":
        if self.kind == ConstraintKind.GEOMETRY:
            if self.field is not None:
                raise ValueError("geometry constraints do not name a field")
            return self
        if not self.field:
            raise ValueError(f"{self.kind.value} constraint requires a field")
        if self.kind == ConstraintKind.ENUM and not self.choices:
            raise ValueError(f"enum constraint on '{self.field}' requires choices")
        return self

    def violation_message(self) -> str:
        """Human-readable message reported when this rule is broken."""
        template = self.message or _DEFAULT_MESSAGES[self.kind]
        return template.format(field=self.field, choices=", ".join(self.choices))


# =============================================================================
# Schema
# =============================================================================

class Schema(BaseModel):
    """
    Fixed configuration of canonical fields, header aliases and constraints.

    Schemas are immutable and shared between every stage of the pipeline:
    the normalizer uses ``field_names`` and ``aliases``, the validator walks
    ``constraints`` in order, the decoders check ``accepted_extensions`` and
    the submission client picks the endpoint from ``family``.

    Attributes:
        name: Schema identifier (e.g., "farmer")
        family: Endpoint family the schema submits to
        field_names: Ordered canonical field names
        aliases: Variant header (lookup form) -> canonical field name
        constraints: Ordered validation rules
        accepted_extensions: File extensions accepted for upload (".csv", ...)
        spatial: Whether records carry geometry
        description: Free-form description shown to users
    """

    name: str = Field(..., description="Schema identifier")
    family: SchemaFamily = Field(..., description="Ingestion endpoint family")
    field_names: Tuple[str, ...] = Field(..., description="Ordered canonical field names")
    aliases: Dict[str, str] = Field(
        default_factory=dict,
        description="Variant header name -> canonical field name",
    )
    constraints: Tuple[FieldConstraint, ...] = Field(
        default=(), description="Ordered validation rules"
    )
    accepted_extensions: Tuple[str, ...] = Field(
        ..., description="Accepted file extensions"
    )
    spatial: bool = Field(False, description="Whether records carry geometry")
    description: str = Field("", description="Free-form description")

    model_config = ConfigDict(frozen=True)

    @field_validator("field_names")
    @classmethod
    def validate_fields(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        if not v:
            raise ValueError("schema must declare at least one field")
        if len(set(v)) != len(v):
            raise ValueError(f"schema fields must be unique, got {list(v)}")
        for name in v:
            if name != clean_field_name(name) or " " in name:
                raise ValueError(
                    f"canonical field '{name}' must be lower-case without spaces"
                )
        return v

    @field_validator("aliases")
    @classmethod
    def validate_aliases(cls, v: Dict[str, str]) -> Dict[str, str]:
        # Store keys in lookup form so that resolution is a plain dict hit
        return {clean_field_name(variant): target for variant, target in v.items()}

    @field_validator("accepted_extensions")
    @classmethod
    def validate_extensions(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        cleaned = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext.startswith("."):
                ext = f".{ext}"
            cleaned.append(ext)
        return tuple(cleaned)

    @model_validator(mode="after")
    def validate_references(self) -> "Schema":
        known = set(self.field_names)
        for variant, target in self.aliases.items():
            if target not in known:
                raise ValueError(
                    f"alias '{variant}' points to unknown field '{target}'"
                )
        for constraint in self.constraints:
            if constraint.kind == ConstraintKind.GEOMETRY:
                if not self.spatial:
                    raise ValueError(
                        f"schema '{self.name}' is not spatial but declares a geometry constraint"
                    )
            elif constraint.field not in known:
                raise ValueError(
                    f"constraint references unknown field '{constraint.field}'"
                )
        return self

    def resolve_field(self, raw_name: object) -> str:
        """
        Map a raw header to its canonical name.

        Unknown headers resolve to their cleaned form, which is only kept by
        the normalizer when it happens to be canonical.
        """
        cleaned = clean_field_name(raw_name)
        return self.aliases.get(cleaned, cleaned)

    def is_canonical(self, name: str) -> bool:
        return name in self.field_names

    def accepts(self, extension: str) -> bool:
        return extension.lower() in self.accepted_extensions
