# =============================================================================
# Record Models Module
# =============================================================================
# Defines the record shapes that flow through the pipeline:
# - RawRecord: decoder output (raw headers, optional geometry)
# - Record: canonical record (exactly the schema's fields)
# - ValidationResult: verdict for one record
# - SubmissionResult: server-reported outcome of a batch submission
# =============================================================================

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "GeoJSON",
    "RawRecord",
    "Record",
    "ValidationResult",
    "SubmissionResult",
]


GeoJSON = Dict[str, Any]
"""GeoJSON geometry mapping, e.g. {"type": "Point", "coordinates": [77.5, 12.9]}."""


class RawRecord(BaseModel):
    """
    One flat record as produced by a format decoder.

    Attributes:
        attributes: Raw header -> primitive value, in source order
        geometry: GeoJSON geometry for spatial inputs (None otherwise)
    """

    attributes: Dict[str, Any] = Field(default_factory=dict, description="Raw header -> value")
    geometry: Optional[GeoJSON] = Field(None, description="GeoJSON geometry")


class Record(BaseModel):
    """
    Canonical record bound to one schema.

    ``values`` always holds exactly the schema's canonical fields; fields
    that were absent from the input hold an empty string. ``violations``
    is populated when the record sits in the invalid partition.

    Attributes:
        values: Canonical field name -> string value
        geometry: GeoJSON geometry (spatial schemas only)
        violations: Ordered violation messages from the last validation
    """

    values: Dict[str, str] = Field(default_factory=dict, description="Canonical field -> value")
    geometry: Optional[GeoJSON] = Field(None, description="GeoJSON geometry")
    violations: List[str] = Field(default_factory=list, description="Last violations")

    model_config = ConfigDict(validate_assignment=True)

    def get(self, field: str, default: str = "") -> str:
        return self.values.get(field, default)

    def to_payload(self, include_geometry: bool = False) -> Dict[str, Any]:
        """
        Serialize for submission.

        Violations are never sent; geometry is only attached for spatial
        schemas.
        """
        payload: Dict[str, Any] = dict(self.values)
        if include_geometry:
            payload["geometry"] = self.geometry
        return payload


class ValidationResult(BaseModel):
    """Verdict for one record. Equal inputs always yield equal results."""

    is_valid: bool = Field(..., description="True when no constraint is broken")
    violations: List[str] = Field(default_factory=list, description="Ordered messages")

    model_config = ConfigDict(frozen=True)


class SubmissionResult(BaseModel):
    """
    Outcome reported by the ingestion endpoint for an accepted batch.

    Attributes:
        inserted: Number of records the server inserted
        failed: Number of records the server rejected, when reported
        message: Optional server message
    """

    inserted: int = Field(..., ge=0, description="Records inserted")
    failed: Optional[int] = Field(None, ge=0, description="Records rejected")
    message: Optional[str] = Field(None, description="Server message")
