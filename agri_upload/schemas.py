# =============================================================================
# Built-in Schemas
# =============================================================================
# Schema definitions for the three upload use cases:
# - farmer: farmer onboarding records (.csv / .kml / .json)
# - land_parcel: tabular parcel records (.csv / .xlsx)
# - land_parcel_boundary: parcel boundaries with geometry (.kml / .zip)
# =============================================================================

from typing import Dict, List

from agri_upload.models import ConstraintKind, FieldConstraint, Schema, SchemaFamily

__all__ = [
    "FARMER_SCHEMA",
    "LAND_PARCEL_SCHEMA",
    "LAND_PARCEL_BOUNDARY_SCHEMA",
    "SCHEMAS",
    "get_schema",
]


def _required(*fields: str) -> List[FieldConstraint]:
    return [FieldConstraint(kind=ConstraintKind.REQUIRED, field=f) for f in fields]


# Header variants shared by every schema. Keys are in lookup form
# (lower-case, single spaces); targets missing from a schema are filtered out.
_COMMON_ALIASES: Dict[str, str] = {
    "area (ha)": "area_ha",
    "area ha": "area_ha",
    "block name": "block",
    "district name": "district",
    "farmer id": "farmer_id",
    "farmer name": "farmer_name",
    "farmerid": "farmer_id",
    "farmername": "farmer_name",
    "gram panchayat": "gram_panchayat",
    "grampanchayat": "gram_panchayat",
    "onboarding date": "onboarding_date",
    "onboardingdate": "onboarding_date",
    "parcel id": "parcel_id",
    "parcelid": "parcel_id",
    "project id": "project_id",
    "projectid": "project_id",
    "state name": "state",
    "village name": "village",
}


def _aliases_for(fields: List[str]) -> Dict[str, str]:
    return {k: v for k, v in _COMMON_ALIASES.items() if v in fields}


# =============================================================================
# Farmer Records
# =============================================================================

_FARMER_FIELDS = [
    "farmer_id",
    "farmer_name",
    "project_id",
    "village",
    "gram_panchayat",
    "block",
    "district",
    "state",
    "parcel_id",
    "onboarding_date",
]

FARMER_SCHEMA = Schema(
    name="farmer",
    family=SchemaFamily.FARMER,
    field_names=tuple(_FARMER_FIELDS),
    aliases=_aliases_for(_FARMER_FIELDS),
    constraints=tuple(
        _required(
            "farmer_name",
            "project_id",
            "village",
            "gram_panchayat",
            "block",
            "district",
            "state",
            "parcel_id",
        )
        + [
            FieldConstraint(kind=ConstraintKind.POSITIVE_NUMBER, field="farmer_id"),
            FieldConstraint(kind=ConstraintKind.DATE, field="onboarding_date"),
        ]
    ),
    accepted_extensions=(".csv", ".kml", ".json"),
    description="Farmer onboarding records",
)


# =============================================================================
# Land Parcel Records
# =============================================================================

_LAND_PARCEL_FIELDS = [
    "project_id",
    "parcel_id",
    "farmer_id",
    "onboarding_date",
    "area_ha",
    "farmer_name",
]

_LAND_PARCEL_CONSTRAINTS = _required(
    "project_id",
    "parcel_id",
    "farmer_id",
    "onboarding_date",
    "farmer_name",
) + [
    FieldConstraint(
        kind=ConstraintKind.POSITIVE_NUMBER,
        field="area_ha",
        message="area_ha must be a positive number",
    ),
]

LAND_PARCEL_SCHEMA = Schema(
    name="land_parcel",
    family=SchemaFamily.LAND_PARCEL,
    field_names=tuple(_LAND_PARCEL_FIELDS),
    aliases=_aliases_for(_LAND_PARCEL_FIELDS),
    constraints=tuple(_LAND_PARCEL_CONSTRAINTS),
    accepted_extensions=(".csv", ".xlsx"),
    description="Land parcel attribute records",
)

LAND_PARCEL_BOUNDARY_SCHEMA = Schema(
    name="land_parcel_boundary",
    family=SchemaFamily.LAND_PARCEL,
    field_names=tuple(_LAND_PARCEL_FIELDS),
    aliases=_aliases_for(_LAND_PARCEL_FIELDS),
    constraints=tuple(
        _LAND_PARCEL_CONSTRAINTS + [FieldConstraint(kind=ConstraintKind.GEOMETRY)]
    ),
    accepted_extensions=(".kml", ".zip", ".geojson"),
    spatial=True,
    description="Land parcel boundaries with geometry",
)


SCHEMAS: Dict[str, Schema] = {
    schema.name: schema
    for schema in (FARMER_SCHEMA, LAND_PARCEL_SCHEMA, LAND_PARCEL_BOUNDARY_SCHEMA)
}


def get_schema(name: str) -> Schema:
    """
    Look up a built-in schema by name.

    Raises:
        KeyError: If no schema with that name exists
    """
    try:
        return SCHEMAS[name]
    except KeyError:
        raise KeyError(
            f"Unknown schema '{name}'. Available: {', '.join(sorted(SCHEMAS))}"
        ) from None
