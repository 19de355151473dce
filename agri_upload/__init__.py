# =============================================================================
# Agri Upload Library
# =============================================================================
# Ingest -> normalize -> validate -> reconcile -> submit pipeline for farmer
# and land-parcel uploads. See individual modules for detailed documentation.
# =============================================================================

"""
Farmer / land-parcel upload pipeline.

Sub-packages and modules:
- models: Pydantic schema, record and configuration models
- decoders: CSV, JSON/GeoJSON, KML, XLSX and shapefile-ZIP decoders
- normalization: Header/field normalization onto a schema
- validation: Constraint evaluation
- reconcile: Valid/invalid working set with edit-and-approve
- submission: Batch upload to the remote ingestion endpoints
- workflow: Per-file orchestration of the above
"""

__version__ = "0.1.0"
