"""
Shared pytest fixtures for the upload pipeline tests.

Provides reusable file payloads, records and HTTP mocks to avoid
duplication across test files.
"""

import io
import json
from typing import Callable, List

import httpx
import openpyxl
import pytest

from agri_upload.models import UploadSettings
from agri_upload.schemas import (
    FARMER_SCHEMA,
    LAND_PARCEL_BOUNDARY_SCHEMA,
    LAND_PARCEL_SCHEMA,
)


# =============================================================================
# Schema Fixtures
# =============================================================================

@pytest.fixture
def farmer_schema():
    return FARMER_SCHEMA


@pytest.fixture
def land_parcel_schema():
    return LAND_PARCEL_SCHEMA


@pytest.fixture
def boundary_schema():
    return LAND_PARCEL_BOUNDARY_SCHEMA


# =============================================================================
# Record Fixtures
# =============================================================================

@pytest.fixture
def valid_farmer_row():
    """Raw farmer row using the header spellings found in real uploads."""
    return {
        "Farmer Id": "101",
        "Farmer Name": "Ramesh Kumar",
        "Project Id": "PRJ-7",
        "Village": "Kothapalli",
        "Gram Panchayat": "Kothapalli GP",
        "Block": "Medak",
        "District": "Medak",
        "State": "Telangana",
        "Parcel Id": "PCL-0001",
        "OnboardingDate": "2024-03-01",
    }


@pytest.fixture
def valid_parcel_row():
    return {
        "project_id": "PRJ-7",
        "parcel_id": "PCL-0001",
        "farmer_id": "101",
        "onboarding_date": "2024-03-01",
        "area_ha": "2.75",
        "farmer_name": "Ramesh Kumar",
    }


@pytest.fixture
def parcel_polygon():
    """GeoJSON polygon around a small field."""
    return {
        "type": "Polygon",
        "coordinates": [
            [
                [78.10, 17.50],
                [78.11, 17.50],
                [78.11, 17.51],
                [78.10, 17.51],
                [78.10, 17.50],
            ]
        ],
    }


# =============================================================================
# File Payload Fixtures
# =============================================================================

@pytest.fixture
def farmer_csv_bytes():
    """Farmer CSV with one valid row and one row missing the farmer name."""
    return (
        '"Farmer Id","Farmer Name","Project Id","Village","Gram Panchayat",'
        '"Block","District","State","Parcel Id","OnboardingDate"\n'
        "101,Ramesh Kumar,PRJ-7,Kothapalli,Kothapalli GP,Medak,Medak,Telangana,PCL-0001,2024-03-01\n"
        "\n"
        "102,,PRJ-7,Kothapalli,Kothapalli GP,Medak,Medak,Telangana,PCL-0002,2024-03-02\n"
    ).encode("utf-8")


@pytest.fixture
def parcel_kml_bytes():
    """KML with two placemarks: one polygon with ExtendedData, one point."""
    return b"""<?xml version="1.0" encoding="UTF-8"?>
<kml xmlns="http://www.opengis.net/kml/2.2">
  <Document>
    <Folder>
      <Placemark>
        <name>Parcel 1</name>
        <ExtendedData>
          <Data name="project_id"><value>PRJ-7</value></Data>
          <Data name="parcel_id"><value>PCL-0001</value></Data>
          <Data name="farmer_id"><value>101</value></Data>
          <Data name="onboarding_date"><value>2024-03-01</value></Data>
          <Data name="area_ha"><value>2.75</value></Data>
          <Data name="farmer_name"><value>Ramesh Kumar</value></Data>
        </ExtendedData>
        <Polygon>
          <outerBoundaryIs>
            <LinearRing>
              <coordinates>
                78.10,17.50,0 78.11,17.50,0 78.11,17.51,0 78.10,17.51,0 78.10,17.50,0
              </coordinates>
            </LinearRing>
          </outerBoundaryIs>
        </Polygon>
      </Placemark>
    </Folder>
    <Placemark>
      <name>Well</name>
      <ExtendedData>
        <SchemaData schemaUrl="#parcels">
          <SimpleData name="parcel_id">PCL-0002</SimpleData>
          <SimpleData name="area_ha">-5</SimpleData>
        </SchemaData>
      </ExtendedData>
      <Point><coordinates>78.2,17.6</coordinates></Point>
    </Placemark>
  </Document>
</kml>
"""


@pytest.fixture
def make_xlsx() -> Callable[[List[list]], bytes]:
    """Build an in-memory workbook whose first sheet holds the given rows."""

    def _make(rows: List[list], extra_sheet: bool = False) -> bytes:
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = "Parcels"
        for row in rows:
            ws.append(row)
        if extra_sheet:
            other = wb.create_sheet("Notes")
            other.append(["ignored"])
        buffer = io.BytesIO()
        wb.save(buffer)
        return buffer.getvalue()

    return _make


# =============================================================================
# Configuration / HTTP Fixtures
# =============================================================================

@pytest.fixture
def settings():
    return UploadSettings(
        FARMER_UPLOAD_URL="https://ingest.test/api/farmerdata",
        LAND_PARCEL_UPLOAD_URL="https://ingest.test/api/land-parcel/upload",
        UPLOAD_TIMEOUT_SECONDS=5,
        AUTH_LOGIN_URL="https://ingest.test/api/auth/login",
    )


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler):
        self.requests: List[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    def json_bodies(self) -> list:
        return [json.loads(request.content) for request in self.requests]


@pytest.fixture
def recording_transport():
    """Factory: recording_transport(handler) -> RecordingTransport."""
    return RecordingTransport
