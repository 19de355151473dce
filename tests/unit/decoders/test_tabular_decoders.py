"""Unit tests for the CSV, JSON and XLSX decoders."""

import io
import json
import zipfile
from datetime import datetime

import pytest

from agri_upload.decoders import CsvDecoder, JsonDecoder, XlsxDecoder
from agri_upload.errors import DecodeError


# =============================================================================
# Test: CsvDecoder
# =============================================================================

class TestCsvDecoder:
    """Test CSV decoding."""

    def test_reads_rows_in_order(self, farmer_csv_bytes):
        records = CsvDecoder().decode(farmer_csv_bytes, "farmers.csv")
        assert len(records) == 2
        assert records[0].attributes["Farmer Id"] == "101"
        assert records[0].attributes["Farmer Name"] == "Ramesh Kumar"
        assert records[1].attributes["Farmer Id"] == "102"

    def test_empty_cells_are_empty_strings(self, farmer_csv_bytes):
        records = CsvDecoder().decode(farmer_csv_bytes, "farmers.csv")
        assert records[1].attributes["Farmer Name"] == ""

    def test_values_stay_strings(self):
        data = b"parcel_id,farmer_id,onboarding_date\n007,0101,2024-03-01\n"
        record = CsvDecoder().decode(data, "parcels.csv")[0]
        assert record.attributes == {
            "parcel_id": "007",
            "farmer_id": "0101",
            "onboarding_date": "2024-03-01",
        }
        assert record.geometry is None

    def test_quoted_values_with_commas(self):
        data = b'farmer_name,village\n"Kumar, Ramesh","Rampur"\n'
        record = CsvDecoder().decode(data, "farmers.csv")[0]
        assert record.attributes["farmer_name"] == "Kumar, Ramesh"

    def test_header_only(self):
        assert CsvDecoder().decode(b"farmer_id,farmer_name\n", "farmers.csv") == []

    def test_ragged_row_is_rejected(self):
        data = b"farmer_id,farmer_name\n1,Sita,extra\n"
        with pytest.raises(DecodeError, match="CSV parsing error") as exc_info:
            CsvDecoder().decode(data, "farmers.csv")
        assert exc_info.value.file_name == "farmers.csv"

    def test_empty_file_is_rejected(self):
        with pytest.raises(DecodeError):
            CsvDecoder().decode(b"", "farmers.csv")


# =============================================================================
# Test: JsonDecoder
# =============================================================================

class TestJsonDecoder:
    """Test JSON and GeoJSON decoding."""

    def test_single_object_is_one_record(self):
        data = json.dumps({"Farmer Id": 7, "Farmer Name": "Sita"}).encode()
        records = JsonDecoder().decode(data, "farmer.json")
        assert len(records) == 1
        assert records[0].attributes == {"Farmer Id": 7, "Farmer Name": "Sita"}

    def test_array_of_objects(self):
        data = json.dumps([{"farmer_id": 1}, {"farmer_id": 2}]).encode()
        records = JsonDecoder().decode(data, "farmers.json")
        assert [r.attributes["farmer_id"] for r in records] == [1, 2]

    def test_empty_array(self):
        assert JsonDecoder().decode(b"[]", "farmers.json") == []

    def test_utf8_bom_is_accepted(self):
        data = b"\xef\xbb\xbf" + json.dumps({"farmer_id": 1}).encode()
        assert len(JsonDecoder().decode(data, "farmer.json")) == 1

    def test_feature_collection(self, parcel_polygon):
        document = {
            "type": "FeatureCollection",
            "features": [
                {"type": "Feature", "properties": {"parcel_id": "P1"}, "geometry": parcel_polygon},
                {"type": "Feature", "properties": None, "geometry": None},
            ],
        }
        records = JsonDecoder().decode(json.dumps(document).encode(), "parcels.geojson")
        assert len(records) == 2
        assert records[0].attributes == {"parcel_id": "P1"}
        assert records[0].geometry == parcel_polygon
        assert records[1].attributes == {}

    def test_single_feature(self, parcel_polygon):
        document = {"type": "Feature", "properties": {"parcel_id": "P1"}, "geometry": parcel_polygon}
        records = JsonDecoder().decode(json.dumps(document).encode(), "parcel.geojson")
        assert records[0].geometry["type"] == "Polygon"

    def test_malformed_json(self):
        with pytest.raises(DecodeError, match="JSON parsing error"):
            JsonDecoder().decode(b'{"farmer_id": ', "farmer.json")

    def test_scalar_document_is_rejected(self):
        with pytest.raises(DecodeError, match="object or an array"):
            JsonDecoder().decode(b"42", "farmer.json")

    def test_array_of_scalars_is_rejected(self):
        with pytest.raises(DecodeError, match="item 1 is not an object"):
            JsonDecoder().decode(b'[{"a": 1}, 2]', "farmers.json")

    def test_feature_collection_without_features(self):
        with pytest.raises(DecodeError, match="features array"):
            JsonDecoder().decode(b'{"type": "FeatureCollection"}', "parcels.geojson")

    def test_feature_collection_with_scalar_feature(self, parcel_polygon):
        document = {
            "type": "FeatureCollection",
            "features": [
                {"type": "Feature", "properties": {"parcel_id": "P1"}, "geometry": parcel_polygon},
                "P2",
            ],
        }
        with pytest.raises(DecodeError, match="feature 1 is not an object"):
            JsonDecoder().decode(json.dumps(document).encode(), "parcels.geojson")


# =============================================================================
# Test: XlsxDecoder
# =============================================================================

class TestXlsxDecoder:
    """Test Excel workbook decoding."""

    def test_reads_first_sheet(self, make_xlsx):
        data = make_xlsx(
            [
                ["Project Id", "Parcel Id", "Farmer Id", "Onboarding Date", "Area (ha)", "Farmer Name"],
                ["PRJ-7", "PCL-0001", 101, datetime(2024, 3, 1), 2.75, "Ramesh Kumar"],
            ],
            extra_sheet=True,
        )
        records = XlsxDecoder().decode(data, "parcels.xlsx")
        assert len(records) == 1
        attributes = records[0].attributes
        assert attributes["Parcel Id"] == "PCL-0001"
        assert attributes["Farmer Id"] == 101
        assert attributes["Onboarding Date"] == datetime(2024, 3, 1)
        assert attributes["Area (ha)"] == 2.75

    def test_blank_rows_are_skipped(self, make_xlsx):
        data = make_xlsx(
            [
                ["parcel_id", "area_ha"],
                ["P1", 1.5],
                [None, None],
                ["P2", None],
            ]
        )
        records = XlsxDecoder().decode(data, "parcels.xlsx")
        assert [r.attributes["parcel_id"] for r in records] == ["P1", "P2"]
        assert records[1].attributes["area_ha"] == ""

    def test_blank_header_columns_are_ignored(self, make_xlsx):
        data = make_xlsx([["parcel_id", None, "area_ha"], ["P1", "junk", 3]])
        record = XlsxDecoder().decode(data, "parcels.xlsx")[0]
        assert record.attributes == {"parcel_id": "P1", "area_ha": 3}

    def test_empty_workbook(self, make_xlsx):
        assert XlsxDecoder().decode(make_xlsx([]), "parcels.xlsx") == []

    def test_not_a_workbook(self):
        with pytest.raises(DecodeError, match="XLSX parsing error"):
            XlsxDecoder().decode(b"parcel_id,area_ha\nP1,2\n", "parcels.xlsx")

    def test_corrupt_worksheet_part(self, make_xlsx):
        """Sheet XML is parsed lazily in read-only mode; errors still map to DecodeError."""
        original = make_xlsx([["parcel_id", "area_ha"], ["P1", 2]])
        buffer = io.BytesIO()
        with zipfile.ZipFile(io.BytesIO(original)) as source, zipfile.ZipFile(buffer, "w") as target:
            for item in source.infolist():
                content = source.read(item.filename)
                if item.filename == "xl/worksheets/sheet1.xml":
                    content = b"<worksheet><sheetData><row><c"
                target.writestr(item, content)

        with pytest.raises(DecodeError, match="XLSX parsing error") as exc_info:
            XlsxDecoder().decode(buffer.getvalue(), "parcels.xlsx")
        assert exc_info.value.file_name == "parcels.xlsx"
