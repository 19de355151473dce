"""Unit tests for the reconciliation store (ingest, edit, approve)."""

import pytest

from agri_upload.errors import ApprovalRejected
from agri_upload.models import RawRecord
from agri_upload.reconcile import ReconciliationStore, WorkingSet


@pytest.fixture
def farmer_rows(valid_farmer_row):
    """Three rows: valid, missing name, missing village and bad id."""
    return [
        valid_farmer_row,
        dict(valid_farmer_row, **{"Farmer Id": "102", "Farmer Name": ""}),
        dict(valid_farmer_row, **{"Farmer Id": "abc", "Village": ""}),
    ]


@pytest.fixture
def store(farmer_schema, farmer_rows):
    store = ReconciliationStore()
    store.ingest(farmer_rows, farmer_schema, file_name="farmers.csv")
    return store


# =============================================================================
# Test: ingest
# =============================================================================

class TestIngest:
    """Test partitioning of a freshly decoded batch."""

    def test_partitions_records(self, store):
        assert store.counts == (1, 2)
        assert store.working_set.file_name == "farmers.csv"

    def test_returns_counts(self, farmer_schema, farmer_rows):
        assert ReconciliationStore().ingest(farmer_rows, farmer_schema) == (1, 2)

    def test_invalid_records_carry_violations(self, store):
        assert store.invalid[0].violations == ["farmer_name is required"]
        assert store.invalid[1].violations == [
            "village is required",
            "farmer_id must be a valid number",
        ]

    def test_valid_records_have_no_violations(self, store):
        assert store.valid[0].violations == []

    def test_preserves_input_order_within_partitions(self, store):
        assert [r.values["farmer_id"] for r in store.invalid] == ["102", "abc"]

    def test_every_input_lands_in_exactly_one_partition(self, farmer_schema, farmer_rows):
        store = ReconciliationStore()
        valid, invalid = store.ingest(farmer_rows * 3, farmer_schema)
        assert valid + invalid == 9

    def test_replaces_previous_state(self, store, farmer_schema, valid_farmer_row):
        store.ingest([valid_farmer_row], farmer_schema, file_name="second.csv")
        assert store.counts == (1, 0)
        assert store.working_set.file_name == "second.csv"

    def test_accepts_raw_records(self, boundary_schema, valid_parcel_row, parcel_polygon):
        store = ReconciliationStore()
        store.ingest(
            [
                RawRecord(attributes=valid_parcel_row, geometry=parcel_polygon),
                RawRecord(attributes=valid_parcel_row),
            ],
            boundary_schema,
        )
        assert store.counts == (1, 1)
        assert store.invalid[0].violations == ["geometry is required"]

    def test_empty_batch(self, farmer_schema):
        store = ReconciliationStore()
        assert store.ingest([], farmer_schema) == (0, 0)

    def test_failed_ingest_keeps_previous_state(self, store, farmer_schema):
        def exploding():
            yield {"Farmer Name": "Sita"}
            raise RuntimeError("reader died")

        with pytest.raises(RuntimeError):
            store.ingest(exploding(), farmer_schema, file_name="broken.csv")
        assert store.counts == (1, 2)
        assert store.working_set.file_name == "farmers.csv"

    def test_columns_follow_schema(self, store, farmer_schema):
        assert store.columns == farmer_schema.field_names
        assert ReconciliationStore().columns == ()


# =============================================================================
# Test: edit_field / approve
# =============================================================================

class TestEditAndApprove:
    """Test the correction loop for invalid rows."""

    def test_edit_does_not_revalidate(self, store):
        store.edit_field(0, "farmer_name", "Sita Devi")
        assert store.counts == (1, 2)
        assert store.invalid[0].values["farmer_name"] == "Sita Devi"
        assert store.invalid[0].violations == ["farmer_name is required"]

    def test_edit_stores_strings(self, store):
        store.edit_field(1, "farmer_id", 103)
        store.edit_field(1, "village", None)
        assert store.invalid[1].values["farmer_id"] == "103"
        assert store.invalid[1].values["village"] == ""

    def test_edit_unknown_field(self, store):
        with pytest.raises(KeyError, match="Unknown field"):
            store.edit_field(0, "crop", "paddy")

    @pytest.mark.parametrize("index", [-1, 2, 10])
    def test_edit_index_out_of_range(self, store, index):
        with pytest.raises(IndexError):
            store.edit_field(index, "farmer_name", "x")

    def test_approve_moves_record_to_valid(self, store):
        store.edit_field(0, "farmer_name", "Sita Devi")
        result = store.approve(0)

        assert result.is_valid is True
        assert store.counts == (2, 1)
        assert store.valid[-1].values["farmer_name"] == "Sita Devi"
        assert store.valid[-1].violations == []
        assert store.invalid[0].values["farmer_id"] == "abc"

    def test_approve_rejected_leaves_partition_unchanged(self, store):
        store.edit_field(1, "village", "Rampur")
        with pytest.raises(ApprovalRejected) as exc_info:
            store.approve(1)

        assert exc_info.value.index == 1
        assert exc_info.value.violations == ["farmer_id must be a valid number"]
        assert store.counts == (1, 2)
        # violations refreshed to the current list
        assert store.invalid[1].violations == ["farmer_id must be a valid number"]

    def test_approve_out_of_range(self, store):
        with pytest.raises(IndexError):
            store.approve(5)

    def test_valid_count_never_decreases(self, store):
        history = [store.counts[0]]
        for field, value in [("farmer_name", "Sita"), ("village", "Rampur")]:
            store.edit_field(0, field, value)
            try:
                store.approve(0)
            except ApprovalRejected:
                pass
            history.append(store.counts[0])
        assert history == sorted(history)
        assert sum(store.counts) == 3

    def test_approve_until_clean(self, store):
        store.edit_field(0, "farmer_name", "Sita")
        store.approve(0)
        store.edit_field(0, "farmer_id", "103")
        store.edit_field(0, "village", "Rampur")
        store.approve(0)
        assert store.counts == (3, 0)
        assert [r.values["farmer_id"] for r in store.valid] == ["101", "102", "103"]


# =============================================================================
# Test: payload / reset
# =============================================================================

class TestPayloadAndReset:

    def test_valid_payload_has_canonical_fields_only(self, store, farmer_schema):
        payload = store.valid_payload()
        assert len(payload) == 1
        assert set(payload[0]) == set(farmer_schema.field_names)

    def test_valid_payload_includes_geometry_for_spatial_schema(
        self, boundary_schema, valid_parcel_row, parcel_polygon
    ):
        store = ReconciliationStore()
        store.ingest([RawRecord(attributes=valid_parcel_row, geometry=parcel_polygon)], boundary_schema)
        assert store.valid_payload()[0]["geometry"] == parcel_polygon

    def test_reset(self, store):
        store.working_set.in_progress = "read"
        store.reset()
        assert store.counts == (0, 0)
        assert store.working_set == WorkingSet()
