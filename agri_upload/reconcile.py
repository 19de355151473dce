# =============================================================================
# Reconciliation Store
# =============================================================================
# Holds the valid/invalid partition produced by one ingest pass and applies
# the edit-and-approve loop that moves corrected rows into the valid set.
#
# Row identity is positional (tables bind rows to list positions), so an
# operation only ever touches the row it addresses: approve pops one invalid
# row and appends it to the valid list; nothing else moves.
# =============================================================================

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from agri_upload.errors import ApprovalRejected
from agri_upload.models import RawRecord, Record, Schema, ValidationResult
from agri_upload.normalization import normalize
from agri_upload.validation import validate

__all__ = ["WorkingSet", "ReconciliationStore"]

log = logging.getLogger(__name__)


@dataclass
class WorkingSet:
    """
    Valid/invalid partition of the records of one uploaded file.

    Attributes:
        valid: Records that passed validation (initially or via approve)
        invalid: Records awaiting correction
        file_name: Name of the file the records came from
        in_progress: Name of the operation currently running, if any
    """

    valid: List[Record] = field(default_factory=list)
    invalid: List[Record] = field(default_factory=list)
    file_name: Optional[str] = None
    in_progress: Optional[str] = None

    def clear(self) -> None:
        self.valid = []
        self.invalid = []
        self.file_name = None
        self.in_progress = None


class ReconciliationStore:
    """
    Owner of one WorkingSet and the operations that mutate it.

    Records only ever move from ``invalid`` to ``valid`` and only through
    ``approve``; accepted rows are never re-validated implicitly.
    """

    def __init__(self, schema: Optional[Schema] = None) -> None:
        self.schema = schema
        self.working_set = WorkingSet()

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------
    @property
    def valid(self) -> List[Record]:
        return self.working_set.valid

    @property
    def invalid(self) -> List[Record]:
        return self.working_set.invalid

    @property
    def counts(self) -> Tuple[int, int]:
        """(valid, invalid) record counts."""
        return len(self.working_set.valid), len(self.working_set.invalid)

    @property
    def columns(self) -> Tuple[str, ...]:
        """Column order for display: the schema's canonical fields."""
        return self.schema.field_names if self.schema else ()

    def valid_payload(self) -> List[Dict[str, Any]]:
        """Serialize the valid partition for submission."""
        include_geometry = bool(self.schema and self.schema.spatial)
        return [record.to_payload(include_geometry) for record in self.working_set.valid]

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------
    def ingest(
        self,
        raw_records: Iterable[Union[RawRecord, Dict[str, Any]]],
        schema: Schema,
        file_name: Optional[str] = None,
    ) -> Tuple[int, int]:
        """
        Normalize and validate every record, replacing any prior state.

        The new partition is built completely before it is installed, so a
        failure part-way leaves the previous working set untouched.

        Returns:
            (valid_count, invalid_count)
        """
        valid: List[Record] = []
        invalid: List[Record] = []

        for raw in raw_records:
            record = normalize(raw, schema)
            result = validate(record, schema)
            if result.is_valid:
                valid.append(record)
            else:
                record.violations = result.violations
                invalid.append(record)

        self.schema = schema
        self.working_set.valid = valid
        self.working_set.invalid = invalid
        self.working_set.file_name = file_name

        log.info(
            f"Validation complete for schema '{schema.name}': "
            f"{len(valid)} valid, {len(invalid)} invalid"
        )
        return len(valid), len(invalid)

    def _invalid_record(self, invalid_index: int) -> Record:
        invalid = self.working_set.invalid
        if not 0 <= invalid_index < len(invalid):
            raise IndexError(
                f"Invalid row index {invalid_index} (have {len(invalid)} invalid rows)"
            )
        return invalid[invalid_index]

    def edit_field(self, invalid_index: int, field_name: str, new_value: Any) -> Record:
        """
        Change one field of one invalid record. Does not re-validate.

        Raises:
            IndexError: If no invalid record sits at that position
            KeyError: If the field is not one of the schema's canonical fields
        """
        record = self._invalid_record(invalid_index)
        if field_name not in record.values:
            raise KeyError(f"Unknown field '{field_name}'")
        record.values[field_name] = "" if new_value is None else str(new_value)
        return record

    def approve(self, invalid_index: int) -> ValidationResult:
        """
        Re-validate an edited record and move it to the valid set if it passes.

        On success the record is removed from ``invalid`` and appended to
        ``valid``. On failure it stays where it is, its violations are
        refreshed, and ``ApprovalRejected`` carries the current list.

        Raises:
            IndexError: If no invalid record sits at that position
            ApprovalRejected: If the record still fails validation
        """
        record = self._invalid_record(invalid_index)
        result = validate(record, self.schema)

        if not result.is_valid:
            record.violations = result.violations
            log.warning(
                f"Approval rejected for row {invalid_index}: {result.violations}"
            )
            raise ApprovalRejected(invalid_index, result.violations)

        record.violations = []
        self.working_set.invalid.pop(invalid_index)
        self.working_set.valid.append(record)

        valid_count, invalid_count = self.counts
        log.info(f"Row approved. Valid: {valid_count}, Invalid: {invalid_count}")
        return result

    def reset(self) -> None:
        """Clear both partitions and the associated file/progress state."""
        self.working_set.clear()
