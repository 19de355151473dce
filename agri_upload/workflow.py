# =============================================================================
# Upload Workflow
# =============================================================================
# One upload workflow per schema: select a file, read & validate it, fix
# invalid rows, send the valid rows. Reads and sends are mutually exclusive
# for a workflow's working set, and rows cannot be edited while a send is
# outstanding.
# =============================================================================

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Tuple, Union

from agri_upload.cancellation import CancellationToken
from agri_upload.decoders import decode
from agri_upload.errors import OperationInProgress, UploadError
from agri_upload.models import Record, Schema, SubmissionResult, ValidationResult
from agri_upload.normalization import unrecognized_fields
from agri_upload.reconcile import ReconciliationStore
from agri_upload.submission import SubmissionClient

__all__ = ["UploadWorkflow"]

log = logging.getLogger(__name__)

READ = "read"
SEND = "send"


class UploadWorkflow:
    """
    Schema-parametrized upload pipeline.

    The workflow exclusively owns one ReconciliationStore. Selecting a new
    file discards all prior state.

    Usage:
        workflow = UploadWorkflow(FARMER_SCHEMA, client)
        workflow.select_file("farmers.csv", data)
        valid, invalid = workflow.read_file()
        workflow.edit_field(0, "farmer_name", "Ramesh")
        workflow.approve(0)
        workflow.send()
    """

    def __init__(self, schema: Schema, client: Optional[SubmissionClient] = None) -> None:
        self.schema = schema
        self.store = ReconciliationStore(schema)
        self._client = client
        self._file_data: Optional[bytes] = None
        self._lock = threading.Lock()
        self.dropped_columns: List[str] = []

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------
    @property
    def file_name(self) -> Optional[str]:
        return self.store.working_set.file_name

    @property
    def in_progress(self) -> Optional[str]:
        return self.store.working_set.in_progress

    @property
    def valid(self) -> List[Record]:
        return self.store.valid

    @property
    def invalid(self) -> List[Record]:
        return self.store.invalid

    @property
    def can_read(self) -> bool:
        return self._file_data is not None and self.in_progress is None

    @property
    def can_send(self) -> bool:
        return bool(self.store.valid) and self.in_progress is None

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            raise OperationInProgress(
                f"Cannot start '{name}' while '{self.in_progress}' is running"
            )
        self.store.working_set.in_progress = name
        try:
            yield
        finally:
            self.store.working_set.in_progress = None
            self._lock.release()

    def _ensure_idle(self, action: str) -> None:
        if self.in_progress is not None:
            raise OperationInProgress(
                f"Cannot {action} while '{self.in_progress}' is running"
            )

    # -------------------------------------------------------------------------
    # File selection
    # -------------------------------------------------------------------------
    def select_file(self, file_name: str, data: bytes) -> None:
        """Select a new file, discarding every record of the previous one."""
        self._ensure_idle("select a file")
        self.reset()
        self._file_data = data
        self.store.working_set.file_name = file_name
        log.info(f"Selected {file_name} ({len(data)} bytes) for schema '{self.schema.name}'")

    def select_path(self, path: Union[str, Path]) -> None:
        path = Path(path)
        self.select_file(path.name, path.read_bytes())

    def reset(self) -> None:
        """Clear the file reference, both partitions and any progress state."""
        self.store.reset()
        self._file_data = None
        self.dropped_columns = []

    # -------------------------------------------------------------------------
    # Read & validate
    # -------------------------------------------------------------------------
    def read_file(self, cancel_token: Optional[CancellationToken] = None) -> Tuple[int, int]:
        """
        Decode, normalize and validate the selected file.

        On any error the working set is left exactly as it was.

        Returns:
            (valid_count, invalid_count)

        Raises:
            UploadError: If no file is selected
            UnsupportedFormat / DecodeError: If the file cannot be read
            OperationInProgress: If a read or send is already running
            OperationCancelled: If the token is cancelled between stages
        """
        if self._file_data is None:
            raise UploadError(
                f"Please select a {' / '.join(self.schema.accepted_extensions)} file first"
            )

        with self._operation(READ):
            file_name = self.file_name
            if cancel_token:
                cancel_token.raise_if_cancelled("decode")
            raw_records = decode(self._file_data, file_name, schema=self.schema)

            if cancel_token:
                cancel_token.raise_if_cancelled("validation")

            dropped: List[str] = []
            for raw in raw_records:
                for key in unrecognized_fields(raw, self.schema):
                    if key not in dropped:
                        dropped.append(key)

            counts = self.store.ingest(raw_records, self.schema, file_name=file_name)
            self.dropped_columns = dropped
            if dropped:
                log.info(f"Ignored columns not in schema '{self.schema.name}': {dropped}")
            return counts

    # -------------------------------------------------------------------------
    # Edit & approve
    # -------------------------------------------------------------------------
    def edit_field(self, invalid_index: int, field_name: str, new_value: Any) -> Record:
        self._ensure_idle("edit rows")
        return self.store.edit_field(invalid_index, field_name, new_value)

    def approve(self, invalid_index: int) -> ValidationResult:
        self._ensure_idle("approve rows")
        return self.store.approve(invalid_index)

    # -------------------------------------------------------------------------
    # Send
    # -------------------------------------------------------------------------
    def send(self, cancel_token: Optional[CancellationToken] = None) -> Optional[SubmissionResult]:
        """
        Submit the valid partition. The working set is not modified.

        Returns:
            SubmissionResult, or None when there are no valid records

        Raises:
            SubmissionFailure: If the endpoint rejects the batch
            OperationInProgress: If a read or send is already running
            OperationCancelled: If the token is cancelled before the request
        """
        with self._operation(SEND):
            if not self.store.valid:
                log.info("Nothing to send: no valid records")
                return None
            if cancel_token:
                cancel_token.raise_if_cancelled("submission")
            if self._client is None:
                self._client = SubmissionClient()
            return self._client.submit(list(self.store.valid), self.schema)
