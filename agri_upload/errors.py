# =============================================================================
# Upload Errors
# =============================================================================
# Error taxonomy for the upload pipeline. Decode and submission errors abort
# the current operation only; per-record validation failures are not raised
# by the pipeline (the record is partitioned into the invalid set instead).
# =============================================================================

from typing import List, Optional

__all__ = [
    "UploadError",
    "UnsupportedFormat",
    "DecodeError",
    "ValidationFailure",
    "ApprovalRejected",
    "SubmissionFailure",
    "OperationInProgress",
    "OperationCancelled",
    "AuthenticationError",
]


class UploadError(Exception):
    """Base class for every error raised by the upload pipeline."""


class UnsupportedFormat(UploadError):
    """The file extension has no decoder (or is not accepted by the schema)."""

    def __init__(self, extension: str, accepted: Optional[List[str]] = None):
        self.extension = extension
        self.accepted = list(accepted or [])
        shown = extension or "<none>"
        message = f"Unsupported file type '{shown}'"
        if self.accepted:
            message += f". Use {', '.join(self.accepted)}"
        super().__init__(message)


class DecodeError(UploadError):
    """File content could not be parsed. No partial record set is produced."""

    def __init__(self, message: str, file_name: Optional[str] = None):
        self.file_name = file_name
        super().__init__(message)


class ValidationFailure(UploadError):
    """A single record broke one or more schema constraints."""

    def __init__(self, violations: List[str]):
        self.violations = list(violations)
        super().__init__("; ".join(self.violations) or "record is invalid")


class ApprovalRejected(UploadError):
    """An edited record still fails validation, so it stays in the invalid set."""

    def __init__(self, index: int, violations: List[str]):
        self.index = index
        self.violations = list(violations)
        super().__init__(
            f"Row {index} is still invalid: {'; '.join(self.violations)}"
        )


class SubmissionFailure(UploadError):
    """The remote ingestion endpoint rejected the batch or was unreachable."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class OperationInProgress(UploadError):
    """A read or send is already running for this working set."""


class OperationCancelled(UploadError):
    """The operation was cancelled through its cancellation token."""


class AuthenticationError(UploadError):
    """Login was refused or the login endpoint could not be reached."""
