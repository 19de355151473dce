# =============================================================================
# Cancellation Token
# =============================================================================
# Cooperative cancellation for long-running reads and submissions.
# Operations check the token at their stage boundaries; a request already on
# the wire is not interrupted.
# =============================================================================

import threading

from agri_upload.errors import OperationCancelled

__all__ = ["CancellationToken"]


class CancellationToken:
    """Thread-safe flag checked by workflow operations between stages."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str = "") -> None:
        """
        Raises:
            OperationCancelled: If cancel() has been called
        """
        if self._event.is_set():
            suffix = f" before {stage}" if stage else ""
            raise OperationCancelled(f"Operation cancelled{suffix}")
