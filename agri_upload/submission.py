# =============================================================================
# Submission Client - Remote Ingestion Endpoints
# =============================================================================
# Sends the valid partition of a working set to the schema family's
# ingestion endpoint as one JSON array. No retries; the working set is never
# modified, so the caller decides whether to reset or let the user retry.
# =============================================================================

import logging
from typing import Any, Optional, Sequence

import httpx

from agri_upload.errors import SubmissionFailure
from agri_upload.models import Record, Schema, SubmissionResult, UploadSettings, get_settings

__all__ = ["SubmissionClient"]

log = logging.getLogger(__name__)


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _error_message(response: httpx.Response) -> str:
    """Server-provided message when present, else one built from the status."""
    body = _json_body(response)
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return f"HTTP {response.status_code}"


def _optional_count(value: Any) -> Optional[int]:
    try:
        count = int(value)
    except (TypeError, ValueError):
        return None
    return count if count >= 0 else None


class SubmissionClient:
    """Client for the remote ingestion endpoints."""

    def __init__(
        self,
        settings: Optional[UploadSettings] = None,
        client: Optional[httpx.Client] = None,
        token: Optional[str] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            settings: Endpoint/timeout configuration (default: get_settings())
            client: httpx client to send requests with (default: a new one)
            token: Bearer token attached to every request, if any
        """
        self._settings = settings or get_settings()
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=self._settings.timeout_seconds)
        self.token = token

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "SubmissionClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def submit(self, records: Sequence[Record], schema: Schema) -> Optional[SubmissionResult]:
        """
        Submit a batch of valid records.

        Args:
            records: Valid records (the working set's valid partition)
            schema: Schema the records belong to; selects the endpoint

        Returns:
            SubmissionResult, or None when there was nothing to send (no
            request is made for an empty batch)

        Raises:
            SubmissionFailure: Non-2xx response or transport error
        """
        if not records:
            log.info("No valid records to submit; skipping request")
            return None

        url = self._settings.endpoint_for(schema.family)
        payload = [record.to_payload(include_geometry=schema.spatial) for record in records]

        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        log.info(f"Uploading {len(payload)} '{schema.name}' records to {url}")
        try:
            response = self._client.post(
                url,
                json=payload,
                headers=headers,
                timeout=self._settings.timeout_seconds,
            )
        except httpx.HTTPError as e:
            log.warning(f"Upload to {url} failed: {e}")
            raise SubmissionFailure(f"Upload failed: {e}") from e

        if not response.is_success:
            message = _error_message(response)
            log.warning(f"Upload to {url} rejected ({response.status_code}): {message}")
            raise SubmissionFailure(message, status_code=response.status_code)

        body = _json_body(response)
        if not isinstance(body, dict):
            body = {}

        inserted = _optional_count(body.get("inserted"))
        if inserted is None:
            # Server did not report a count; it accepted the whole batch
            inserted = len(payload)

        result = SubmissionResult(
            inserted=inserted,
            failed=_optional_count(body.get("failed")),
            message=body.get("message") if isinstance(body.get("message"), str) else None,
        )
        log.info(f"Upload complete: inserted={result.inserted}, failed={result.failed}")
        return result
