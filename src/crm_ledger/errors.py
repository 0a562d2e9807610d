from __future__ import annotations

from typing import List, Optional


class CrmLedgerError(Exception):
    """Base class for errors raised by crm_ledger."""


class ConfigError(CrmLedgerError):
    pass


class RemoteStoreError(CrmLedgerError):
    """A call to the remote record store failed.

    ``kind`` is one of ``http`` (non-2xx answer), ``network`` (transport
    failure or timeout) or ``decode`` (body was not the JSON we expected).
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None, kind: str = "http") -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.kind = kind


class MigrationInProgressError(CrmLedgerError):
    def __init__(self, batch_id: str, started_at: str) -> None:
        super().__init__(f"Migration batch {batch_id} already running since {started_at}")
        self.batch_id = batch_id
        self.started_at = started_at


class SagaError(CrmLedgerError):
    """A multi-step update failed; compensations were attempted."""

    def __init__(self, step: str, cause: Exception, compensation_errors: Optional[List[str]] = None) -> None:
        detail = f"step '{step}' failed: {cause}"
        if compensation_errors:
            detail += f" (compensation errors: {'; '.join(compensation_errors)})"
        super().__init__(detail)
        self.step = step
        self.cause = cause
        self.compensation_errors = list(compensation_errors or [])

    @property
    def fully_compensated(self) -> bool:
        return not self.compensation_errors
