from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from ..domain.constants import MIGRATION_KINDS, TABLES


class JobStatus(str, Enum):
    NOOP = "noop"        # nothing cached locally; no remote call made
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class JobResult:
    """Outcome of one per-entity migration job."""

    kind: str
    status: JobStatus
    count: int = 0
    skipped: int = 0
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status is not JobStatus.FAILURE

    @classmethod
    def noop(cls, kind: str) -> "JobResult":
        return cls(kind=kind, status=JobStatus.NOOP)

    @classmethod
    def succeeded(cls, kind: str, count: int, *, skipped: int = 0) -> "JobResult":
        return cls(kind=kind, status=JobStatus.SUCCESS, count=count, skipped=skipped)

    @classmethod
    def failed(cls, kind: str, error: str, *, error_kind: str = "http") -> "JobResult":
        return cls(kind=kind, status=JobStatus.FAILURE, error=error, error_kind=error_kind)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": self.success, "count": self.count, "status": self.status.value}
        if self.skipped:
            out["skipped"] = self.skipped
        if self.error is not None:
            out["error"] = self.error
            out["errorKind"] = self.error_kind
        return out


@dataclass
class MigrationReport:
    batch_id: str
    guarded: bool
    results: Dict[str, JobResult] = field(default_factory=dict)

    @property
    def all_succeeded(self) -> bool:
        return all(r.success for r in self.results.values())

    @property
    def total_migrated(self) -> int:
        return sum(r.count for r in self.results.values())

    def __getitem__(self, kind: str) -> JobResult:
        return self.results[kind]

    def to_dict(self) -> Dict[str, Any]:
        """Payload keyed by table name (customers/products/appointments/finance)."""
        out: Dict[str, Any] = {TABLES[k]: self.results[k].to_dict() for k in MIGRATION_KINDS if k in self.results}
        out["batchId"] = self.batch_id
        out["guarded"] = self.guarded
        out["allSucceeded"] = self.all_succeeded
        return out


@dataclass
class MigrationStatus:
    has_local_data: bool
    has_remote_data: bool
    local_counts: Dict[str, int]
    remote_counts: Dict[str, int]
    remote_error: Optional[str] = None

    @property
    def migration_complete(self) -> bool:
        return not self.has_local_data and self.has_remote_data

    @property
    def can_migrate(self) -> bool:
        return self.has_local_data

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "hasLocalData": self.has_local_data,
            "hasSupabaseData": self.has_remote_data,
            "localDataCounts": {TABLES[k]: self.local_counts.get(k, 0) for k in MIGRATION_KINDS},
            "supabaseDataCounts": {TABLES[k]: self.remote_counts.get(k, 0) for k in MIGRATION_KINDS},
        }
        if self.remote_error:
            out["error"] = self.remote_error
        return out
