"""Local-cache to remote-store migration and its status probe."""

from .engine import MigrationEngine, clear_local_buckets
from .results import JobResult, JobStatus, MigrationReport, MigrationStatus
from .status import probe_migration_status

__all__ = [
    "JobResult",
    "JobStatus",
    "MigrationEngine",
    "MigrationReport",
    "MigrationStatus",
    "clear_local_buckets",
    "probe_migration_status",
]
