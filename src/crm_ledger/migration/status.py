from __future__ import annotations

from typing import Dict

from ..domain.constants import MIGRATION_KINDS, TABLES
from ..errors import RemoteStoreError
from ..logging import get_logger
from ..store.base import LocalRepository, RecordStore
from .results import MigrationStatus

LOG = get_logger("migration-status")


def probe_migration_status(local: LocalRepository, remote: RecordStore) -> MigrationStatus:
    """Count local and remote records per entity kind (read-only).

    If any remote count fails, the remote side is reported as empty and the
    error message is attached.
    """
    local_counts: Dict[str, int] = {kind: local.count(kind) for kind in MIGRATION_KINDS}

    remote_error = None
    try:
        remote_counts = {kind: remote.count(TABLES[kind]) for kind in MIGRATION_KINDS}
    except RemoteStoreError as e:
        LOG.warning(f"Remote count failed; reporting remote store as empty: {e.message}")
        remote_counts = {kind: 0 for kind in MIGRATION_KINDS}
        remote_error = e.message

    status = MigrationStatus(
        has_local_data=any(n > 0 for n in local_counts.values()),
        has_remote_data=any(n > 0 for n in remote_counts.values()),
        local_counts=local_counts,
        remote_counts=remote_counts,
        remote_error=remote_error,
    )
    LOG.info(f"Local counts: {local_counts}; remote counts: {remote_counts}")
    return status
