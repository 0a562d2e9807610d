"""One-shot migration of locally cached records into the remote record store.

Jobs run one entity kind at a time in MIGRATION_KINDS order. Each job reads
its bucket, maps records to storage shape and bulk-inserts them in a single
request. A failed job is reported and the remaining jobs still run; nothing
is retried or rolled back.
"""

from __future__ import annotations

import uuid
from typing import Dict, Iterable, List, Optional

from ..domain.constants import MIGRATION_KINDS, TABLES
from ..domain.mapping import to_storage_many
from ..errors import RemoteStoreError
from ..logging import get_logger
from ..store.base import LocalRepository, RecordStore
from ..store.local import RUN_FAILED, RUN_FINISHED
from .results import JobResult, MigrationReport

LOG = get_logger("migration-engine")


class MigrationEngine:
    """Move the four local entity buckets into the remote store.

    With ``guard`` on (the default) records whose ``id`` already exists
    remotely are skipped, so a repeated run does not duplicate rows. With
    ``guard`` off every cached record is inserted unconditionally; a warning is
    logged when the target table already holds rows.
    """

    def __init__(self, local: LocalRepository, remote: RecordStore, *, guard: bool = True) -> None:
        self.local = local
        self.remote = remote
        self.guard = guard

    def run(self, batch_id: Optional[str] = None) -> MigrationReport:
        batch_id = batch_id or uuid.uuid4().hex[:12]
        self.local.begin_run(batch_id)
        report = MigrationReport(batch_id=batch_id, guarded=self.guard)
        LOG.info(f"Migration batch {batch_id} (guard={'on' if self.guard else 'off'})")
        try:
            for kind in MIGRATION_KINDS:
                report.results[kind] = self.migrate_kind(kind)
        except Exception:
            self.local.finish_run(batch_id, status=RUN_FAILED)
            raise
        self.local.finish_run(
            batch_id,
            status=RUN_FINISHED if report.all_succeeded else RUN_FAILED,
            summary=report.to_dict(),
        )
        LOG.info(
            f"Migration batch {batch_id} done: migrated={report.total_migrated}, "
            f"all_succeeded={report.all_succeeded}"
        )
        return report

    def migrate_kind(self, kind: str) -> JobResult:
        table = TABLES[kind]
        records = self.local.read_all(kind)
        if not records:
            LOG.info(f"[{table}] no local records; nothing to migrate")
            return JobResult.noop(kind)

        rows = to_storage_many(kind, records)
        skipped = 0
        try:
            if self.guard:
                fresh = self._without_existing(table, rows)
                skipped = len(rows) - len(fresh)
                rows = fresh
                if skipped:
                    LOG.info(f"[{table}] skipping {skipped} record(s) already migrated")
                if not rows:
                    return JobResult.succeeded(kind, 0, skipped=skipped)
            else:
                self._warn_if_populated(table)
            inserted = self.remote.insert_many(table, rows)
        except RemoteStoreError as e:
            LOG.error(f"[{table}] migration failed: {e.message}")
            return JobResult.failed(kind, e.message, error_kind=e.kind)

        LOG.info(f"[{table}] inserted {len(inserted)} row(s)")
        return JobResult.succeeded(kind, len(inserted), skipped=skipped)

    def _without_existing(self, table: str, rows: List[Dict]) -> List[Dict]:
        existing = set(self.remote.select_ids(table))
        fresh: List[Dict] = []
        for row in rows:
            rid = row.get("id")
            if rid is None:
                fresh.append(row)
                continue
            key = str(rid)
            if key in existing:
                continue
            existing.add(key)
            fresh.append(row)
        return fresh

    def _warn_if_populated(self, table: str) -> None:
        try:
            present = self.remote.count(table)
        except RemoteStoreError as e:
            LOG.warning(f"[{table}] could not count remote rows before unguarded insert: {e.message}")
            return
        if present:
            LOG.warning(
                f"[{table}] remote table already holds {present} row(s); "
                "unguarded insert will duplicate previously migrated records"
            )

    def clear_local(self, kinds: Optional[Iterable[str]] = None) -> List[str]:
        return clear_local_buckets(self.local, kinds)


def clear_local_buckets(local: LocalRepository, kinds: Optional[Iterable[str]] = None) -> List[str]:
    """Delete local buckets; all four when ``kinds`` is None.

    Every kind is validated before anything is deleted. Performs no check
    that the data reached the remote store.
    """
    targets = list(MIGRATION_KINDS) if kinds is None else list(kinds)
    for kind in targets:
        if kind not in MIGRATION_KINDS:
            raise ValueError(f"Unknown entity kind: {kind!r}")
    for kind in targets:
        local.clear(kind)
    return targets
