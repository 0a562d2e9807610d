"""SQLite-backed local cache holding the console's offline entity buckets.

Each bucket stores the JSON array the web console used to keep in browser
storage. A second table journals migration runs so that overlapping
invocations can be refused.
"""

from __future__ import annotations

import json
import os
import sqlite3
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional

from ..domain.constants import CACHE_BUCKETS, MIGRATION_KINDS
from ..domain.validation import is_well_formed
from ..errors import MigrationInProgressError
from ..logging import get_logger
from ..paths import default_cache_dir

LOG = get_logger("local-cache")

DB_FILENAME = "cache.sqlite3"

# Runs still marked running after this long are assumed dead.
DEFAULT_STALE_AFTER_SEC = 15 * 60

RUN_RUNNING = "running"
RUN_FINISHED = "finished"
RUN_FAILED = "failed"
RUN_ABANDONED = "abandoned"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS buckets (
  bucket      TEXT PRIMARY KEY,
  payload     TEXT NOT NULL,          -- JSON array of records
  updated_at  TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS migration_runs (
  batch_id     TEXT PRIMARY KEY,
  started_at   TEXT NOT NULL DEFAULT (datetime('now')),
  finished_at  TEXT,
  status       TEXT NOT NULL DEFAULT 'running'
               CHECK (status IN ('running','finished','failed','abandoned')),
  summary      TEXT                   -- JSON report
);

CREATE INDEX IF NOT EXISTS idx_migration_runs_status ON migration_runs(status);
"""


def _bucket(kind: str) -> str:
    try:
        return CACHE_BUCKETS[kind]
    except KeyError:
        raise ValueError(f"No local bucket for entity kind {kind!r}") from None


class LocalCache:
    """Local entity buckets under `<repo-root>/var/local_cache/cache.sqlite3`."""

    def __init__(self, cache_dir: Optional[str] = None, *, stale_after_sec: int = DEFAULT_STALE_AFTER_SEC) -> None:
        folder = cache_dir or default_cache_dir()
        os.makedirs(folder, exist_ok=True)
        self.db_path = os.path.join(folder, DB_FILENAME)
        self.stale_after_sec = int(stale_after_sec)
        self._ensure_schema()
        LOG.debug(f"Local cache ready at {self.db_path}")

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self.connect() as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()

    # ---------------- buckets ----------------
    def _load_raw(self, kind: str) -> List[Any]:
        bucket = _bucket(kind)
        with self.connect() as conn:
            row = conn.execute("SELECT payload FROM buckets WHERE bucket=?", (bucket,)).fetchone()
        if row is None:
            return []
        try:
            data = json.loads(row["payload"])
        except json.JSONDecodeError:
            LOG.warning(f"Bucket {bucket} holds invalid JSON; treating as empty")
            return []
        if not isinstance(data, list):
            LOG.warning(f"Bucket {bucket} is not a JSON array; treating as empty")
            return []
        return data

    def read_all(self, kind: str) -> List[Dict[str, Any]]:
        """Return the well-formed records of a bucket in stored order."""
        raw = self._load_raw(kind)
        records = [r for r in raw if is_well_formed(kind, r)]
        dropped = len(raw) - len(records)
        if dropped:
            LOG.warning(f"Excluded {dropped} malformed record(s) from {_bucket(kind)}")
        return records

    def count(self, kind: str) -> int:
        return len(self.read_all(kind))

    def write_all(self, kind: str, records: List[Mapping[str, Any]]) -> int:
        bucket = _bucket(kind)
        payload = json.dumps(list(records), ensure_ascii=False)
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO buckets (bucket, payload) VALUES (?, ?)
                ON CONFLICT(bucket) DO UPDATE SET
                    payload=excluded.payload,
                    updated_at=datetime('now');
                """,
                (bucket, payload),
            )
            conn.commit()
        LOG.debug(f"Wrote {len(records)} record(s) to {bucket}")
        return len(records)

    def clear(self, kind: str) -> None:
        bucket = _bucket(kind)
        with self.connect() as conn:
            conn.execute("DELETE FROM buckets WHERE bucket=?", (bucket,))
            conn.commit()
        LOG.info(f"Cleared local bucket {bucket}")

    def import_snapshot(self, snapshot: Mapping[str, Any]) -> Dict[str, int]:
        """Load a browser-storage export keyed by bucket name.

        Values may be JSON arrays or the JSON-encoded strings browser storage
        holds. Buckets missing from the snapshot are left untouched.
        """
        counts: Dict[str, int] = {}
        for kind in MIGRATION_KINDS:
            bucket = CACHE_BUCKETS[kind]
            if bucket not in snapshot:
                continue
            value = snapshot[bucket]
            if isinstance(value, str):
                try:
                    value = json.loads(value)
                except json.JSONDecodeError:
                    LOG.warning(f"Snapshot entry {bucket} is not valid JSON; skipped")
                    continue
            if not isinstance(value, list):
                LOG.warning(f"Snapshot entry {bucket} is not an array; skipped")
                continue
            counts[kind] = self.write_all(kind, value)
        LOG.info(f"Imported snapshot buckets: {counts}")
        return counts

    # ---------------- migration run journal ----------------
    def begin_run(self, batch_id: str) -> None:
        """Record a running migration, refusing if another live run exists."""
        conn = sqlite3.connect(self.db_path, isolation_level=None)
        try:
            conn.execute("BEGIN IMMEDIATE;")
            conn.execute(
                "UPDATE migration_runs SET status=?, finished_at=datetime('now') "
                "WHERE status=? AND started_at <= datetime('now', ?);",
                (RUN_ABANDONED, RUN_RUNNING, f"-{self.stale_after_sec} seconds"),
            )
            row = conn.execute(
                "SELECT batch_id, started_at FROM migration_runs WHERE status=? ORDER BY started_at LIMIT 1;",
                (RUN_RUNNING,),
            ).fetchone()
            if row is not None:
                conn.execute("ROLLBACK;")
                raise MigrationInProgressError(row[0], row[1])
            conn.execute(
                "INSERT INTO migration_runs (batch_id, status) VALUES (?, ?);",
                (batch_id, RUN_RUNNING),
            )
            conn.execute("COMMIT;")
        finally:
            conn.close()
        LOG.info(f"Migration batch {batch_id} started")

    def finish_run(self, batch_id: str, *, status: str, summary: Optional[Dict[str, Any]] = None) -> None:
        with self.connect() as conn:
            conn.execute(
                "UPDATE migration_runs SET status=?, finished_at=datetime('now'), summary=? WHERE batch_id=?;",
                (status, json.dumps(summary, ensure_ascii=False) if summary is not None else None, batch_id),
            )
            conn.commit()
        LOG.info(f"Migration batch {batch_id} {status}")

    def list_runs(self, limit: int = 20) -> List[Dict[str, Any]]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT batch_id, started_at, finished_at, status, summary FROM migration_runs "
                "ORDER BY started_at DESC, rowid DESC LIMIT ?;",
                (int(limit),),
            ).fetchall()
        out: List[Dict[str, Any]] = []
        for row in rows:
            item = dict(row)
            item["summary"] = json.loads(item["summary"]) if item["summary"] else None
            out.append(item)
        return out
