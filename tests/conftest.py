from __future__ import annotations

import copy
import itertools
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

import pytest

from crm_ledger.errors import RemoteStoreError
from crm_ledger.store.local import LocalCache


class InMemoryStore:
    """Record store double: tables of dict rows, call log, injectable failures."""

    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: List[tuple] = []
        self.fail_on: Dict[tuple, str] = {}
        self.fail_once: Set[tuple] = set()
        self._ids = itertools.count(1)

    def fail(self, method: str, table: str, message: str = "boom", *, once: bool = False) -> None:
        self.fail_on[(method, table)] = message
        if once:
            self.fail_once.add((method, table))

    def _check(self, method: str, table: str) -> None:
        self.calls.append((method, table))
        message = self.fail_on.get((method, table))
        if message is not None:
            if (method, table) in self.fail_once:
                self.fail_once.discard((method, table))
                del self.fail_on[(method, table)]
            raise RemoteStoreError(message, status_code=400)

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def writes(self) -> List[tuple]:
        return [c for c in self.calls if c[0] in {"insert_many", "update_by_id", "delete_where"}]

    def select_all(self, table: str, *, order: Optional[str] = None) -> List[Dict[str, Any]]:
        self._check("select_all", table)
        return copy.deepcopy(self.rows(table))

    def select_by_id(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        self._check("select_by_id", table)
        for row in self.rows(table):
            if str(row.get("id")) == str(record_id):
                return copy.deepcopy(row)
        return None

    def select_where(self, table: str, column: str, value: Any, *, order: Optional[str] = None) -> List[Dict[str, Any]]:
        self._check("select_where", table)
        return [copy.deepcopy(r) for r in self.rows(table) if r.get(column) == value]

    def select_ids(self, table: str) -> Set[str]:
        self._check("select_ids", table)
        return {str(r["id"]) for r in self.rows(table) if r.get("id") is not None}

    def count(self, table: str) -> int:
        self._check("count", table)
        return len(self.rows(table))

    def insert_many(self, table: str, rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        self._check("insert_many", table)
        inserted = []
        for row in rows:
            new = dict(row)
            new.setdefault("id", f"gen-{next(self._ids)}")
            self.rows(table).append(new)
            inserted.append(copy.deepcopy(new))
        return inserted

    def update_by_id(self, table: str, record_id: str, values: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        self._check("update_by_id", table)
        for row in self.rows(table):
            if str(row.get("id")) == str(record_id):
                row.update(values)
                return copy.deepcopy(row)
        return None

    def delete_where(self, table: str, column: str, value: Any) -> None:
        self._check("delete_where", table)
        self.tables[table] = [r for r in self.rows(table) if r.get(column) != value]

    def delete_by_id(self, table: str, record_id: str) -> None:
        self.delete_where(table, "id", record_id)

    def search(self, table: str, query: str, columns: Sequence[str]) -> List[Dict[str, Any]]:
        self._check("search", table)
        q = query.lower()
        return [copy.deepcopy(r) for r in self.rows(table) if any(q in str(r.get(c, "")).lower() for c in columns)]


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def cache(tmp_path: Path) -> LocalCache:
    return LocalCache(str(tmp_path / "cache"))


@pytest.fixture
def make_customers():
    return _customers


def _customers(n: int) -> List[Dict[str, Any]]:
    return [
        {
            "id": f"c{i}",
            "name": f"Customer {i}",
            "phone": f"010-0000-{i:04d}",
            "birthDate": "1990-01-01",
            "skinType": "normal",
            "memo": "",
            "point": 0,
            "purchasedProducts": [],
        }
        for i in range(1, n + 1)
    ]
