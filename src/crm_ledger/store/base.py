"""Interfaces the ledger and migration code depend on.

``RemoteStore`` and ``LocalCache`` are the production implementations; tests
substitute in-memory doubles with the same methods.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Set


class RecordStore(Protocol):
    def select_all(self, table: str, *, order: Optional[str] = None) -> List[Dict[str, Any]]: ...

    def select_by_id(self, table: str, record_id: str) -> Optional[Dict[str, Any]]: ...

    def select_where(self, table: str, column: str, value: Any, *, order: Optional[str] = None) -> List[Dict[str, Any]]: ...

    def search(self, table: str, query: str, columns: Sequence[str]) -> List[Dict[str, Any]]: ...

    def select_ids(self, table: str) -> Set[str]: ...

    def count(self, table: str) -> int: ...

    def insert_many(self, table: str, rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]: ...

    def update_by_id(self, table: str, record_id: str, values: Dict[str, Any]) -> Optional[Dict[str, Any]]: ...

    def delete_by_id(self, table: str, record_id: str) -> None: ...

    def delete_where(self, table: str, column: str, value: Any) -> None: ...


class LocalRepository(Protocol):
    def read_all(self, kind: str) -> List[Dict[str, Any]]: ...

    def count(self, kind: str) -> int: ...

    def clear(self, kind: str) -> None: ...

    def begin_run(self, batch_id: str) -> None: ...

    def finish_run(self, batch_id: str, *, status: str, summary: Optional[Dict[str, Any]] = None) -> None: ...
