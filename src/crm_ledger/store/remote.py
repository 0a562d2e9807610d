from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

import requests

from ..errors import RemoteStoreError
from ..logging import get_logger

_CONTENT_RANGE_RE = re.compile(r"/(\d+)\s*$")

# PostgREST servers cap responses (Supabase default max-rows is 1000).
ID_PAGE_SIZE = 1000


class RemoteStore:
    """Thin client for a PostgREST (Supabase) record store with session, timeouts, and logging.

    Only implements the subset we use: per-table select, filtered select,
    bulk insert, update/delete by id or column, and exact counts. Every
    failure raises RemoteStoreError; callers decide whether to report or
    swallow it.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: int = 30,
        verify_tls: bool = True,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base = base_url.rstrip("/")
        self.timeout = int(timeout)
        self.verify = bool(verify_tls)
        self.log = get_logger("remote-store")
        self.s = session or requests.Session()
        self.s.headers.update({
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
        })

    # ---------- helpers ----------
    def _url(self, table: str) -> str:
        return f"{self.base}/rest/v1/{table}"

    def _request(
        self,
        method: str,
        table: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        try:
            r = self.s.request(
                method,
                self._url(table),
                params=params,
                json=json,
                headers=headers,
                timeout=self.timeout,
                verify=self.verify,
            )
        except requests.RequestException as e:
            self.log.error(f"{method} {table} failed: {e}")
            raise RemoteStoreError(str(e), kind="network") from e
        if r.status_code >= 400:
            message = _error_message(r)
            self.log.error(f"{method} {table} -> HTTP {r.status_code}: {message}")
            raise RemoteStoreError(message, status_code=r.status_code, kind="http")
        return r

    def _rows(self, r: requests.Response, table: str) -> List[Dict[str, Any]]:
        if not r.content:
            return []
        try:
            body = r.json()
        except ValueError as e:
            raise RemoteStoreError(f"{table}: response was not JSON", status_code=r.status_code, kind="decode") from e
        if isinstance(body, dict):
            return [body]
        if not isinstance(body, list):
            raise RemoteStoreError(f"{table}: unexpected response body", status_code=r.status_code, kind="decode")
        return [row for row in body if isinstance(row, dict)]

    # ---------- reads ----------
    def select_all(self, table: str, *, order: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"select": "*"}
        if order:
            params["order"] = order
        return self._rows(self._request("GET", table, params=params), table)

    def select_by_id(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        rows = self.select_where(table, "id", record_id)
        return rows[0] if rows else None

    def select_where(
        self,
        table: str,
        column: str,
        value: Any,
        *,
        order: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        params = {"select": "*", column: f"eq.{value}"}
        if order:
            params["order"] = order
        return self._rows(self._request("GET", table, params=params), table)

    def search(self, table: str, query: str, columns: Sequence[str]) -> List[Dict[str, Any]]:
        """Case-insensitive substring match over ``columns`` (OR-ed)."""
        pattern = _quote(f"*{query}*")
        clauses = ",".join(f"{col}.ilike.{pattern}" for col in columns)
        params = {"select": "*", "or": f"({clauses})"}
        return self._rows(self._request("GET", table, params=params), table)

    def select_ids(self, table: str, *, page_size: int = ID_PAGE_SIZE) -> Set[str]:
        """Every id in ``table``, fetched page by page.

        Paging continues until the ``Content-Range`` total is reached, so a
        server row cap smaller than ``page_size`` is also handled.
        """
        ids: Set[str] = set()
        offset = 0
        while True:
            r = self._request(
                "GET",
                table,
                params={"select": "id", "order": "id", "limit": str(page_size), "offset": str(offset)},
                headers={"Prefer": "count=exact"},
            )
            rows = self._rows(r, table)
            ids.update(str(row["id"]) for row in rows if row.get("id") is not None)
            offset += len(rows)
            total = _content_range_total(r)
            if not rows:
                break
            if total is not None:
                if offset >= total:
                    break
            elif len(rows) < page_size:
                break
        self.log.debug(f"{table}: {len(ids)} existing id(s) over {offset} row(s)")
        return ids

    def count(self, table: str) -> int:
        r = self._request(
            "HEAD",
            table,
            params={"select": "id"},
            headers={"Prefer": "count=exact"},
        )
        total = _content_range_total(r)
        if total is None:
            header = r.headers.get("Content-Range", "")
            raise RemoteStoreError(f"{table}: missing row count in Content-Range {header!r}", kind="decode")
        return total

    # ---------- writes ----------
    def insert_many(self, table: str, rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        payload = list(rows)
        if not payload:
            return []
        self.log.info(f"POST {table}: {len(payload)} row(s)")
        r = self._request(
            "POST",
            table,
            json=payload,
            headers={"Prefer": "return=representation"},
        )
        return self._rows(r, table)

    def update_by_id(self, table: str, record_id: str, values: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        r = self._request(
            "PATCH",
            table,
            params={"id": f"eq.{record_id}"},
            json=values,
            headers={"Prefer": "return=representation"},
        )
        rows = self._rows(r, table)
        return rows[0] if rows else None

    def delete_by_id(self, table: str, record_id: str) -> None:
        self.delete_where(table, "id", record_id)

    def delete_where(self, table: str, column: str, value: Any) -> None:
        self.log.info(f"DELETE {table} where {column}={value}")
        self._request("DELETE", table, params={column: f"eq.{value}"})


def _content_range_total(r: requests.Response) -> Optional[int]:
    m = _CONTENT_RANGE_RE.search(r.headers.get("Content-Range", ""))
    return int(m.group(1)) if m else None


def _quote(value: str) -> str:
    """Double-quote a filter value so commas and parentheses stay literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _error_message(r: requests.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        msg = body.get("message") or body.get("error") or body.get("hint")
        if msg:
            return str(msg)
    text = (r.text or "").strip()
    return text[:500] if text else f"HTTP {r.status_code}"
