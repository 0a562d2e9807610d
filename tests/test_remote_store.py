from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import pytest
import requests

from crm_ledger.errors import RemoteStoreError
from crm_ledger.store.remote import RemoteStore


def _response(status: int, body: Any = None, headers: Optional[Dict[str, str]] = None) -> requests.Response:
    r = requests.Response()
    r.status_code = status
    r._content = json.dumps(body).encode("utf-8") if body is not None else b""
    r.headers.update(headers or {})
    return r


class _Session:
    """Stands in for requests.Session: records calls, replays queued responses."""

    def __init__(self, *responses) -> None:
        self.headers: Dict[str, str] = {}
        self.calls: List[Dict[str, Any]] = []
        self._responses = list(responses)

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        nxt = self._responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt


def _store(*responses) -> tuple[RemoteStore, _Session]:
    session = _Session(*responses)
    return RemoteStore("https://example.supabase.co/", "anon-key", timeout=5, session=session), session


def test_auth_headers_and_table_url():
    store, session = _store(_response(200, [{"id": "c1"}]))
    rows = store.select_all("customers", order="created_at.desc")
    assert rows == [{"id": "c1"}]
    assert session.headers["apikey"] == "anon-key"
    assert session.headers["Authorization"] == "Bearer anon-key"
    call = session.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == "https://example.supabase.co/rest/v1/customers"
    assert call["params"] == {"select": "*", "order": "created_at.desc"}
    assert call["timeout"] == 5


def test_select_where_uses_eq_filter():
    store, session = _store(_response(200, []))
    assert store.select_where("appointments", "customer_id", "c1") == []
    assert session.calls[0]["params"]["customer_id"] == "eq.c1"


def test_select_by_id_returns_none_when_missing():
    store, _ = _store(_response(200, []))
    assert store.select_by_id("customers", "nope") is None


def test_insert_many_asks_for_representation():
    store, session = _store(_response(201, [{"id": "1"}, {"id": "2"}]))
    inserted = store.insert_many("customers", [{"name": "a"}, {"name": "b"}])
    assert len(inserted) == 2
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["json"] == [{"name": "a"}, {"name": "b"}]
    assert call["headers"]["Prefer"] == "return=representation"


def test_insert_nothing_makes_no_request():
    store, session = _store()
    assert store.insert_many("customers", []) == []
    assert session.calls == []


def test_count_reads_content_range():
    store, session = _store(_response(200, headers={"Content-Range": "0-0/42"}), _response(200, headers={"Content-Range": "*/0"}))
    assert store.count("customers") == 42
    assert store.count("finance") == 0
    assert session.calls[0]["method"] == "HEAD"
    assert session.calls[0]["headers"]["Prefer"] == "count=exact"


def test_count_without_header_is_a_decode_error():
    store, _ = _store(_response(200))
    with pytest.raises(RemoteStoreError) as exc:
        store.count("customers")
    assert exc.value.kind == "decode"


def test_http_error_carries_postgrest_message():
    body = {"code": "23505", "message": "duplicate key value violates unique constraint", "details": None}
    store, _ = _store(_response(409, body))
    with pytest.raises(RemoteStoreError) as exc:
        store.insert_many("customers", [{"id": "c1"}])
    assert exc.value.status_code == 409
    assert exc.value.kind == "http"
    assert exc.value.message == "duplicate key value violates unique constraint"


def test_transport_failure_is_a_network_error():
    store, _ = _store(requests.ConnectionError("connection refused"))
    with pytest.raises(RemoteStoreError) as exc:
        store.select_ids("customers")
    assert exc.value.kind == "network"


def test_select_ids_stringifies():
    store, session = _store(_response(200, [{"id": 1}, {"id": "c2"}, {"id": None}]))
    assert store.select_ids("customers") == {"1", "c2"}
    assert session.calls[0]["params"] == {"select": "id", "order": "id", "limit": "1000", "offset": "0"}
    assert len(session.calls) == 1


def test_delete_where_targets_column():
    store, session = _store(_response(204))
    store.delete_where("purchases", "customer_id", "c1")
    call = session.calls[0]
    assert call["method"] == "DELETE"
    assert call["params"] == {"customer_id": "eq.c1"}


def test_search_builds_or_filter():
    store, session = _store(_response(200, [{"id": "c1", "name": "Kim"}]))
    store.search("customers", "Kim", ["name", "phone"])
    assert session.calls[0]["params"]["or"] == '(name.ilike."*Kim*",phone.ilike."*Kim*")'


class _CappedSession(_Session):
    """Serves ``total`` ids but never more than ``cap`` rows per response."""

    def __init__(self, total: int, cap: int) -> None:
        super().__init__()
        self.total = total
        self.cap = cap

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        params = kwargs["params"]
        start = int(params["offset"])
        stop = min(start + int(params["limit"]), start + self.cap, self.total)
        rows = [{"id": f"c{i}"} for i in range(start + 1, stop + 1)]
        span = f"{start}-{stop - 1}" if rows else "*"
        return _response(200, rows, {"Content-Range": f"{span}/{self.total}"})


def test_select_ids_pages_past_the_server_row_cap():
    session = _CappedSession(total=1500, cap=1000)
    store = RemoteStore("https://example.supabase.co", "anon-key", session=session)

    ids = store.select_ids("customers")

    assert len(ids) == 1500
    assert {"c1", "c1000", "c1001", "c1500"} <= ids
    assert [c["params"]["offset"] for c in session.calls] == ["0", "1000"]
    assert session.calls[0]["headers"]["Prefer"] == "count=exact"


def test_select_ids_follows_a_cap_smaller_than_the_page():
    session = _CappedSession(total=25, cap=10)
    store = RemoteStore("https://example.supabase.co", "anon-key", session=session)

    assert len(store.select_ids("customers", page_size=20)) == 25
    assert [c["params"]["offset"] for c in session.calls] == ["0", "10", "20"]


def test_search_keeps_reserved_characters_inside_the_value():
    store, session = _store(_response(200, []))
    store.search("customers", 'Kim, (VIP) "A"', ["name"])
    assert session.calls[0]["params"]["or"] == '(name.ilike."*Kim, (VIP) \\"A\\"*")'
