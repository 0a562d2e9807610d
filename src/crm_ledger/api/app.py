from __future__ import annotations

from typing import Any, List, Optional

from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ..config import POLICY_ALL, LedgerSettings, load_settings
from ..domain.constants import MIGRATION_KINDS, TABLES, kind_for_table
from ..errors import MigrationInProgressError, RemoteStoreError
from ..ledger.service import LedgerService
from ..logging import get_logger
from ..migration import MigrationEngine, clear_local_buckets, probe_migration_status
from ..store.base import LocalRepository, RecordStore
from ..store.local import LocalCache
from ..store.remote import RemoteStore


LOG = get_logger("api")


async def _json_body(request: Request) -> dict:
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = await request.json()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Body must be JSON") from exc
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Body must be a JSON object")
    return body


def _parse_kinds(value: Any) -> Optional[List[str]]:
    """Accept entity kinds or table names; None means all four."""
    if value is None:
        return None
    if not isinstance(value, list):
        raise HTTPException(status_code=400, detail="'kinds' must be a list")
    kinds: List[str] = []
    for item in value:
        name = str(item)
        if name in MIGRATION_KINDS:
            kinds.append(name)
            continue
        try:
            kind = kind_for_table(name)
        except KeyError:
            kind = None
        if kind not in MIGRATION_KINDS:
            raise HTTPException(status_code=400, detail=f"Unknown entity kind: {name}")
        kinds.append(kind)
    return kinds


def create_app(
    settings: Optional[LedgerSettings] = None,
    *,
    remote: Optional[RecordStore] = None,
    local: Optional[LocalRepository] = None,
    allow_origins: Optional[List[str]] = None,
) -> Starlette:
    """Create a Starlette app exposing ledger balances and migration controls."""

    if remote is None or local is None:
        settings = settings or load_settings()
    if remote is None:
        url, key = settings.require_remote()
        remote = RemoteStore(url, key, timeout=settings.timeout)
    if local is None:
        local = LocalCache(settings.cache_dir)
    policy = settings.consumption_policy if settings else POLICY_ALL
    ledger = LedgerService(remote, policy=policy)

    async def health(_: Request) -> JSONResponse:
        return JSONResponse({"status": "ok", "policy": policy})

    async def balances(request: Request) -> JSONResponse:
        customer_id = request.path_params["customer_id"]
        try:
            items = await run_in_threadpool(ledger.balances_for, customer_id)
        except RemoteStoreError as exc:
            raise HTTPException(status_code=502, detail=exc.message) from exc
        return JSONResponse({"customerId": customer_id, "items": [b.to_client() for b in items]})

    async def migration_status(_: Request) -> JSONResponse:
        status = await run_in_threadpool(probe_migration_status, local, remote)
        return JSONResponse(status.to_dict())

    async def migration_run(request: Request) -> JSONResponse:
        body = await _json_body(request)
        guard = body.get("guard", True)
        if not isinstance(guard, bool):
            raise HTTPException(status_code=400, detail="'guard' must be true or false")
        engine = MigrationEngine(local, remote, guard=guard)
        try:
            report = await run_in_threadpool(engine.run)
        except MigrationInProgressError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return JSONResponse(report.to_dict())

    async def migration_clear(request: Request) -> JSONResponse:
        body = await _json_body(request)
        kinds = _parse_kinds(body.get("kinds"))
        cleared = await run_in_threadpool(clear_local_buckets, local, kinds)
        return JSONResponse({"cleared": [TABLES[k] for k in cleared]})

    routes = [
        Route("/api/health", health, methods=["GET"]),
        Route("/api/customers/{customer_id:str}/balances", balances, methods=["GET"]),
        Route("/api/migration/status", migration_status, methods=["GET"]),
        Route("/api/migration/run", migration_run, methods=["POST"]),
        Route("/api/migration/clear", migration_clear, methods=["POST"]),
    ]

    app = Starlette(debug=False, routes=routes)

    origins = allow_origins or ["http://localhost:5173", "http://127.0.0.1:5173"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if "*" in origins else origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    LOG.info("API ready (policy=%s)", policy)
    return app


__all__ = ["create_app"]
