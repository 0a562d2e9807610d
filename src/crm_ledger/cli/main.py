from __future__ import annotations

import argparse
import json
import sys
from typing import Sequence

from ..config import POLICIES, LedgerSettings, load_settings
from ..domain.constants import KIND_FINANCE, MIGRATION_KINDS, TABLES
from ..domain.mapping import to_client_many
from ..errors import ConfigError, MigrationInProgressError, RemoteStoreError
from ..ledger.finance import calculate_finance_stats, calculate_monthly_stats
from ..ledger.service import LedgerService
from ..logging import get_logger
from ..migration import MigrationEngine, clear_local_buckets, probe_migration_status
from ..paths import expand_abs
from ..store.local import LocalCache
from ..store.remote import RemoteStore

LOG = get_logger("cli-main")


def _print_json(payload) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _settings(ns: argparse.Namespace) -> LedgerSettings:
    settings = load_settings()
    if getattr(ns, "url", None):
        settings.supabase_url = ns.url
    if getattr(ns, "key", None):
        settings.supabase_key = ns.key
    if getattr(ns, "timeout", None):
        settings.timeout = ns.timeout
    if getattr(ns, "cache_dir", None):
        settings.cache_dir = expand_abs(ns.cache_dir)
    if getattr(ns, "policy", None):
        settings.consumption_policy = ns.policy
    return settings


def _remote(settings: LedgerSettings) -> RemoteStore:
    url, key = settings.require_remote()
    return RemoteStore(url, key, timeout=settings.timeout)


def _add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--url", help="Remote store base URL (defaults to SUPABASE_URL from env/.env)")
    p.add_argument("--key", help="Remote store API key (defaults to SUPABASE_KEY from env/.env)")
    p.add_argument("--timeout", type=int, help="HTTP timeout in seconds for remote calls")
    p.add_argument("--cache-dir", help="Directory holding the local cache (default: var/local_cache)")


def _handle_status(ns: argparse.Namespace) -> int:
    settings = _settings(ns)
    status = probe_migration_status(LocalCache(settings.cache_dir), _remote(settings))
    _print_json(status.to_dict())
    return 0


def _handle_migrate(ns: argparse.Namespace) -> int:
    settings = _settings(ns)
    local = LocalCache(settings.cache_dir)
    engine = MigrationEngine(local, _remote(settings), guard=not ns.unguarded)
    try:
        report = engine.run()
    except MigrationInProgressError as e:
        LOG.error(str(e))
        return 1
    _print_json(report.to_dict())
    if not report.all_succeeded:
        LOG.error("Some entity jobs failed; local data left in place.")
        return 1
    if ns.clear_after:
        cleared = engine.clear_local()
        LOG.info(f"Cleared local buckets: {[TABLES[k] for k in cleared]}")
    return 0


def _handle_clear(ns: argparse.Namespace) -> int:
    settings = _settings(ns)
    cleared = clear_local_buckets(LocalCache(settings.cache_dir), ns.kind or None)
    LOG.info(f"Cleared local buckets: {[TABLES[k] for k in cleared]}")
    return 0


def _handle_import(ns: argparse.Namespace) -> int:
    settings = _settings(ns)
    path = expand_abs(ns.file)
    try:
        with open(path, "r", encoding="utf-8") as f:
            snapshot = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        LOG.error(f"Cannot read snapshot {path}: {e}")
        return 2
    if not isinstance(snapshot, dict):
        LOG.error("Snapshot must be a JSON object keyed by bucket name")
        return 2
    counts = LocalCache(settings.cache_dir).import_snapshot(snapshot)
    _print_json({TABLES[k]: n for k, n in counts.items()})
    return 0


def _handle_balance(ns: argparse.Namespace) -> int:
    settings = _settings(ns)
    service = LedgerService(_remote(settings), policy=settings.consumption_policy)
    balances = service.balances_for(ns.customer)
    _print_json({"customerId": ns.customer, "items": [b.to_client() for b in balances]})
    return 0


def _handle_finance(ns: argparse.Namespace) -> int:
    settings = _settings(ns)
    if ns.source == "local":
        records = LocalCache(settings.cache_dir).read_all(KIND_FINANCE)
    else:
        records = _remote(settings).select_all(TABLES[KIND_FINANCE], order="date.desc")
    records = to_client_many(KIND_FINANCE, records)
    stats = calculate_monthly_stats(records, ns.month) if ns.month else calculate_finance_stats(records)
    _print_json(stats)
    return 0


def _handle_serve(ns: argparse.Namespace) -> int:
    from ..api import create_app
    import uvicorn

    settings = _settings(ns)
    app = create_app(settings, allow_origins=ns.allow_origins)
    uvicorn.run(app, host=ns.host, port=ns.port, log_level=ns.log_level)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    provided = list(argv) if argv is not None else sys.argv[1:]
    LOG.debug(f"CLI invoked with arguments: {provided}")

    parser = argparse.ArgumentParser(
        prog="crm-ledger",
        description="Voucher ledger and local-to-remote migration tools for the CRM console.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    status = subparsers.add_parser("status", help="Count local and remote records per entity kind.")
    _add_common_args(status)
    status.set_defaults(handler=_handle_status)

    migrate = subparsers.add_parser("migrate", help="Copy cached local records into the remote store.")
    _add_common_args(migrate)
    migrate.add_argument(
        "--unguarded",
        action="store_true",
        help="Insert every cached record even if its id already exists remotely",
    )
    migrate.add_argument(
        "--clear-after",
        action="store_true",
        help="Clear the local buckets when every entity job succeeded",
    )
    migrate.set_defaults(handler=_handle_migrate)

    clear = subparsers.add_parser("clear-local", help="Delete local cache buckets.")
    _add_common_args(clear)
    clear.add_argument("--kind", action="append", choices=list(MIGRATION_KINDS), help="Bucket to clear (repeatable; default all)")
    clear.set_defaults(handler=_handle_clear)

    imp = subparsers.add_parser("import-cache", help="Load a browser-storage JSON export into the local cache.")
    _add_common_args(imp)
    imp.add_argument("--file", required=True)
    imp.set_defaults(handler=_handle_import)

    balance = subparsers.add_parser("balance", help="Show remaining voucher credits for a customer.")
    _add_common_args(balance)
    balance.add_argument("--customer", required=True)
    balance.add_argument("--policy", choices=list(POLICIES), help="Which appointments consume a credit")
    balance.set_defaults(handler=_handle_balance)

    finance = subparsers.add_parser("finance-stats", help="Income/expense totals.")
    _add_common_args(finance)
    finance.add_argument("--month", help="Restrict to YYYY-MM")
    finance.add_argument("--source", choices=["remote", "local"], default="remote")
    finance.set_defaults(handler=_handle_finance)

    serve = subparsers.add_parser("serve", help="Run the JSON API.")
    _add_common_args(serve)
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8002)
    serve.add_argument("--log-level", default="info")
    serve.add_argument(
        "--allow-origin",
        action="append",
        dest="allow_origins",
        help="Allowed CORS origin (can be provided multiple times, use '*' for any).",
    )
    serve.set_defaults(handler=_handle_serve)

    args = parser.parse_args(provided)
    try:
        code = args.handler(args)
    except ConfigError as e:
        LOG.error(str(e))
        code = 2
    except RemoteStoreError as e:
        LOG.error(f"Remote store error: {e.message}")
        code = 1
    LOG.info(f"Subcommand '{args.command}' finished with exit code {code}.")
    return code


if __name__ == "__main__":
    sys.exit(main())
