"""Voucher credit ledger: aggregation, balances and finance statistics."""

from .aggregate import LedgerCounters, aggregate, aggregate_consumption, aggregate_purchases
from .balance import balances_from_counters, calculate_balances
from .service import LedgerService

__all__ = [
    "LedgerCounters",
    "LedgerService",
    "aggregate",
    "aggregate_consumption",
    "aggregate_purchases",
    "balances_from_counters",
    "calculate_balances",
]
