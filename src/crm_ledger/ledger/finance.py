from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..domain.constants import FINANCE_EXPENSE, FINANCE_INCOME


def _amount(record: Mapping[str, Any]) -> float:
    value = record.get("amount") or 0
    return value if isinstance(value, (int, float)) else 0


def calculate_finance_stats(records: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """Income/expense totals and counts over finance records."""
    rows = list(records)
    income = [r for r in rows if r.get("type") == FINANCE_INCOME]
    expense = [r for r in rows if r.get("type") == FINANCE_EXPENSE]
    total_income = sum(_amount(r) for r in income)
    total_expense = sum(_amount(r) for r in expense)
    return {
        "totalIncome": total_income,
        "totalExpense": total_expense,
        "netProfit": total_income - total_expense,
        "totalRecords": len(rows),
        "incomeCount": len(income),
        "expenseCount": len(expense),
    }


def is_in_month(date_str: str, month: str) -> bool:
    return str(date_str or "").startswith(month)


def current_month(today: Optional[date] = None) -> str:
    d = today or date.today()
    return f"{d.year:04d}-{d.month:02d}"


def calculate_monthly_stats(records: Iterable[Mapping[str, Any]], month: str) -> Dict[str, Any]:
    """Stats restricted to records whose date falls in ``month`` (YYYY-MM)."""
    return calculate_finance_stats(r for r in records if is_in_month(r.get("date", ""), month))


def recent_finance_records(records: Iterable[Mapping[str, Any]], limit: int = 5) -> List[Mapping[str, Any]]:
    # ISO dates sort lexically; the input is not mutated
    return sorted(records, key=lambda r: str(r.get("date") or ""), reverse=True)[:limit]
