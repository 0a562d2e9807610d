import re
from typing import Any

from .constants import FINANCE_TYPES, KIND_FINANCE

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_FINANCE_REQUIRED = ("id", "date", "type", "title")


def is_valid_finance_record(record: Any) -> bool:
    """Shape check for a cached finance row: id/date/type/title set, ISO date, amount >= 0."""
    if not isinstance(record, dict):
        return False
    for name in _FINANCE_REQUIRED:
        if not record.get(name):
            return False
    if not _DATE_RE.match(str(record["date"])):
        return False
    if record["type"] not in FINANCE_TYPES:
        return False
    amount = record.get("amount")
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        return False
    return amount >= 0


def is_well_formed(kind: str, record: Any) -> bool:
    """Basic shape check applied when loading cached records."""
    if not isinstance(record, dict):
        return False
    if kind == KIND_FINANCE:
        return is_valid_finance_record(record)
    return True
