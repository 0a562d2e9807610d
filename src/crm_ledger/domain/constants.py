from __future__ import annotations

from typing import Dict, Set, Tuple

# Entity kinds handled by the field mapper.
KIND_CUSTOMER = "customer"
KIND_PRODUCT = "product"
KIND_APPOINTMENT = "appointment"
KIND_FINANCE = "finance"
KIND_PURCHASE = "purchase"

# Migration order: appointments and finance assume customers/products exist.
MIGRATION_KINDS: Tuple[str, ...] = (
    KIND_CUSTOMER,
    KIND_PRODUCT,
    KIND_APPOINTMENT,
    KIND_FINANCE,
)

# Remote table per kind; also the key used in status/report payloads.
TABLES: Dict[str, str] = {
    KIND_CUSTOMER: "customers",
    KIND_PRODUCT: "products",
    KIND_APPOINTMENT: "appointments",
    KIND_FINANCE: "finance",
    KIND_PURCHASE: "purchases",
}

# Local cache bucket per kind (browser storage keys of the web console).
CACHE_BUCKETS: Dict[str, str] = {
    KIND_CUSTOMER: "crm-customers",
    KIND_PRODUCT: "crm-products",
    KIND_APPOINTMENT: "crm-appointments",
    KIND_FINANCE: "crm-finance",
}

PRODUCT_TYPE_SINGLE = "single"
PRODUCT_STATUS_ACTIVE = "active"

APPOINTMENT_SCHEDULED = "scheduled"
APPOINTMENT_CANCELLED = "cancelled"
APPOINTMENT_NO_SHOW = "no-show"

# Statuses that do not consume a credit under the exclude-cancelled policy.
NON_CONSUMING_STATUSES: Set[str] = {
    APPOINTMENT_CANCELLED,
    APPOINTMENT_NO_SHOW,
}

FINANCE_INCOME = "income"
FINANCE_EXPENSE = "expense"
FINANCE_TYPES: Tuple[str, ...] = (FINANCE_INCOME, FINANCE_EXPENSE)


def kind_for_table(table: str) -> str:
    for kind, name in TABLES.items():
        if name == table:
            return kind
    raise KeyError(table)
