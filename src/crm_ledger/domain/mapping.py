"""Translate records between the client (camelCase) and storage (snake_case) shapes.

The mapping is a fixed per-field rename with defaults for absent values:

- Either direction accepts input in either shape, so mapping an
  already-mapped record is a no-op on the fields listed here.
- Fields not listed for a kind are dropped.
- Nullable fields (ids, server timestamps, owner) stay ``None`` on the client
  side and are left out of storage payloads so the store applies its defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from .constants import (
    APPOINTMENT_SCHEDULED,
    KIND_APPOINTMENT,
    KIND_CUSTOMER,
    KIND_FINANCE,
    KIND_PRODUCT,
    KIND_PURCHASE,
    PRODUCT_STATUS_ACTIVE,
    PRODUCT_TYPE_SINGLE,
)

_MISSING = object()


@dataclass(frozen=True)
class FieldSpec:
    client: str
    storage: str
    default: Any = ""
    nullable: bool = False

    def fresh_default(self) -> Any:
        if isinstance(self.default, list):
            return list(self.default)
        return self.default


def _f(client: str, storage: str | None = None, default: Any = "", nullable: bool = False) -> FieldSpec:
    return FieldSpec(client, storage or client, default, nullable)


_ID = _f("id", nullable=True, default=None)
_CREATED = _f("createdAt", "created_at", default=None, nullable=True)
_UPDATED = _f("updatedAt", "updated_at", default=None, nullable=True)
_USER = _f("userId", "user_id", default=None, nullable=True)

FIELDS: Dict[str, Tuple[FieldSpec, ...]] = {
    KIND_CUSTOMER: (
        _ID,
        _f("name"),
        _f("phone"),
        _f("birthDate", "birth_date"),
        _f("skinType", "skin_type"),
        _f("memo"),
        _f("point", default=0),
        _CREATED,
        _UPDATED,
        _f("purchasedProducts", "purchased_products", default=[]),
    ),
    KIND_PRODUCT: (
        _ID,
        _f("name"),
        _f("price", default=0),
        _f("type", default=PRODUCT_TYPE_SINGLE),
        _f("count", default=None, nullable=True),
        _f("status", default=PRODUCT_STATUS_ACTIVE),
        _f("description"),
        _CREATED,
        _UPDATED,
    ),
    KIND_APPOINTMENT: (
        _ID,
        _f("customerId", "customer_id"),
        _f("productId", "product_id"),
        _f("datetime"),
        _f("memo"),
        _f("status", default=APPOINTMENT_SCHEDULED),
        _USER,
        _CREATED,
        _UPDATED,
    ),
    KIND_FINANCE: (
        _ID,
        _f("date"),
        _f("type"),
        _f("title"),
        _f("amount", default=0),
        _f("memo"),
        _CREATED,
        _UPDATED,
    ),
    KIND_PURCHASE: (
        _ID,
        _f("customerId", "customer_id"),
        _f("productId", "product_id"),
        _f("quantity", default=0),
        _f("purchaseDate", "purchase_date"),
        _f("totalPrice", "total_price", default=0),
        _USER,
        _CREATED,
        _UPDATED,
    ),
}


def _fields(kind: str) -> Tuple[FieldSpec, ...]:
    try:
        return FIELDS[kind]
    except KeyError:
        raise ValueError(f"Unknown entity kind: {kind!r}") from None


def _pick(record: Mapping[str, Any], spec: FieldSpec) -> Any:
    if spec.client in record:
        return record[spec.client]
    if spec.storage in record:
        return record[spec.storage]
    return _MISSING


def to_client(kind: str, record: Mapping[str, Any]) -> Dict[str, Any]:
    """Return the client-shaped (camelCase) version of ``record``."""
    out: Dict[str, Any] = {}
    for spec in _fields(kind):
        value = _pick(record, spec)
        if value is _MISSING or (value is None and not spec.nullable):
            value = spec.fresh_default()
        out[spec.client] = value
    return out


def to_storage(kind: str, record: Mapping[str, Any]) -> Dict[str, Any]:
    """Return the storage-shaped (snake_case) version of ``record``."""
    out: Dict[str, Any] = {}
    for spec in _fields(kind):
        value = _pick(record, spec)
        if value is _MISSING or value is None:
            if spec.nullable:
                continue
            value = spec.fresh_default()
        out[spec.storage] = value
    return out


def to_client_many(kind: str, records: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    return [to_client(kind, r) for r in records]


def to_storage_many(kind: str, records: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    return [to_storage(kind, r) for r in records]


def partial_to_storage(kind: str, updates: Mapping[str, Any]) -> Dict[str, Any]:
    """Map only the fields present in ``updates`` (for update-by-id payloads)."""
    out: Dict[str, Any] = {}
    for spec in _fields(kind):
        value = _pick(updates, spec)
        if value is _MISSING:
            continue
        out[spec.storage] = value
    return out
