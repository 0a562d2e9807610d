from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Union

from ..config import POLICY_ALL, POLICY_EXCLUDE_CANCELLED
from ..domain.constants import KIND_APPOINTMENT, KIND_PRODUCT, KIND_PURCHASE, NON_CONSUMING_STATUSES
from ..domain.mapping import to_client
from ..domain.models import Appointment, Product, Purchase

PurchaseLike = Union[Purchase, Mapping[str, Any]]
AppointmentLike = Union[Appointment, Mapping[str, Any]]
ProductLike = Union[Product, Mapping[str, Any]]


def as_purchase(item: PurchaseLike) -> Purchase:
    if isinstance(item, Purchase):
        return item
    return Purchase.from_client(to_client(KIND_PURCHASE, item))


def as_appointment(item: AppointmentLike) -> Appointment:
    if isinstance(item, Appointment):
        return item
    return Appointment.from_client(to_client(KIND_APPOINTMENT, item))


def as_product(item: ProductLike) -> Product:
    if isinstance(item, Product):
        return item
    return Product.from_client(to_client(KIND_PRODUCT, item))


def consumes_credit(appointment: Appointment, policy: str = POLICY_ALL) -> bool:
    if policy == POLICY_EXCLUDE_CANCELLED:
        return appointment.status not in NON_CONSUMING_STATUSES
    return True


@dataclass
class LedgerCounters:
    """Per-product purchased units and consumed credits for one customer.

    Both maps hold the same keys: every product id seen in either input.
    ``purchased_product_ids`` lists ids with at least one purchase record, in
    the order they were first encountered.
    """

    purchased_units: Dict[str, int]
    consumed_credits: Dict[str, int]
    purchased_product_ids: List[str] = field(default_factory=list)


def aggregate_purchases(purchases: Iterable[PurchaseLike]) -> Dict[str, int]:
    units: Dict[str, int] = {}
    for raw in purchases:
        p = as_purchase(raw)
        units[p.product_id] = units.get(p.product_id, 0) + p.quantity
    return units


def aggregate_consumption(appointments: Iterable[AppointmentLike], policy: str = POLICY_ALL) -> Dict[str, int]:
    used: Dict[str, int] = {}
    for raw in appointments:
        a = as_appointment(raw)
        n = 1 if consumes_credit(a, policy) else 0
        used[a.product_id] = used.get(a.product_id, 0) + n
    return used


def aggregate(
    purchases: Iterable[PurchaseLike],
    appointments: Iterable[AppointmentLike],
    policy: str = POLICY_ALL,
) -> LedgerCounters:
    """Reduce one customer's purchases and appointments into two total counters."""
    purchased = aggregate_purchases(purchases)
    consumed = aggregate_consumption(appointments, policy)
    bought = list(purchased)
    for pid in consumed:
        purchased.setdefault(pid, 0)
    for pid in purchased:
        consumed.setdefault(pid, 0)
    return LedgerCounters(
        purchased_units=purchased,
        consumed_credits=consumed,
        purchased_product_ids=bought,
    )
