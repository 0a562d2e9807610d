from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from ..config import POLICY_ALL
from ..domain.models import Product, VoucherBalance
from ..logging import get_logger
from .aggregate import (
    AppointmentLike,
    LedgerCounters,
    ProductLike,
    PurchaseLike,
    aggregate,
    as_appointment,
    as_product,
    as_purchase,
)

LOG = get_logger("ledger-balance")


def balances_from_counters(
    counters: LedgerCounters,
    products: Dict[str, Product],
    *,
    customer_id: Optional[str] = None,
) -> List[VoucherBalance]:
    """Turn aggregated counters into balances with credits remaining.

    Product ids that no longer resolve to a product are skipped; pairs with
    nothing remaining (zero or overdrawn) are left out.
    """
    result: List[VoucherBalance] = []
    for product_id in counters.purchased_product_ids:
        product = products.get(product_id)
        if product is None:
            LOG.debug(f"Skipping purchases of unknown product {product_id!r}")
            continue
        units = counters.purchased_units.get(product_id, 0)
        credits = units * product.unit_credits
        used = counters.consumed_credits.get(product_id, 0)
        remaining = credits - used
        if remaining <= 0:
            continue
        result.append(
            VoucherBalance(
                customer_id=customer_id,
                product_id=product_id,
                product_name=product.name,
                unit_credits=product.unit_credits,
                total_purchased_units=units,
                total_credits_purchased=credits,
                total_credits_consumed=used,
                remaining_credits=remaining,
            )
        )
    return result


def calculate_balances(
    purchases: Iterable[PurchaseLike],
    appointments: Iterable[AppointmentLike],
    products: Iterable[ProductLike],
    *,
    customer_id: Optional[str] = None,
    policy: str = POLICY_ALL,
) -> List[VoucherBalance]:
    """Remaining voucher credits per product for one customer.

    Inputs may be model instances or records in either field shape. When
    ``customer_id`` is given, purchases and appointments of other customers
    are ignored; otherwise the caller is expected to pre-filter.
    """
    p_list = [as_purchase(p) for p in purchases]
    a_list = [as_appointment(a) for a in appointments]
    if customer_id is not None:
        p_list = [p for p in p_list if p.customer_id == customer_id]
        a_list = [a for a in a_list if a.customer_id == customer_id]
    catalogue = {prod.id: prod for prod in (as_product(x) for x in products)}
    counters = aggregate(p_list, a_list, policy)
    return balances_from_counters(counters, catalogue, customer_id=customer_id)
