from __future__ import annotations

from typing import List

from ..config import POLICY_ALL
from ..domain.constants import KIND_APPOINTMENT, KIND_PRODUCT, KIND_PURCHASE, TABLES
from ..domain.mapping import to_client_many
from ..domain.models import VoucherBalance
from ..logging import get_logger
from ..store.base import RecordStore
from .balance import calculate_balances

LOG = get_logger("ledger-service")


class LedgerService:
    """Fetch one customer's ledger inputs from the record store and compute balances."""

    def __init__(self, remote: RecordStore, *, policy: str = POLICY_ALL) -> None:
        self.remote = remote
        self.policy = policy

    def balances_for(self, customer_id: str) -> List[VoucherBalance]:
        purchases = to_client_many(
            KIND_PURCHASE, self.remote.select_where(TABLES[KIND_PURCHASE], "customer_id", customer_id)
        )
        appointments = to_client_many(
            KIND_APPOINTMENT, self.remote.select_where(TABLES[KIND_APPOINTMENT], "customer_id", customer_id)
        )
        products = to_client_many(KIND_PRODUCT, self.remote.select_all(TABLES[KIND_PRODUCT]))
        balances = calculate_balances(
            purchases,
            appointments,
            products,
            customer_id=customer_id,
            policy=self.policy,
        )
        LOG.info(
            f"Customer {customer_id}: {len(purchases)} purchase(s), {len(appointments)} appointment(s) "
            f"-> {len(balances)} open balance(s)"
        )
        return balances
