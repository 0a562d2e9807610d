"""Customer edit that also replaces the customer's appointment and purchase history.

The store offers no multi-table transaction, so the edit runs as a saga:
each destructive step registers a compensation, and on failure the
compensations run in reverse order before SagaError is raised.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ..domain.constants import KIND_APPOINTMENT, KIND_CUSTOMER, KIND_PURCHASE, TABLES
from ..domain.mapping import partial_to_storage, to_client, to_storage
from ..errors import RemoteStoreError, SagaError
from ..logging import get_logger
from ..store.base import RecordStore

LOG = get_logger("customer-update")

_SERVER_FIELDS = ("id", "created_at", "updated_at")

Compensation = Tuple[str, Callable[[], None]]


def _strip_server_fields(row: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in row.items() if k not in _SERVER_FIELDS}


def valid_purchase_items(items: Sequence[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    """Keep purchase lines with a product selected and a positive quantity."""
    out = []
    for item in items:
        rec = to_client(KIND_PURCHASE, item)
        pid = str(rec.get("productId") or "").strip()
        try:
            qty = int(rec.get("quantity") or 0)
        except (TypeError, ValueError):
            qty = 0
        if pid and qty > 0:
            out.append(item)
    return out


class CustomerUpdateSaga:
    def __init__(self, remote: RecordStore, *, user_id: Optional[str] = None) -> None:
        self.remote = remote
        self.user_id = user_id
        self._compensations: List[Compensation] = []

    def run(
        self,
        customer_id: str,
        updates: Mapping[str, Any],
        *,
        appointments: Optional[Sequence[Mapping[str, Any]]] = None,
        purchases: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """Apply the edit and return the updated customer in client shape.

        ``appointments`` / ``purchases`` of None leave that history untouched;
        an empty sequence clears it.
        """
        self._compensations = []
        customers = TABLES[KIND_CUSTOMER]
        previous = self.remote.select_by_id(customers, customer_id)
        if previous is None:
            raise LookupError(f"Customer {customer_id} not found")

        step = "update-customer"
        try:
            values = _strip_server_fields(partial_to_storage(KIND_CUSTOMER, updates))
            updated = self.remote.update_by_id(customers, customer_id, values) if values else previous
            restore = {k: previous.get(k) for k in values}
            self._compensations.append(
                (step, lambda: self.remote.update_by_id(customers, customer_id, restore))
            )

            if appointments is not None:
                step = "replace-appointments"
                self._replace_history(KIND_APPOINTMENT, customer_id, appointments)

            if purchases is not None:
                step = "replace-purchases"
                self._replace_history(KIND_PURCHASE, customer_id, valid_purchase_items(purchases))
        except RemoteStoreError as e:
            errors = self._compensate()
            LOG.error(f"Customer {customer_id} update failed at {step}: {e.message}")
            raise SagaError(step, e, errors) from e

        LOG.info(f"Customer {customer_id} updated")
        return to_client(KIND_CUSTOMER, updated or previous)

    def _replace_history(self, kind: str, customer_id: str, items: Sequence[Mapping[str, Any]]) -> None:
        table = TABLES[kind]
        snapshot = self.remote.select_where(table, "customer_id", customer_id)
        rows = [self._new_row(kind, customer_id, item) for item in items]

        self.remote.delete_where(table, "customer_id", customer_id)

        def _restore() -> None:
            self.remote.delete_where(table, "customer_id", customer_id)
            if snapshot:
                self.remote.insert_many(table, snapshot)

        self._compensations.append((f"restore-{table}", _restore))
        if rows:
            self.remote.insert_many(table, rows)
        LOG.debug(f"Replaced {len(snapshot)} {table} row(s) with {len(rows)} for customer {customer_id}")

    def _new_row(self, kind: str, customer_id: str, item: Mapping[str, Any]) -> Dict[str, Any]:
        row = _strip_server_fields(to_storage(kind, item))
        row["customer_id"] = customer_id
        if self.user_id:
            row["user_id"] = self.user_id
        if kind == KIND_PURCHASE and not row.get("purchase_date"):
            row["purchase_date"] = datetime.now(timezone.utc).isoformat()
        return row

    def _compensate(self) -> List[str]:
        errors: List[str] = []
        for name, undo in reversed(self._compensations):
            try:
                undo()
            except RemoteStoreError as e:
                LOG.error(f"Compensation {name} failed: {e.message}")
                errors.append(f"{name}: {e.message}")
        self._compensations = []
        return errors
