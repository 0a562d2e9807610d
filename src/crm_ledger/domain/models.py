from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .constants import APPOINTMENT_SCHEDULED, PRODUCT_STATUS_ACTIVE, PRODUCT_TYPE_SINGLE


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class Product:
    id: str
    name: str
    price: float
    type: str = PRODUCT_TYPE_SINGLE  # single | voucher
    count: Optional[int] = None  # credits per purchased unit (vouchers)
    status: str = PRODUCT_STATUS_ACTIVE
    description: str = ""

    @property
    def unit_credits(self) -> int:
        """Consumption credits granted by one purchased unit (at least 1)."""
        n = _int(self.count, 0)
        return n if n >= 1 else 1

    @classmethod
    def from_client(cls, rec: Mapping[str, Any]) -> "Product":
        count = rec.get("count")
        return cls(
            id=str(rec.get("id") or ""),
            name=rec.get("name") or "",
            price=rec.get("price") or 0,
            type=rec.get("type") or PRODUCT_TYPE_SINGLE,
            count=_int(count) if count not in (None, "") else None,
            status=rec.get("status") or PRODUCT_STATUS_ACTIVE,
            description=rec.get("description") or "",
        )


@dataclass
class Purchase:
    customer_id: str
    product_id: str
    quantity: int
    purchase_date: str = ""
    total_price: float = 0
    id: Optional[str] = None

    @classmethod
    def from_client(cls, rec: Mapping[str, Any]) -> "Purchase":
        return cls(
            id=rec.get("id"),
            customer_id=str(rec.get("customerId") or ""),
            product_id=str(rec.get("productId") or ""),
            quantity=_int(rec.get("quantity")),
            purchase_date=rec.get("purchaseDate") or "",
            total_price=rec.get("totalPrice") or 0,
        )


@dataclass
class Appointment:
    customer_id: str
    product_id: str
    datetime: str
    status: str = APPOINTMENT_SCHEDULED
    memo: str = ""
    id: Optional[str] = None

    @classmethod
    def from_client(cls, rec: Mapping[str, Any]) -> "Appointment":
        return cls(
            id=rec.get("id"),
            customer_id=str(rec.get("customerId") or ""),
            product_id=str(rec.get("productId") or ""),
            datetime=rec.get("datetime") or "",
            status=rec.get("status") or APPOINTMENT_SCHEDULED,
            memo=rec.get("memo") or "",
        )


@dataclass
class VoucherBalance:
    """Remaining credits of one product for one customer (derived, never stored)."""

    customer_id: Optional[str]
    product_id: str
    product_name: str
    unit_credits: int
    total_purchased_units: int
    total_credits_purchased: int
    total_credits_consumed: int
    remaining_credits: int

    def to_client(self) -> Dict[str, Any]:
        return {
            "customerId": self.customer_id,
            "productId": self.product_id,
            "productName": self.product_name,
            "unitCredits": self.unit_credits,
            "totalPurchasedUnits": self.total_purchased_units,
            "totalCreditsPurchased": self.total_credits_purchased,
            "totalCreditsConsumed": self.total_credits_consumed,
            "remainingCredits": self.remaining_credits,
        }
