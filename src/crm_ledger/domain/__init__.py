"""Entity models, field mapping and shape checks shared by ledger and migration."""

from .models import Appointment, Product, Purchase, VoucherBalance
from .mapping import to_client, to_storage

__all__ = [
    "Appointment",
    "Product",
    "Purchase",
    "VoucherBalance",
    "to_client",
    "to_storage",
]
