from .customer_update import CustomerUpdateSaga, valid_purchase_items

__all__ = ["CustomerUpdateSaga", "valid_purchase_items"]
