from ..database import Base
from .orders import Order, OrderItem
from .products import (
    Product, ProductGroup, ProductGroupItem,
    ProductStock, ProductGroupStock, InventoryConfig,
)
from .finance import AdSpend, PaymentTypeFee, Bill, BillPayment, ImportLog

__all__ = [
    "Base",
    # Sales facts
    "Order", "OrderItem",
    # Products + inventory
    "Product", "ProductGroup", "ProductGroupItem",
    "ProductStock", "ProductGroupStock", "InventoryConfig",
    # Finance
    "AdSpend", "PaymentTypeFee", "Bill", "BillPayment",
    # Audit
    "ImportLog",
]
