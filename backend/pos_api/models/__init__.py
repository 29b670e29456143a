"""
SQLAlchemy ORM Models Package.

All models are organized into domain-specific modules:
- base: Base class and TimestampMixin
- catalog: Product, AddOnItem, Charge, ChargeOrderType
- customer: Customer, Address, Employee
- order: Order, CartLine, AddOnSelection, ChargeSelection, PriceRecord
- selection: SelectedOrder
"""

# Base classes
from .base import Base, TimestampMixin, utcnow

# Catalog
from .catalog import Product, AddOnItem, Charge, ChargeOrderType

# Parties
from .customer import Customer, Address, Employee

# Orders
from .order import Order, CartLine, AddOnSelection, ChargeSelection, PriceRecord

# Active order marker
from .selection import SelectedOrder

__all__ = [
    "Base",
    "TimestampMixin",
    "utcnow",
    "Product",
    "AddOnItem",
    "Charge",
    "ChargeOrderType",
    "Customer",
    "Address",
    "Employee",
    "Order",
    "CartLine",
    "AddOnSelection",
    "ChargeSelection",
    "PriceRecord",
    "SelectedOrder",
]
