"""
Repository Pattern for data access.

Provides:
- Consistent query patterns
- Batch loading of order children (no N+1)
- Read-optimized order aggregates

Usage:
    from pos_api.repositories import OrderQueryRepository, OrderFilters

    repo = OrderQueryRepository(db)
    aggregates = repo.find_aggregates(OrderFilters(search="dine", view_all=True))
"""

from .base import BaseRepository, RepositoryFilters
from .active_order import ActiveOrderRepository
from .cart import CartRepository
from .catalog import (
    AddOnItemRepository,
    AddressRepository,
    ChargeRepository,
    CustomerRepository,
    EmployeeRepository,
    ProductRepository,
)
from .order import OrderRepository
from .order_query import OrderFilters, OrderQueryRepository, date_bucket_label, group_by_date_bucket
from .price import PriceRepository
from .selections import AddOnSelectionRepository, ChargeSelectionRepository

__all__ = [
    "BaseRepository",
    "RepositoryFilters",
    "ActiveOrderRepository",
    "CartRepository",
    "AddOnItemRepository",
    "AddressRepository",
    "ChargeRepository",
    "CustomerRepository",
    "EmployeeRepository",
    "ProductRepository",
    "OrderRepository",
    "OrderFilters",
    "OrderQueryRepository",
    "date_bucket_label",
    "group_by_date_bucket",
    "PriceRepository",
    "AddOnSelectionRepository",
    "ChargeSelectionRepository",
]
