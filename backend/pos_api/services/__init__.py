"""
Services module for business logic.

- domain/: application services used by the routers
- order_feed: live, grouped order list refreshed on every committed change

Usage:
    from pos_api.services.domain import OrderAggregateService
    service = OrderAggregateService(db)
    result = service.increase_quantity(order_id, product_id)
"""

from .order_feed import OrderFeed, session_loader

__all__ = [
    "OrderFeed",
    "session_loader",
]
