"""
API routers.

- orders: order list, cart lines, selections and order lifecycle
- catalog: products, add-ons, charges, customers and addresses

All routes are prefixed with /api
"""

from .catalog import router as catalog_router
from .orders import router as orders_router

__all__ = ["catalog_router", "orders_router"]
