"""
Domain Services - Application Layer.

Structure:
    Router (thin controller)
        ↓
    Service (business logic)  ← YOU ARE HERE
        ↓
    Repository (data access)
        ↓
    Model (entity)

Only OrderAggregateService and CatalogService commit. The pricing, quantity
and selection services work inside their caller's transaction.

Usage:
    from pos_api.services.domain import OrderAggregateService

    # In router
    service = OrderAggregateService(db)
    groups = service.query_orders(search="table 4")
"""

from .pricing_service import (
    PricedAddOn,
    PricedCharge,
    PricedLine,
    PricingRules,
    PricingService,
    compute_price,
)
from .quantity_service import QuantityService
from .selection_service import ActiveOrderSelection, MultiSelection
from .order_service import OrderAggregateService, get_multi_selection
from .catalog_service import CatalogService

__all__ = [
    # Pricing
    "PricedAddOn",
    "PricedCharge",
    "PricedLine",
    "PricingRules",
    "PricingService",
    "compute_price",
    # Cart and selection
    "QuantityService",
    "ActiveOrderSelection",
    "MultiSelection",
    # Orchestration
    "OrderAggregateService",
    "get_multi_selection",
    "CatalogService",
]
