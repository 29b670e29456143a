"""
Centralized constants for the backend application.
Avoid magic strings and repeated constants.

Usage:
    from shared.config.constants import OrderType, OrderStatus, Limits

    if order.order_status == OrderStatus.PROCESSING:
        ...
"""

from enum import Enum
from typing import Final


# =============================================================================
# Order Types
# =============================================================================


class OrderType(str, Enum):
    """How the order is served. Stored as its string value."""

    DINE_IN = "DineIn"
    DINE_OUT = "DineOut"
    DELIVERY = "Delivery"

    @property
    def requires_address(self) -> bool:
        """DineOut and Delivery orders are expected to carry an address."""
        return self is not OrderType.DINE_IN


ALL_ORDER_TYPES: Final[tuple[str, ...]] = tuple(t.value for t in OrderType)


# =============================================================================
# Entity Status Constants
# =============================================================================


class OrderStatus:
    """Order status constants."""

    PROCESSING: Final[str] = "PROCESSING"  # Cart still open at the terminal
    PLACED: Final[str] = "PLACED"  # Checked out

    ALL: Final[list[str]] = [PROCESSING, PLACED]


# The active-order marker is a singleton row
SELECTED_ORDER_ROW_ID: Final[int] = 1


# =============================================================================
# Validation Constants
# =============================================================================


class Limits:
    """Validation limits."""

    # Quantity limits
    MIN_QUANTITY: Final[int] = 1
    MAX_QUANTITY: Final[int] = 999
    MAX_QUANTITY_DELTA: Final[int] = 99

    # Price limits (whole currency units)
    MIN_PRICE: Final[int] = 0
    MAX_PRICE: Final[int] = 10_000_000

    # String lengths
    MAX_NAME_LENGTH: Final[int] = 200
    MAX_SHORT_NAME_LENGTH: Final[int] = 20
    MAX_PHONE_LENGTH: Final[int] = 20
    MAX_SEARCH_TERM_LENGTH: Final[int] = 100

    # Bulk operations
    MAX_BULK_ORDER_IDS: Final[int] = 500


# =============================================================================
# Event Types (change bus / Redis relay)
# =============================================================================


class ChangeKind:
    """Order change notification kinds."""

    ORDER_CREATED: Final[str] = "ORDER_CREATED"
    ORDER_UPDATED: Final[str] = "ORDER_UPDATED"
    ORDER_PLACED: Final[str] = "ORDER_PLACED"
    ORDER_DELETED: Final[str] = "ORDER_DELETED"
    CART_CHANGED: Final[str] = "CART_CHANGED"
    ADD_ONS_CHANGED: Final[str] = "ADD_ONS_CHANGED"
    CHARGES_CHANGED: Final[str] = "CHARGES_CHANGED"
    SELECTION_CHANGED: Final[str] = "SELECTION_CHANGED"
    CATALOG_CHANGED: Final[str] = "CATALOG_CHANGED"

    ALL: Final[list[str]] = [
        ORDER_CREATED,
        ORDER_UPDATED,
        ORDER_PLACED,
        ORDER_DELETED,
        CART_CHANGED,
        ADD_ONS_CHANGED,
        CHARGES_CHANGED,
        SELECTION_CHANGED,
        CATALOG_CHANGED,
    ]


# =============================================================================
# User-facing messages
# =============================================================================


class Messages:
    """Standardized result messages returned to the presentation layer."""

    ORDER_NOT_FOUND: Final[str] = "Order no longer exists"
    PRODUCT_NOT_FOUND: Final[str] = "Product no longer exists"
    ADD_ON_NOT_FOUND: Final[str] = "Add-on item no longer exists"
    CHARGE_NOT_FOUND: Final[str] = "Charge no longer exists"
    PRODUCT_NOT_IN_CART: Final[str] = "Product is not in the cart"
    ORDER_ALREADY_PLACED: Final[str] = "Order has already been placed"
    UNABLE_TO_SELECT_PLACED: Final[str] = "Unable to select placed order."
    NO_ORDERS_SELECTED: Final[str] = "No orders selected"
    ADDRESS_REQUIRED: Final[str] = "Customer address is required for {order_type} orders"
    PHONE_REQUIRED: Final[str] = "Customer phone is required for {order_type} orders"
    NEGATIVE_TOTAL: Final[str] = "Computed total was negative and has been set to 0"
    ORDER_BUSY: Final[str] = "Order is being updated, try again"
    DELIVERY_PARTNER_NOT_FOUND: Final[str] = "Delivery partner no longer exists"
