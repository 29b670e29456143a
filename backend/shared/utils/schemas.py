"""
Shared Pydantic schemas used across the application.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared.config.constants import Limits, OrderType


# =============================================================================
# Pricing Schemas
# =============================================================================


class PriceBreakdown(BaseModel):
    """Computed price of an order (integer currency units)."""

    subtotal: int = 0
    discount: int = 0
    total: int = 0
    # Non-fatal anomalies found while computing (e.g. clamped negative total)
    warnings: list[str] = Field(default_factory=list)


# =============================================================================
# Order Aggregate Schemas
# =============================================================================


class CartLineOutput(BaseModel):
    product_id: int
    name: str
    unit_price: int
    quantity: int
    line_total: int


class OrderAggregate(BaseModel):
    """
    An order assembled from its header, cart lines, add-on and charge
    selections and price record. Read-only view for the presentation,
    printing and export layers.
    """

    id: int
    order_type: OrderType
    order_status: str
    charges_included: bool = False
    created_at: datetime
    updated_at: datetime | None = None

    customer_id: int | None = None
    customer_phone: str | None = None
    customer_name: str | None = None
    address_id: int | None = None
    address_name: str | None = None
    address_short_name: str | None = None
    delivery_partner_id: int | None = None

    lines: list[CartLineOutput] = Field(default_factory=list)
    add_on_ids: list[int] = Field(default_factory=list)
    charge_ids: list[int] = Field(default_factory=list)
    price: PriceBreakdown = Field(default_factory=PriceBreakdown)
    is_selected: bool = False

    @property
    def last_activity(self) -> datetime:
        return self.updated_at or self.created_at

    def quantity_of(self, product_id: int) -> int:
        """Quantity of a product in the cart, 0 when absent."""
        for line in self.lines:
            if line.product_id == product_id:
                return line.quantity
        return 0


class OrderGroup(BaseModel):
    """Orders sharing a date bucket ("Today", "Yesterday", "05 Mar 2025")."""

    label: str
    orders: list[OrderAggregate] = Field(default_factory=list)


class QuantityChange(BaseModel):
    """Outcome of a cart line quantity mutation."""

    order_id: int
    product_id: int
    quantity: int  # 0 when the line was removed
    removed: bool = False
    price: PriceBreakdown | None = None


# =============================================================================
# Operation Results
# =============================================================================


class OperationResult(BaseModel):
    """
    Result of a mutating Order Aggregate Service call.

    success=False only for failures the user must act on (store errors,
    busy orders, invalid state). Benign no-ops succeed with a message.
    """

    success: bool
    message: str | None = None
    warnings: list[str] = Field(default_factory=list)
    data: Any = None
    # HTTP status the router answers a failure with
    status_code: int | None = Field(default=None, exclude=True)

    @classmethod
    def ok(cls, message: str | None = None, data: Any = None, warnings: list[str] | None = None) -> "OperationResult":
        return cls(success=True, message=message, data=data, warnings=warnings or [])

    @classmethod
    def error(
        cls,
        message: str,
        status_code: int = 400,
        warnings: list[str] | None = None,
    ) -> "OperationResult":
        return cls(success=False, message=message, warnings=warnings or [], status_code=status_code)


# =============================================================================
# Order Requests
# =============================================================================


class OrderUpsertRequest(BaseModel):
    """
    Create a new order (order_id=None) or update an existing one.

    Customer is added-or-reused by phone and the address by name; add-on and
    charge selections are synchronized to exactly the given id sets.
    """

    order_id: int | None = None
    order_type: OrderType = OrderType.DINE_IN
    customer_phone: str | None = Field(default=None, max_length=Limits.MAX_PHONE_LENGTH)
    customer_name: str | None = Field(default=None, max_length=Limits.MAX_NAME_LENGTH)
    address_name: str | None = Field(default=None, max_length=Limits.MAX_NAME_LENGTH)
    address_short_name: str | None = Field(default=None, max_length=Limits.MAX_SHORT_NAME_LENGTH)
    add_on_ids: list[int] = Field(default_factory=list)
    charge_ids: list[int] = Field(default_factory=list)
    charges_included: bool = False
    delivery_partner_id: int | None = None


class QuantityDeltaRequest(BaseModel):
    product_id: int
    delta: int = Field(ge=-Limits.MAX_QUANTITY_DELTA, le=Limits.MAX_QUANTITY_DELTA)

    @field_validator("delta")
    @classmethod
    def delta_not_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("delta must not be zero")
        return v


class ProductQuantityRequest(BaseModel):
    product_id: int


class OrderIdsRequest(BaseModel):
    order_ids: list[int] = Field(min_length=1, max_length=Limits.MAX_BULK_ORDER_IDS)


class SelectOrderRequest(BaseModel):
    order_id: int


class DeliveryPartnerRequest(BaseModel):
    employee_id: int | None = None


# =============================================================================
# Catalog Schemas
# =============================================================================


class ProductInput(BaseModel):
    name: str = Field(min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    price: int = Field(ge=Limits.MIN_PRICE, le=Limits.MAX_PRICE)
    is_available: bool = True


class ProductUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    price: int | None = Field(default=None, ge=Limits.MIN_PRICE, le=Limits.MAX_PRICE)
    is_available: bool | None = None


class ProductOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: int
    is_available: bool


class AddOnInput(BaseModel):
    name: str = Field(min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    price: int = Field(ge=Limits.MIN_PRICE, le=Limits.MAX_PRICE)
    is_applicable: bool = True


class AddOnUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    price: int | None = Field(default=None, ge=Limits.MIN_PRICE, le=Limits.MAX_PRICE)
    is_applicable: bool | None = None


class AddOnOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: int
    is_applicable: bool


class ChargeInput(BaseModel):
    name: str = Field(min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    amount: int = Field(ge=Limits.MIN_PRICE, le=Limits.MAX_PRICE)
    is_applicable: bool = True
    # Order types the charge applies to
    order_types: list[OrderType] = Field(default_factory=lambda: list(OrderType))


class ChargeUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    amount: int | None = Field(default=None, ge=Limits.MIN_PRICE, le=Limits.MAX_PRICE)
    is_applicable: bool | None = None
    order_types: list[OrderType] | None = None


class ChargeOutput(BaseModel):
    id: int
    name: str
    amount: int
    is_applicable: bool
    order_types: list[OrderType] = Field(default_factory=list)


class CustomerOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    phone: str
    name: str | None = None
    email: str | None = None


class AddressOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    short_name: str | None = None


# =============================================================================
# Error Schemas
# =============================================================================


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
