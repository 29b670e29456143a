"""
Order Models: Order, CartLine, AddOnSelection, ChargeSelection, PriceRecord.

Every child row cascades from its order and from the catalog row it points
at, so deleting a product, add-on or charge can never leave an order
referencing it.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import OrderStatus, OrderType
from .base import Base, IdType, TimestampMixin, utcnow

if TYPE_CHECKING:
    from .catalog import Product
    from .customer import Address, Customer, Employee


class Order(TimestampMixin, Base):
    """
    Order header. Lines, selections and the price record hang off it.
    """

    __tablename__ = "cart_order"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    order_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OrderType.DINE_IN.value
    )
    order_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OrderStatus.PROCESSING, index=True
    )
    # Charges are already part of the menu prices: discount them back out
    charges_included: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    customer_id: Mapped[Optional[int]] = mapped_column(
        IdType, ForeignKey("customer.id", ondelete="SET NULL"), index=True
    )
    address_id: Mapped[Optional[int]] = mapped_column(
        IdType, ForeignKey("address.id", ondelete="SET NULL"), index=True
    )
    delivery_partner_id: Mapped[Optional[int]] = mapped_column(
        IdType, ForeignKey("employee.id", ondelete="SET NULL")
    )

    # Relationships
    lines: Mapped[list["CartLine"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="CartLine.id",
    )
    price: Mapped[Optional["PriceRecord"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )
    customer: Mapped[Optional["Customer"]] = relationship()
    address: Mapped[Optional["Address"]] = relationship()
    delivery_partner: Mapped[Optional["Employee"]] = relationship()

    __table_args__ = (
        CheckConstraint(
            "order_type IN ('DineIn', 'DineOut', 'Delivery')", name="ck_cart_order_type"
        ),
        CheckConstraint(
            "order_status IN ('PROCESSING', 'PLACED')", name="ck_cart_order_status"
        ),
        # A deleted order id is never reused, so stale actions stay no-ops
        {"sqlite_autoincrement": True},
    )

    @property
    def is_placed(self) -> bool:
        return self.order_status == OrderStatus.PLACED

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, type='{self.order_type}', status='{self.order_status}')>"


class CartLine(Base):
    """
    A product in an order's cart. At most one line per (order, product);
    a line with quantity 0 is deleted, never stored.
    """

    __tablename__ = "cart_line"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    order_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("cart_order.id", ondelete="CASCADE"), nullable=False
    )
    product_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("product.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    order: Mapped["Order"] = relationship(back_populates="lines")
    product: Mapped["Product"] = relationship()

    __table_args__ = (
        UniqueConstraint("order_id", "product_id", name="uq_cart_line_order_product"),
        CheckConstraint("quantity > 0", name="ck_cart_line_quantity_positive"),
        Index("ix_cart_line_order", "order_id"),
    )

    def __repr__(self) -> str:
        return f"<CartLine(order_id={self.order_id}, product_id={self.product_id}, qty={self.quantity})>"


class AddOnSelection(Base):
    """An add-on item selected for an order."""

    __tablename__ = "order_add_on"

    order_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("cart_order.id", ondelete="CASCADE"), primary_key=True
    )
    add_on_item_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("add_on_item.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


class ChargeSelection(Base):
    """A charge selected for an order."""

    __tablename__ = "order_charge"

    order_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("cart_order.id", ondelete="CASCADE"), primary_key=True
    )
    charge_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("charge.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


class PriceRecord(Base):
    """
    Computed price of an order, rewritten in the same transaction as every
    cart line or selection write.
    """

    __tablename__ = "order_price"

    order_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("cart_order.id", ondelete="CASCADE"), primary_key=True
    )
    subtotal: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    discount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    order: Mapped["Order"] = relationship(back_populates="price")

    __table_args__ = (
        CheckConstraint("subtotal >= 0", name="ck_order_price_subtotal"),
        CheckConstraint("discount >= 0", name="ck_order_price_discount"),
        CheckConstraint("total >= 0", name="ck_order_price_total"),
    )

    def __repr__(self) -> str:
        return f"<PriceRecord(order_id={self.order_id}, total={self.total})>"
