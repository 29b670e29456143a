"""
Catalog Models: Product, AddOnItem, Charge, ChargeOrderType.
"""

from __future__ import annotations

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, IdType, TimestampMixin


class Product(TimestampMixin, Base):
    """A sellable menu item. Cart lines reference it and die with it."""

    __tablename__ = "product"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_product_price_non_negative"),
        # Never hand a deleted id to a new row: stale actions must miss
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name='{self.name}', price={self.price})>"


class AddOnItem(TimestampMixin, Base):
    """
    An extra selectable per order (e.g. extra sauce, packaging).

    is_applicable=False makes it complimentary: it can still be selected
    but contributes nothing to the price.
    """

    __tablename__ = "add_on_item"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_applicable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_add_on_item_price_non_negative"),
        {"sqlite_autoincrement": True},
    )


class Charge(TimestampMixin, Base):
    """
    A service/delivery/packaging charge.

    A selected charge is added to an order's subtotal only when it is
    applicable and the order type has a row in charge_order_type.
    """

    __tablename__ = "charge"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_applicable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    order_types: Mapped[list["ChargeOrderType"]] = relationship(
        back_populates="charge",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_charge_amount_non_negative"),
        {"sqlite_autoincrement": True},
    )

    @property
    def order_type_values(self) -> list[str]:
        return sorted(row.order_type for row in self.order_types)


class ChargeOrderType(Base):
    """Applicability rule: the charge applies to orders of this type."""

    __tablename__ = "charge_order_type"

    charge_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("charge.id", ondelete="CASCADE"), primary_key=True
    )
    order_type: Mapped[str] = mapped_column(String(20), primary_key=True)

    charge: Mapped["Charge"] = relationship(back_populates="order_types")
