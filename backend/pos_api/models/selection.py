"""
Selection Model: SelectedOrder (the persisted active-order marker).
"""

from __future__ import annotations

from sqlalchemy import CheckConstraint, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from shared.config.constants import SELECTED_ORDER_ROW_ID
from .base import Base, IdType


class SelectedOrder(Base):
    """
    Singleton row naming the active order.

    The foreign key cascades, so deleting the active order removes the marker.
    """

    __tablename__ = "selected_order"

    id: Mapped[int] = mapped_column(IdType, primary_key=True, default=SELECTED_ORDER_ROW_ID)
    order_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("cart_order.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (
        CheckConstraint(f"id = {SELECTED_ORDER_ROW_ID}", name="ck_selected_order_singleton"),
    )
