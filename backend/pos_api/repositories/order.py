"""
Order Repository - Data access for order headers.
"""

from typing import Sequence

from sqlalchemy import delete, func, select

from pos_api.models import Order
from shared.config.constants import OrderStatus
from .base import BaseRepository


class OrderRepository(BaseRepository[Order]):
    @property
    def model(self) -> type[Order]:
        return Order

    def latest_processing(self, exclude_ids: Sequence[int] = ()) -> Order | None:
        """Most recently active PROCESSING order, skipping the given ids."""
        query = (
            select(Order)
            .where(Order.order_status == OrderStatus.PROCESSING)
            .order_by(func.coalesce(Order.updated_at, Order.created_at).desc(), Order.id.desc())
            .limit(1)
        )
        if exclude_ids:
            query = query.where(Order.id.not_in(exclude_ids))
        return self._db.scalar(query)

    def delete_many(self, order_ids: Sequence[int]) -> int:
        """
        Delete orders by id. Lines, selections, price rows and the active
        marker go with them through the foreign key cascades.

        Returns:
            Number of orders deleted
        """
        if not order_ids:
            return 0
        result = self._db.execute(delete(Order).where(Order.id.in_(order_ids)))
        return result.rowcount or 0

    def set_status(self, order_ids: Sequence[int], status: str) -> list[int]:
        """Move orders to a status. Returns the ids actually changed."""
        orders = self.find_by_ids(order_ids)
        changed = []
        for order in orders:
            if order.order_status != status:
                order.order_status = status
                changed.append(order.id)
        return sorted(changed)
