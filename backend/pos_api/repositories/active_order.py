"""
Active Order Repository - The singleton SelectedOrder row.
"""

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from pos_api.models import SelectedOrder
from shared.config.constants import SELECTED_ORDER_ROW_ID


class ActiveOrderRepository:
    def __init__(self, db: Session):
        self._db = db

    def get_order_id(self) -> int | None:
        return self._db.scalar(
            select(SelectedOrder.order_id).where(SelectedOrder.id == SELECTED_ORDER_ROW_ID)
        )

    def set_order_id(self, order_id: int) -> None:
        """Point the marker at an order, replacing any previous one."""
        marker = self._db.get(SelectedOrder, SELECTED_ORDER_ROW_ID)
        if marker is None:
            self._db.add(SelectedOrder(id=SELECTED_ORDER_ROW_ID, order_id=order_id))
        else:
            marker.order_id = order_id
        self._db.flush()

    def clear(self, only_order_ids: Sequence[int] | None = None) -> bool:
        """
        Remove the marker. With only_order_ids, remove it only when it points
        at one of them. Returns True if the marker was removed.
        """
        marker = self._db.get(SelectedOrder, SELECTED_ORDER_ROW_ID)
        if marker is None:
            return False
        if only_order_ids is not None and marker.order_id not in set(only_order_ids):
            return False
        self._db.delete(marker)
        self._db.flush()
        return True
