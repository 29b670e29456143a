"""
Selection Domain Service.

Two independent pieces of selection state with different lifetimes:

- ActiveOrderSelection: the single order checkout actions target. Persisted
  in the selected_order row, so it survives restarts. Works inside the
  caller's transaction.
- MultiSelection: the transient set of order ids picked for a bulk action.
  In memory only, one per terminal session.
"""

import threading
from collections.abc import Iterable

from sqlalchemy.orm import Session

from pos_api.repositories import ActiveOrderRepository, OrderRepository
from shared.config.constants import Messages, OrderStatus
from shared.config.logging import get_logger
from shared.utils.exceptions import InvalidStateError

logger = get_logger(__name__)


class ActiveOrderSelection:
    """
    Holder of the active order id.

    Flushes, never commits: the Order Aggregate Service commits the marker
    together with the write that moved it.
    """

    def __init__(self, db: Session):
        self._marker = ActiveOrderRepository(db)
        self._orders = OrderRepository(db)

    def get(self) -> int | None:
        return self._marker.get_order_id()

    def select(self, order_id: int) -> bool:
        """
        Make an order the active one, replacing the previous marker.

        Returns:
            True if the marker changed. A stale (deleted) id is ignored and
            returns False.

        Raises:
            InvalidStateError: the order has already been placed
        """
        order = self._orders.find_by_id(order_id)
        if order is None:
            logger.info("Selection of missing order ignored", order_id=order_id)
            return False
        if order.is_placed:
            raise InvalidStateError(
                "Order",
                order.order_status,
                [OrderStatus.PROCESSING],
                order_id=order_id,
                reason=Messages.UNABLE_TO_SELECT_PLACED,
            )
        if self._marker.get_order_id() == order_id:
            return False

        self._marker.set_order_id(order_id)
        logger.info("Active order selected", order_id=order_id)
        return True

    def clear(self) -> bool:
        return self._marker.clear()

    def clear_if_in(self, order_ids: Iterable[int]) -> bool:
        """Clear the marker only when it points at one of the given orders."""
        return self._marker.clear(list(order_ids))


class MultiSelection:
    """
    Thread-safe set of order ids selected for a bulk action.

    Usage:
        selection = MultiSelection()
        selection.toggle(7)
        selection.select_all([7, 8, 9])
        ids = selection.ids
        selection.deselect()
    """

    def __init__(self) -> None:
        self._ids: set[int] = set()
        self._lock = threading.Lock()

    def toggle(self, order_id: int) -> bool:
        """Flip membership. Returns True when the id is now selected."""
        with self._lock:
            if order_id in self._ids:
                self._ids.remove(order_id)
                return False
            self._ids.add(order_id)
            return True

    def select_all(self, visible_ids: Iterable[int]) -> None:
        """Replace the set with every currently visible order id."""
        with self._lock:
            self._ids = set(visible_ids)

    def deselect(self) -> None:
        with self._lock:
            self._ids.clear()

    def discard(self, order_ids: Iterable[int]) -> None:
        """Forget ids (e.g. after their orders were deleted)."""
        with self._lock:
            self._ids.difference_update(order_ids)

    @property
    def ids(self) -> list[int]:
        """Sorted snapshot of the selected ids."""
        with self._lock:
            return sorted(self._ids)

    def __contains__(self, order_id: object) -> bool:
        with self._lock:
            return order_id in self._ids

    def __len__(self) -> int:
        with self._lock:
            return len(self._ids)
