"""
Per-order write serialization.

Every write that touches an order's cart lines, selections or price record
runs while holding that order's lock, so concurrent mutations of the same
order are applied one after another and the price record always matches
the lines it was computed from. Different orders never contend.

LOCK ORDERING CONSTRAINTS:
==========================
The _meta_lock is NON-REENTRANT and only guards the lock dictionary. It is
never held while waiting for an order lock.

Order locks are not reentrant either: a thread holding order 7 must not call
hold(7) again. Operations that touch several orders use hold_many(), which
acquires in ascending order id to prevent deadlock between two bulk
operations with overlapping id sets.

Usage:
    locks = get_order_lock_manager()

    with locks.hold(order_id):
        ...  # write + recompute + commit

    with locks.hold_many([9, 3, 7]):  # acquires 3, 7, 9
        ...
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from contextlib import ExitStack, contextmanager

from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.utils.exceptions import OrderBusyError

logger = get_logger(__name__)


class OrderLockManager:
    """
    Manages threading locks keyed by order id.

    Locks are created on demand under a meta lock. Each entry tracks how many
    threads are holding or waiting on it; once the dictionary grows past the
    cleanup threshold, entries nobody uses are dropped.
    """

    def __init__(
        self,
        timeout: float | None = None,
        cleanup_threshold: int | None = None,
    ):
        """
        Args:
            timeout: Default seconds to wait for an order lock.
            cleanup_threshold: Number of cached locks that triggers cleanup.
        """
        self._timeout = timeout if timeout is not None else settings.order_lock_timeout_seconds
        self._cleanup_threshold = (
            cleanup_threshold if cleanup_threshold is not None else settings.lock_cleanup_threshold
        )

        # order_id -> [lock, users]
        self._locks: dict[int, list] = {}
        self._meta_lock = threading.Lock()

        # Metrics
        self._locks_cleaned = 0

    @property
    def lock_count(self) -> int:
        """Number of order locks currently cached."""
        return len(self._locks)

    @property
    def locks_cleaned_total(self) -> int:
        """Total number of locks cleaned since startup."""
        return self._locks_cleaned

    def _checkout(self, order_id: int) -> threading.Lock:
        with self._meta_lock:
            entry = self._locks.get(order_id)
            if entry is None:
                if len(self._locks) >= self._cleanup_threshold:
                    self._cleanup_unused_locks()
                entry = [threading.Lock(), 0]
                self._locks[order_id] = entry
            entry[1] += 1
            return entry[0]

    def _checkin(self, order_id: int) -> None:
        with self._meta_lock:
            entry = self._locks.get(order_id)
            if entry is not None:
                entry[1] -= 1

    def _cleanup_unused_locks(self) -> None:
        """Drop locks no thread holds or waits on. Caller holds _meta_lock."""
        unused = [order_id for order_id, (_, users) in self._locks.items() if users == 0]
        for order_id in unused:
            del self._locks[order_id]

        if unused:
            self._locks_cleaned += len(unused)
            logger.debug("Cleaned up order locks", cleaned=len(unused), remaining=len(self._locks))

    @contextmanager
    def hold(self, order_id: int, timeout: float | None = None) -> Iterator[None]:
        """
        Hold the write lock of one order.

        Raises:
            OrderBusyError: The lock was not acquired within the timeout.
        """
        wait = self._timeout if timeout is None else timeout
        lock = self._checkout(order_id)
        try:
            if not lock.acquire(timeout=wait):
                raise OrderBusyError(order_id, wait)
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(order_id)

    @contextmanager
    def hold_many(self, order_ids: Iterable[int], timeout: float | None = None) -> Iterator[list[int]]:
        """
        Hold the write locks of several orders, acquired in ascending id order.

        Yields the sorted, de-duplicated id list. Locks already acquired are
        released if a later one times out.
        """
        ordered = sorted(set(order_ids))
        with ExitStack() as stack:
            for order_id in ordered:
                stack.enter_context(self.hold(order_id, timeout))
            yield ordered


_lock_manager: OrderLockManager | None = None
_lock_manager_guard = threading.Lock()


def get_order_lock_manager() -> OrderLockManager:
    """Get the process-wide order lock manager (created on first use)."""
    global _lock_manager
    if _lock_manager is None:
        with _lock_manager_guard:
            if _lock_manager is None:
                _lock_manager = OrderLockManager()
    return _lock_manager
