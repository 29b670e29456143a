"""
In-process change bus.

Services publish an OrderChange after every commit; order feeds subscribe
and re-query. Delivery is synchronous on the publishing thread. A failing
subscriber is logged and skipped so one broken feed never blocks the rest.
"""

from __future__ import annotations

import threading
from collections.abc import Callable

from shared.config.logging import get_logger
from .event_schema import OrderChange

logger = get_logger(__name__)

ChangeHandler = Callable[[OrderChange], None]


class OrderChangeBus:
    """Thread-safe publish/subscribe registry for order changes."""

    def __init__(self) -> None:
        self._handlers: list[ChangeHandler] = []
        self._lock = threading.Lock()
        self._published = 0

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    @property
    def published_total(self) -> int:
        return self._published

    def subscribe(self, handler: ChangeHandler) -> Callable[[], None]:
        """
        Register a handler. Returns a function that unsubscribes it.

        Unsubscribing twice is harmless.
        """
        with self._lock:
            self._handlers.append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._handlers:
                    self._handlers.remove(handler)

        return unsubscribe

    def publish(self, change: OrderChange) -> None:
        # Snapshot so handlers may (un)subscribe while being called
        with self._lock:
            handlers = list(self._handlers)
            self._published += 1

        logger.debug(
            "Publishing order change",
            kind=change.kind,
            order_ids=list(change.order_ids),
            subscribers=len(handlers),
        )

        for handler in handlers:
            try:
                handler(change)
            except Exception as e:
                logger.error(
                    "Order change subscriber failed",
                    kind=change.kind,
                    error=str(e),
                    exc_info=True,
                )


_bus: OrderChangeBus | None = None
_bus_lock = threading.Lock()


def get_order_change_bus() -> OrderChangeBus:
    """Get the process-wide change bus (created on first use)."""
    global _bus
    if _bus is None:
        with _bus_lock:
            if _bus is None:
                _bus = OrderChangeBus()
    return _bus
