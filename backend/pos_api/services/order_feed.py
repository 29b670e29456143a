"""
Order Feed - a continuously updating, grouped order list.

A feed subscribes to the change bus and re-runs its query after every
committed write, pushing the new groups to its on_update callback. Changing
the search text or the view-all flag replaces the query.

Last request wins: every refresh takes a generation number, and a result is
delivered only if no newer refresh has started since. A slow query for an
old search term can therefore never overwrite the result of a newer one.
Deliveries happen under a lock so callbacks see results in request order.

On query failure the feed logs the error and re-emits the last groups it
delivered successfully.

Usage:
    feed = OrderFeed(session_loader(SessionLocal), on_update=render).start()
    feed.update_filter(search="delivery")
    ...
    feed.close()
"""

from __future__ import annotations

import threading
from collections.abc import Callable

from sqlalchemy.orm import Session

from pos_api.repositories import OrderFilters, OrderQueryRepository, group_by_date_bucket
from shared.config.logging import get_logger
from shared.infrastructure.events import OrderChange, OrderChangeBus, get_order_change_bus
from shared.utils.schemas import OrderGroup

logger = get_logger(__name__)

Loader = Callable[[OrderFilters], list[OrderGroup]]
UpdateHandler = Callable[[list[OrderGroup]], None]

_UNSET = object()


def session_loader(session_factory: Callable[[], Session]) -> Loader:
    """
    Build a loader that runs each query in its own short-lived session.

    Feeds outlive the request that created them and refresh on the thread
    that published the change, so they never share the caller's session.
    """

    def load(filters: OrderFilters) -> list[OrderGroup]:
        db = session_factory()
        try:
            return group_by_date_bucket(OrderQueryRepository(db).find_aggregates(filters))
        finally:
            db.close()

    return load


class OrderFeed:
    def __init__(
        self,
        loader: Loader,
        filters: OrderFilters | None = None,
        on_update: UpdateHandler | None = None,
        bus: OrderChangeBus | None = None,
    ):
        self._loader = loader
        self._filters = filters or OrderFilters()
        self._on_update = on_update
        self._bus = bus or get_order_change_bus()

        self._state_lock = threading.Lock()
        self._delivery_lock = threading.Lock()
        self._generation = 0
        self._last_good: list[OrderGroup] | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._closed = False

        # Metrics
        self.deliveries = 0
        self.dropped = 0
        self.failures = 0

    @property
    def filters(self) -> OrderFilters:
        return self._filters

    @property
    def latest(self) -> list[OrderGroup]:
        """Groups of the last successful refresh ([] before the first)."""
        return list(self._last_good or [])

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> "OrderFeed":
        """Subscribe to changes and run the first query."""
        if self._unsubscribe is None and not self._closed:
            self._unsubscribe = self._bus.subscribe(self._on_change)
        self.refresh()
        return self

    def update_filter(self, search: str | None | object = _UNSET, view_all: bool | None = None) -> list[OrderGroup] | None:
        """
        Replace the query. Omitted arguments keep their current value;
        search=None clears the search text.
        """
        with self._state_lock:
            self._filters = OrderFilters(
                search=self._filters.search if search is _UNSET else search,
                view_all=self._filters.view_all if view_all is None else view_all,
            )
        return self.refresh()

    def refresh(self) -> list[OrderGroup] | None:
        """
        Re-run the current query and deliver the result.

        Returns the delivered groups, or None when the result was dropped
        because a newer refresh started meanwhile (or the feed is closed).
        """
        with self._state_lock:
            if self._closed:
                return None
            self._generation += 1
            generation = self._generation
            filters = self._filters

        groups: list[OrderGroup] | None
        try:
            groups = self._loader(filters)
        except Exception as e:
            self.failures += 1
            logger.error(
                "Order feed query failed, re-emitting last result",
                search=filters.search,
                view_all=filters.view_all,
                error=str(e),
            )
            groups = None

        with self._delivery_lock:
            with self._state_lock:
                stale = self._closed or generation != self._generation
            if stale:
                self.dropped += 1
                logger.debug("Dropped stale order feed result", generation=generation)
                return None

            if groups is None:
                groups = self.latest
            else:
                self._last_good = groups
            self._deliver(groups)
            return groups

    def _deliver(self, groups: list[OrderGroup]) -> None:
        self.deliveries += 1
        if self._on_update is None:
            return
        try:
            self._on_update(groups)
        except Exception as e:
            logger.error("Order feed callback failed", error=str(e), exc_info=True)

    def _on_change(self, change: OrderChange) -> None:
        logger.debug("Order feed refreshing", kind=change.kind, order_ids=list(change.order_ids))
        self.refresh()

    def close(self) -> None:
        with self._state_lock:
            self._closed = True
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def __enter__(self) -> "OrderFeed":
        return self.start()

    def __exit__(self, *exc_info) -> None:
        self.close()
