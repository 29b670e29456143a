"""
Redis relay for order changes.

Forwards every OrderChange from the in-process bus to a Redis channel so
other POS terminals sharing the database can refresh their order lists.
Relay failures are logged and never reach the service that committed the
write.
"""

from __future__ import annotations

import time
from collections.abc import Callable

import redis

from shared.config.settings import settings
from shared.config.logging import get_logger
from .bus import OrderChangeBus
from .event_schema import MAX_EVENT_SIZE, OrderChange

logger = get_logger(__name__)


def _validate_event_size(event_json: str, kind: str) -> bool:
    """
    Validate event size before publishing.

    Returns True if valid, raises ValueError if too large.
    """
    size = len(event_json.encode("utf-8"))
    if size > MAX_EVENT_SIZE:
        raise ValueError(f"Change {kind} exceeds max size: {size} > {MAX_EVENT_SIZE} bytes")
    return True


def publish_change(
    redis_client: redis.Redis,
    channel: str,
    change: OrderChange,
    max_retries: int = 3,
    retry_delay: float = 0.1,
) -> int:
    """
    Publish a change to a Redis channel.

    Returns:
        Number of subscribers that received the message.

    Raises:
        ValueError: If the change is too large.
        redis.RedisError: If all retries fail.
    """
    change_json = change.to_json()
    _validate_event_size(change_json, change.kind)

    last_error: Exception | None = None
    for attempt in range(max_retries):
        try:
            return redis_client.publish(channel, change_json)
        except redis.RedisError as e:
            last_error = e
            if attempt < max_retries - 1:
                delay = retry_delay * (2 ** attempt)
                logger.warning(
                    "Redis publish failed, retrying",
                    channel=channel,
                    kind=change.kind,
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    delay_seconds=round(delay, 2),
                    error=str(e),
                )
                time.sleep(delay)

    logger.error(
        "Redis publish failed after all retries",
        channel=channel,
        kind=change.kind,
        error=str(last_error),
    )
    raise last_error  # type: ignore[misc]


class RedisChangeRelay:
    """
    Bus subscriber that forwards changes to Redis.

    Usage:
        relay = RedisChangeRelay(get_redis_sync_client)
        relay.attach(get_order_change_bus())
        ...
        relay.detach()
    """

    def __init__(
        self,
        client_factory: Callable[[], redis.Redis],
        channel: str | None = None,
        max_retries: int = 3,
    ):
        self._client_factory = client_factory
        self._channel = channel or settings.order_changes_channel
        self._max_retries = max_retries
        self._unsubscribe: Callable[[], None] | None = None
        self.failures = 0

    @property
    def channel(self) -> str:
        return self._channel

    def __call__(self, change: OrderChange) -> None:
        try:
            publish_change(
                self._client_factory(),
                self._channel,
                change,
                max_retries=self._max_retries,
            )
        except (redis.RedisError, ValueError) as e:
            self.failures += 1
            logger.warning(
                "Order change not relayed",
                channel=self._channel,
                kind=change.kind,
                error=str(e),
            )

    def attach(self, bus: OrderChangeBus) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = bus.subscribe(self)
            logger.info("Redis change relay attached", channel=self._channel)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
