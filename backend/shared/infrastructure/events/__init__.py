"""
Order change notifications.

This package provides:
- OrderChange schema and validation (event_schema.py)
- In-process publish/subscribe bus (bus.py)
- Redis connection pool management (redis_pool.py)
- Optional relay of changes to a Redis channel (publisher.py)
"""

from .event_schema import MAX_EVENT_SIZE, OrderChange
from .bus import ChangeHandler, OrderChangeBus, get_order_change_bus
from .redis_pool import get_redis_sync_client, close_redis_sync_client
from .publisher import RedisChangeRelay, publish_change

__all__ = [
    "MAX_EVENT_SIZE",
    "OrderChange",
    "ChangeHandler",
    "OrderChangeBus",
    "get_order_change_bus",
    "get_redis_sync_client",
    "close_redis_sync_client",
    "RedisChangeRelay",
    "publish_change",
]
