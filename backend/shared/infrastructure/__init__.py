"""
Infrastructure module: Database, locks and change notifications.

Provides:
- Database sessions and transactions (db.py)
- Per-order write locks (locks.py)
- Order change bus and Redis relay (events/)
- Request correlation ids (correlation.py)
"""

from shared.infrastructure.db import (
    engine,
    SessionLocal,
    ensure_sqlite_directory,
    get_db,
    get_db_context,
    safe_commit,
)
from shared.infrastructure.locks import OrderLockManager, get_order_lock_manager
from shared.infrastructure.events import (
    OrderChange,
    OrderChangeBus,
    get_order_change_bus,
)

__all__ = [
    # db
    "engine",
    "SessionLocal",
    "ensure_sqlite_directory",
    "get_db",
    "get_db_context",
    "safe_commit",
    # locks
    "OrderLockManager",
    "get_order_lock_manager",
    # events
    "OrderChange",
    "OrderChangeBus",
    "get_order_change_bus",
]
