"""
Database configuration and session management.
Uses SQLAlchemy 2.0 patterns.
"""

import os
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, Session

from shared.config.settings import DATABASE_URL, settings


def enable_sqlite_foreign_keys(target: Engine) -> None:
    """
    Turn on foreign key enforcement for every SQLite connection of an engine.

    SQLite ships with foreign keys disabled; without this pragma none of the
    ON DELETE CASCADE rules on orders, products, add-ons and charges fire.
    No-op for other dialects.
    """
    if target.dialect.name != "sqlite":
        return

    @event.listens_for(target, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def ensure_sqlite_directory(database_url: str) -> None:
    """Create the parent directory of a file-based SQLite database."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return
    directory = os.path.dirname(url.database)
    if directory:
        os.makedirs(directory, exist_ok=True)


def _engine_options(url: str) -> dict:
    """Connection options that depend on the backend."""
    if url.startswith("sqlite"):
        # Sessions are used from the API worker threads
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,  # Verify connections before using
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": 30,  # Wait max 30s for connection from pool
        "pool_recycle": 1800,  # Recycle connections after 30 minutes
    }


engine = create_engine(
    DATABASE_URL,
    echo=settings.database_echo,
    **_engine_options(DATABASE_URL),
)
enable_sqlite_foreign_keys(engine)

# Session factory
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency for database sessions.

    Usage:
        @router.get("/{order_id}")
        def get_order(order_id: int, db: Session = Depends(get_db)):
            return OrderAggregateService(db).get_order(order_id)

    The session is closed after the request completes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions outside of FastAPI.

    Usage:
        with get_db_context() as db:
            OrderAggregateService(db).query_orders()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def safe_commit(db: Session) -> None:
    """
    Commit with automatic rollback on failure.

    Usage:
        from shared.infrastructure.db import safe_commit
        safe_commit(db)

    Raises the original exception after rolling back.
    """
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
