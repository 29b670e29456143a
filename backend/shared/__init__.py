"""
Shared module for common utilities of the POS back end.

STRUCTURE:
- shared.infrastructure: Database, locking and change notifications
  - db.py: SQLAlchemy sessions, safe_commit()
  - locks.py: Per-order write locks
  - events/: OrderChange bus, optional Redis relay
  - correlation.py: Request correlation ids

- shared.config: Configuration
  - settings.py: Environment config (Pydantic)
  - logging.py: Structured logging
  - constants.py: OrderType, OrderStatus, Limits, messages

- shared.utils: Utilities
  - exceptions.py: Exceptions with auto-logging
  - validators.py: Input sanitization
  - schemas.py: Shared Pydantic schemas

IMPORT EXAMPLES:
    from shared.infrastructure.db import get_db, safe_commit
    from shared.config.settings import settings
    from shared.config.constants import OrderType, OrderStatus
    from shared.utils.exceptions import NotFoundError, InvalidStateError
"""
