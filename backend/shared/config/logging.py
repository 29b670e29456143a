"""
Centralized structured logging for the POS back end.

Development logs go through rich for readable terminal output; production
logs are one JSON object per line. Both carry the correlation id of the
request that produced them (see shared.infrastructure.correlation).
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from rich.logging import RichHandler

from shared.config.settings import settings

# Structured fields promoted to the top level of JSON records so order
# activity can be filtered without parsing "data"
PROMOTED_FIELDS = ("order_id", "order_ids", "product_id")


class StructuredFormatter(logging.Formatter):
    """JSON formatter, one record per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", "-")
        if request_id != "-":
            log_data["request_id"] = request_id

        data = dict(getattr(record, "extra_data", None) or {})
        for key in PROMOTED_FIELDS:
            if key in data:
                log_data[key] = data.pop(key)
        if data:
            log_data["data"] = data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    Message formatter for the rich console handler.

    RichHandler renders time, level and source itself; this appends the
    request id and the structured fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()

        request_id = getattr(record, "request_id", "-")
        if request_id != "-":
            message = f"[{request_id[:8]}] {message}"

        data = getattr(record, "extra_data", None)
        if data:
            message += " (" + " ".join(f"{k}={v}" for k, v in data.items()) + ")"

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


class StructuredLogger(logging.Logger):
    """
    Logger accepting structured fields as keyword arguments.

        logger.info("Cart line updated", order_id=7, product_id=3, quantity=2)
    """

    def _log_fields(
        self,
        level: int,
        msg: str,
        args: tuple,
        exc_info: Any = None,
        extra: dict | None = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **fields: Any,
    ) -> None:
        if not self.isEnabledFor(level):
            return
        extra = dict(extra or {})
        extra["extra_data"] = fields or None
        # +2 skips this method and the level method when locating the caller
        super()._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=extra,
            stack_info=stack_info,
            stacklevel=stacklevel + 2,
        )

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_fields(logging.DEBUG, msg, args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_fields(logging.INFO, msg, args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_fields(logging.WARNING, msg, args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_fields(logging.ERROR, msg, args, **kwargs)

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_fields(logging.CRITICAL, msg, args, **kwargs)


logging.setLoggerClass(StructuredLogger)


def setup_logging() -> None:
    """
    Configure the root logger. Call once at startup (API lifespan or CLI).
    """
    # Import here to avoid circular imports
    from shared.infrastructure.correlation import CorrelationIdFilter

    log_level = logging.DEBUG if settings.debug else logging.INFO

    handler: logging.Handler
    if settings.environment == "production":
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
    else:
        handler = RichHandler(markup=False, rich_tracebacks=False, show_path=settings.debug)
        handler.setFormatter(ConsoleFormatter())
    handler.setLevel(log_level)
    handler.addFilter(CorrelationIdFilter())

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()
    root.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.database_echo else logging.WARNING
    )


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger.

    Usage:
        logger = get_logger(__name__)
        logger.info("Order placed", order_id=123)
        logger.error("Price recompute failed", order_id=456, exc_info=True)
    """
    return logging.getLogger(name)  # type: ignore


def mask_phone(phone: str | None) -> str:
    """
    Mask a customer phone number for logging, keeping the last 3 digits:
    "9876543210" -> "*******210".
    """
    if not phone:
        return "<no-phone>"
    if len(phone) <= 3:
        return "*" * len(phone)
    return "*" * (len(phone) - 3) + phone[-3:]


# Pre-configured loggers for common modules
pos_api_logger = get_logger("pos_api")
orders_logger = get_logger("pos_api.orders")
catalog_logger = get_logger("pos_api.catalog")
