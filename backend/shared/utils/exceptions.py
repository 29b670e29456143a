"""
Centralized exceptions for consistent error handling.

Every exception carries the HTTP status code the router answers with, and is
logged when constructed. Domain services raise them; the Order Aggregate
Service converts them into OperationResult values.

Usage:
    from shared.utils.exceptions import NotFoundError, InvalidStateError

    raise NotFoundError("Order", order_id)
    raise InvalidStateError("Order", "PLACED", ["PROCESSING"], order_id=7)
"""

from fastapi import HTTPException, status
from typing import Any

from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    """
    Base exception with automatic logging.

    All custom exceptions should inherit from this class
    to ensure consistent logging and response format.
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        log_level: str = "warning",
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(detail, status_code=status_code, **log_context)

        super().__init__(status_code=status_code, detail=detail, headers=headers)


# =============================================================================
# 404 Not Found Errors
# =============================================================================


class NotFoundError(AppException):
    """
    Entity not found (404).

    For cart operations a missing order or product is a benign no-op, so
    this is logged at info level.

    Usage:
        raise NotFoundError("Product", 123)
    """

    def __init__(self, entity: str, entity_id: int | str | None = None, **log_context: Any):
        if entity_id is not None:
            detail = f"{entity} with ID {entity_id} not found"
        else:
            detail = f"{entity} not found"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            log_level="info",
            entity=entity,
            entity_id=entity_id,
            **log_context,
        )


# =============================================================================
# 400 Bad Request Errors
# =============================================================================


class ValidationError(AppException):
    """
    Input validation error (400).

    Usage:
        raise ValidationError("Price must not be negative", field="price", value=-1)
    """

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            log_level="warning",
            **log_context,
        )


class InvalidStateError(ValidationError):
    """Entity is in an invalid state for the operation."""

    def __init__(
        self,
        entity: str,
        current_state: str,
        expected_states: list[str] | None = None,
        **log_context: Any,
    ):
        if expected_states:
            states_str = ", ".join(expected_states)
            detail = f"{entity} is in state '{current_state}', expected: {states_str}"
        else:
            detail = f"{entity} cannot be in state '{current_state}' for this operation"

        super().__init__(detail, entity=entity, current_state=current_state, **log_context)


# =============================================================================
# 409 Conflict Errors
# =============================================================================


class ConflictError(AppException):
    """
    Resource state conflict (409).

    Usage:
        raise ConflictError("Order is being updated")
    """

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            log_level="warning",
            **log_context,
        )


class OrderBusyError(ConflictError):
    """The per-order write lock could not be acquired in time."""

    def __init__(self, order_id: int, timeout: float, **log_context: Any):
        self.order_id = order_id
        super().__init__(
            f"Order {order_id} is being updated, try again",
            order_id=order_id,
            timeout=timeout,
            **log_context,
        )


# =============================================================================
# 500 Internal Server Errors
# =============================================================================


class StoreError(AppException):
    """
    Entity store failure (500).

    Wraps SQLAlchemy errors after the transaction has been rolled back.
    """

    def __init__(self, operation: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Could not {operation}",
            log_level="error",
            operation=operation,
            **log_context,
        )
