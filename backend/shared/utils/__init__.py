"""
Utilities module: Exceptions, validators, schemas.
"""

from shared.utils.exceptions import (
    AppException,
    NotFoundError,
    ValidationError,
    InvalidStateError,
    ConflictError,
    OrderBusyError,
    StoreError,
)
from shared.utils.validators import (
    escape_like_pattern,
    sanitize_search_term,
    validate_quantity,
    normalize_phone,
)
from shared.utils.schemas import ErrorResponse, OperationResult

__all__ = [
    # exceptions
    "AppException",
    "NotFoundError",
    "ValidationError",
    "InvalidStateError",
    "ConflictError",
    "OrderBusyError",
    "StoreError",
    # validators
    "escape_like_pattern",
    "sanitize_search_term",
    "validate_quantity",
    "normalize_phone",
    # schemas
    "ErrorResponse",
    "OperationResult",
]
