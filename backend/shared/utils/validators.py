"""
Shared validators for input sanitization.
"""

import re

from shared.config.constants import Limits


def escape_like_pattern(value: str) -> str:
    """
    Escape special characters in LIKE patterns.

    SQL LIKE uses % and _ as wildcards. This function escapes them
    so a search for "10%" matches the literal text.

    Args:
        value: The search string to escape

    Returns:
        The escaped string safe for use in LIKE patterns (escape char "\\")
    """
    if not value:
        return value

    # Escape the escape character first, then the wildcards
    value = value.replace("\\", "\\\\")
    value = value.replace("%", "\\%")
    value = value.replace("_", "\\_")
    return value


def validate_quantity(
    quantity: int,
    min_val: int = Limits.MIN_QUANTITY,
    max_val: int = Limits.MAX_QUANTITY,
) -> int:
    """
    Validate quantity is within acceptable range.

    Raises:
        ValueError: If quantity is outside allowed range
    """
    if quantity < min_val:
        raise ValueError(f"Minimum quantity is {min_val}")
    if quantity > max_val:
        raise ValueError(f"Maximum quantity is {max_val}")
    return quantity


def sanitize_search_term(term: str | None, max_length: int = Limits.MAX_SEARCH_TERM_LENGTH) -> str:
    """
    Sanitize search term for safe use in queries.

    Args:
        term: The search term to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized search term ("" when nothing is left)
    """
    if not term:
        return ""

    # Remove null bytes and other control characters
    term = re.sub(r"[\x00-\x1f\x7f-\x9f]", "", term)

    term = term.strip()

    if len(term) > max_length:
        term = term[:max_length]

    return term


def normalize_phone(phone: str | None) -> str | None:
    """
    Normalize a customer phone number for storage and lookup.

    Strips whitespace, dashes, dots and parentheses; keeps a leading "+".
    Returns None when nothing usable is left.
    """
    if phone is None:
        return None

    cleaned = re.sub(r"[\s\-().]", "", phone)
    if not cleaned:
        return None
    return cleaned[: Limits.MAX_PHONE_LENGTH]
