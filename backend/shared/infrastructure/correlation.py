"""
Correlation ids.

Every HTTP request and every CLI run gets an id that is attached to its log
lines and to the OrderChange notifications it publishes. Feed refreshes run
on the publishing thread, so their logs carry the same id.
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str | None:
    """Correlation id of the current operation, None outside one."""
    return request_id_var.get() or None


@contextmanager
def correlation_scope(request_id: str | None = None, prefix: str = "") -> Iterator[str]:
    """
    Bind a correlation id for the duration of the block.

    Usage:
        with correlation_scope(prefix="cli-") as request_id:
            ...
    """
    value = request_id or f"{prefix}{uuid.uuid4()}"
    token = request_id_var.set(value)
    try:
        yield value
    finally:
        request_id_var.reset(token)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Bind the X-Request-ID header (or a fresh UUID) for the request and echo
    it in the response headers.
    """

    HEADER_NAME = "X-Request-ID"
    MAX_LENGTH = 128

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        incoming = (request.headers.get(self.HEADER_NAME) or "")[: self.MAX_LENGTH] or None

        with correlation_scope(incoming) as request_id:
            request.state.request_id = request_id
            response = await call_next(request)
            response.headers[self.HEADER_NAME] = request_id
            return response


class CorrelationIdFilter:
    """Logging filter that stamps request_id on every record ("-" outside a scope)."""

    def filter(self, record) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True
