"""Correlation IDs for aggregation calls.

Each aggregation runs under its own ID so log lines from concurrent
source fetches can be tied back to the request that issued them.
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Optional

# Context variable for storing the aggregation correlation ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    """Generate a short random correlation ID."""
    return uuid.uuid4().hex[:12]


def get_request_id() -> str:
    """Get current correlation ID from context.

    Returns:
        Current correlation ID, or "no-request-id" if not set
    """
    request_id = request_id_var.get()
    return request_id if request_id else "no-request-id"


@contextmanager
def request_scope(request_id: Optional[str] = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of the block."""
    token = request_id_var.set(request_id or new_request_id())
    try:
        yield request_id_var.get()
    finally:
        request_id_var.reset(token)
