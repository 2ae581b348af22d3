"""Correlation ids for tying entries of one unit of work together.

A request, the exceptions it raised and the queries it triggered share one
correlation id. The id is set once per unit of work (usually by the request
middleware) and read by every capture adapter invoked during that unit of
work, without being passed through intervening application code.

Context variables are scoped per async task (and copied into child tasks),
so concurrent requests never see each other's ids.

Usage:
    with unit_of_work() as request_id:
        ...  # captures made here carry request_id

    # Background job with an externally supplied id
    with unit_of_work("job-42"):
        ...
"""

from __future__ import annotations

__all__ = [
    "clear_request_id",
    "get_request_id",
    "new_request_id",
    "request_id_var",
    "set_request_id",
    "unit_of_work",
]

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from telescope.constants import APP_NAME

_logger = logging.getLogger(f"{APP_NAME}.system.context")

request_id_var: ContextVar[str | None] = ContextVar("telescope_request_id", default=None)
"""Correlation id of the current unit of work."""


def new_request_id() -> str:
    """Generate a fresh correlation id."""
    return uuid.uuid4().hex


def get_request_id() -> str | None:
    """Get the current correlation id.

    Returns:
        str | None: Current id if a unit of work is active, None otherwise.
    """
    return request_id_var.get()


def set_request_id(request_id: str | None) -> None:
    """Set the correlation id with minimal validation.

    Ids containing newline characters are rejected (they would corrupt JSONL
    storage and log output) and the context is cleared instead.

    Args:
        request_id: Id to set, or None/empty to clear.
    """
    if not request_id:
        request_id_var.set(None)
        return

    if "\n" in request_id or "\r" in request_id:
        _logger.warning(
            {
                "event": "invalid_request_id",
                "message": "Rejecting request id containing newline characters",
                "request_id": repr(request_id),
            }
        )
        request_id_var.set(None)
        return

    request_id_var.set(request_id)


def clear_request_id() -> None:
    """Clear the correlation id."""
    request_id_var.set(None)


@contextmanager
def unit_of_work(request_id: str | None = None) -> Iterator[str]:
    """Establish a correlation id for the enclosed block.

    The previous value is restored on exit, so units of work can nest.

    Args:
        request_id: Id to use; a new one is generated if omitted or invalid.

    Yields:
        The active correlation id.
    """
    if not request_id or "\n" in request_id or "\r" in request_id:
        request_id = new_request_id()
    token = request_id_var.set(request_id)
    try:
        yield request_id
    finally:
        request_id_var.reset(token)
