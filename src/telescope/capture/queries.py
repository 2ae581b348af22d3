"""Query capture.

Data-store operations are instrumented explicitly by wrapping the call,
rather than by hooking into a data-access layer from a distance:

    with telescope.queries.track("find", "users", query={"age": {"$gt": 30}}) as q:
        rows = collection.find(...)
        q.set_result(rows)

    rows = await telescope.queries.run("find", "users", collection.find, {"age": 30})

    @telescope.queries.instrument("insert_one", "orders")
    async def save_order(order): ...

Start time is taken before the operation runs and duration computed after it
completes, successfully or not. A failing operation is recorded with its
error text and the original exception propagates unchanged.

The adapter is active only when query logging is enabled and ``query`` is in
the watch-set; otherwise every wrapper just calls through.
"""

from __future__ import annotations

__all__ = [
    "QueryCapture",
    "QueryHandle",
]

import functools
import inspect
import json
import logging
import time
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from telescope.capture.base import CaptureAdapter
from telescope.constants import APP_NAME
from telescope.context import get_request_id
from telescope.models.entries import EntryType, QueryData, QueryEntry
from telescope.telemetry.system_logger import log_exception_event

_logger = logging.getLogger(f"{APP_NAME}.system.capture.queries")

T = TypeVar("T")


def _serialize(value: Any) -> str:
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return repr(value)


class QueryHandle:
    """Mutable per-operation record handed out by ``QueryCapture.track``."""

    __slots__ = ("method", "collection", "query", "result", "has_result")

    def __init__(self, method: str, collection: str, query: Any = None) -> None:
        self.method = method
        self.collection = collection
        self.query = query
        self.result: Any = None
        self.has_result = False

    def set_result(self, value: Any) -> None:
        """Attach the operation's result (serialized and truncated on store)."""
        self.result = value
        self.has_result = True


class QueryCapture(CaptureAdapter):
    """Capture adapter for data-store operations."""

    entry_type = EntryType.QUERY

    @property
    def enabled(self) -> bool:
        return self._config.enable_query_logging and super().enabled

    def build_entry(
        self,
        method: str,
        collection: str,
        duration: float,
        query: Any = None,
        result: Any = None,
        error: BaseException | None = None,
        request_id: str | None = None,
    ) -> QueryEntry:
        """Build a query entry without storing it.

        Args:
            method: Operation name (find, insert_one, execute, ...).
            collection: Target collection or table.
            duration: Elapsed time in milliseconds.
            query: Query/operation description (serialized to JSON).
            result: Operation result (serialized, truncated to result_preview_chars).
            error: Exception raised by the operation, if any.
            request_id: Correlation id; defaults to the current unit of work's.
        """
        preview = None
        if result is not None:
            preview = _serialize(result)[: self._config.result_preview_chars]

        return QueryEntry(
            data=QueryData(
                method=method,
                query=_serialize(query if query is not None else {}),
                collection=collection,
                duration=round(duration, 3),
                result=preview,
                error=f"{type(error).__name__}: {error}" if error is not None else None,
                request_id=request_id if request_id is not None else get_request_id(),
            )
        )

    def _record(self, handle: QueryHandle, started: float, error: BaseException | None) -> None:
        duration = (time.perf_counter() - started) * 1000
        try:
            entry = self.build_entry(
                handle.method,
                handle.collection,
                duration,
                query=handle.query,
                result=handle.result if handle.has_result else None,
                error=error,
            )
        except Exception as e:
            log_exception_event(
                _logger,
                "query_capture_failed",
                "Failed to build query entry",
                e,
                level=logging.WARNING,
                method=handle.method,
                collection=handle.collection,
            )
            return
        self.submit(entry)

    # =========================================================================
    # Instrumentation
    # =========================================================================

    @contextmanager
    def track(self, method: str, collection: str, query: Any = None) -> Iterator[QueryHandle]:
        """Time the enclosed block as one data-store operation.

        Yields:
            QueryHandle; call ``set_result`` to include a result preview.
        """
        handle = QueryHandle(method, collection, query)
        if not self.enabled:
            yield handle
            return

        started = time.perf_counter()
        try:
            yield handle
        except BaseException as e:
            self._record(handle, started, e)
            raise
        self._record(handle, started, None)

    async def run(
        self,
        method: str,
        collection: str,
        call: Callable[..., Awaitable[T]],
        *args: Any,
        query: Any = None,
        **kwargs: Any,
    ) -> T:
        """Await ``call(*args, **kwargs)`` as one recorded operation.

        When ``query`` is omitted, the positional arguments describe the query.
        """
        description = query if query is not None else (list(args) if args else None)
        with self.track(method, collection, description) as handle:
            result = await call(*args, **kwargs)
            handle.set_result(result)
        return result

    def instrument(self, method: str, collection: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator recording every call of a sync or async function."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            if inspect.iscoroutinefunction(func):

                @functools.wraps(func)
                async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                    return await self.run(method, collection, func, *args, **kwargs)

                return async_wrapper

            @functools.wraps(func)
            def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
                with self.track(method, collection, list(args) if args else None) as handle:
                    result = func(*args, **kwargs)
                    handle.set_result(result)
                return result

            return sync_wrapper

        return decorator
