"""Base class for capture adapters.

Adapters turn runtime signals into entries and hand them to storage without
making the observed code wait: ``submit`` schedules the store as a
fire-and-forget task and returns immediately. Failures are logged through a
done-callback and never reach the caller.

Tasks are kept in a set until they finish; the event loop only holds weak
references to tasks, so an unreferenced store could otherwise be collected
mid-flight.

Captures from other threads (``threading.excepthook``, sync worker threads)
are handed to the loop the collector was connected on, when one is bound.
"""

from __future__ import annotations

__all__ = ["CaptureAdapter"]

import asyncio
import logging
from concurrent.futures import Future
from typing import ClassVar

from telescope.config import TelescopeConfig
from telescope.constants import APP_NAME
from telescope.models.entries import BaseEntry, EntryType
from telescope.storage.base import StorageBackend
from telescope.telemetry.system_logger import log_exception_event

_logger = logging.getLogger(f"{APP_NAME}.system.capture")


class CaptureAdapter:
    """Shared plumbing for all adapters.

    Subclasses set ``entry_type`` and build entries; ``submit`` does the rest.

    Args:
        storage: Backend receiving captured entries.
        config: Collector configuration (watch-set and capture options).
    """

    entry_type: ClassVar[EntryType]

    def __init__(self, storage: StorageBackend, config: TelescopeConfig) -> None:
        self._storage = storage
        self._config = config
        self._pending: set[asyncio.Task[str]] = set()
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def enabled(self) -> bool:
        """Whether this adapter's entry type is in the watch-set."""
        return self._config.is_watched(self.entry_type)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def bind_loop(self, loop: asyncio.AbstractEventLoop | None) -> None:
        """Set the loop that receives captures made outside of it."""
        self._loop = loop

    def submit(self, entry: BaseEntry) -> None:
        """Store an entry without blocking the caller. Never raises.

        - On a running event loop: scheduled as a task on that loop.
        - On another thread while the bound loop runs: handed to the bound loop.
        - Otherwise (scripts, shutdown): run to completion on a private loop.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            task = loop.create_task(self._storage.store_entry(entry))
            self._pending.add(task)
            task.add_done_callback(self._handle_store_result)
            return

        bound = self._loop
        if bound is not None and bound.is_running() and not bound.is_closed():
            future = asyncio.run_coroutine_threadsafe(self._storage.store_entry(entry), bound)
            future.add_done_callback(self._handle_threadsafe_result)
            return

        self._store_blocking(entry)

    def _store_blocking(self, entry: BaseEntry) -> None:
        try:
            asyncio.run(self._storage.store_entry(entry))
        except Exception as e:
            log_exception_event(
                _logger,
                "entry_store_failed",
                f"Failed to store {self.entry_type.value} entry",
                e,
                level=logging.WARNING,
                entry_type=self.entry_type.value,
            )

    def _handle_store_result(self, task: asyncio.Task[str]) -> None:
        """Handle result of a fire-and-forget store task.

        Logs any exception so it is not silently swallowed by the loop.

        Args:
            task: Completed store task.
        """
        self._pending.discard(task)
        if task.cancelled():
            return
        self._log_store_failure(task.exception())

    def _handle_threadsafe_result(self, future: Future[str]) -> None:
        if future.cancelled():
            return
        self._log_store_failure(future.exception())

    def _log_store_failure(self, exc: BaseException | None) -> None:
        if exc is None:
            return
        _logger.warning(
            {
                "event": "entry_store_failed",
                "message": f"Failed to store {self.entry_type.value} entry: {exc}",
                "entry_type": self.entry_type.value,
                "error_type": type(exc).__name__,
                "error_message": str(exc),
            }
        )

    async def flush(self) -> None:
        """Wait for every scheduled store to finish (failures are already logged)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
