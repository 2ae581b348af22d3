"""Storage backend contract.

A backend persists entries, assigns their ids, answers point and paginated
lookups, and notifies listeners whenever a new entry is stored.

Subclasses implement the persistence primitives (``_open``, ``_close``,
``_persist``, ``_fetch``, ``_all_entries``); this base class owns the parts
every backend must get right the same way:

- id assignment under a write lock (no two stores share an id)
- notification only after successful persistence
- notification delivery in storage order, one entry at a time
- error normalization: anything a backend raises surfaces as StorageUnavailable

Delivery ordering:
    Each successful store takes a sequence number while still holding the
    write lock. Deliveries wait until every lower sequence number has been
    delivered, so listeners see entries exactly in the order they were
    persisted. The write lock is released before delivery, so slow listeners
    never block persistence.

Listeners must not call ``store_entry`` themselves; a nested store would
wait on its own delivery slot.
"""

from __future__ import annotations

__all__ = [
    "EntryListener",
    "StorageBackend",
    "paginate",
]

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterable
from datetime import timezone
from typing import Any

from telescope.constants import APP_NAME
from telescope.exceptions import StorageUnavailable, TelescopeError
from telescope.models.entries import BaseEntry, Entry
from telescope.models.pages import EntryFilter, EntryPage, Pagination
from telescope.telemetry.system_logger import log_exception_event

_logger = logging.getLogger(f"{APP_NAME}.system.storage")

EntryListener = Callable[[Entry], Awaitable[None]]


def _sort_key(entry: Entry, field: str) -> Any:
    if field == "timestamp":
        # Naive values (copies made without validation) compare as UTC
        if entry.timestamp.tzinfo is None:
            return entry.timestamp.replace(tzinfo=timezone.utc)
        return entry.timestamp
    if field == "type":
        return str(entry.type)
    return entry.id or ""


def paginate(entries: Iterable[Entry], entry_filter: EntryFilter) -> EntryPage:
    """Filter, sort and slice entries given in storage order.

    Ties on the sort key keep storage order (newest first when descending).

    Args:
        entries: All entries, oldest stored first.
        entry_filter: Validated filter.

    Returns:
        EntryPage with the requested slice and the total number of matches.
    """
    matches = [entry for entry in entries if entry_filter.matches(entry)]
    if entry_filter.descending:
        matches.reverse()
    matches.sort(key=lambda e: _sort_key(e, entry_filter.sort_field), reverse=entry_filter.descending)

    start = entry_filter.offset
    return EntryPage(
        entries=matches[start : start + entry_filter.per_page],
        pagination=Pagination(
            current_page=entry_filter.page,
            per_page=entry_filter.per_page,
            total=len(matches),
        ),
    )


class StorageBackend(ABC):
    """Base class for pluggable entry storage.

    Thread model: all methods are coroutines meant to run on one event loop.
    """

    def __init__(self) -> None:
        self._connected = False
        self._connect_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()
        self._listeners: list[EntryListener] = []
        # Notification ordering (see module docstring)
        self._next_sequence = 0
        self._delivered_sequence = 0
        self._delivery = asyncio.Condition()

    @property
    def name(self) -> str:
        return type(self).__name__

    @property
    def is_connected(self) -> bool:
        return self._connected

    # =========================================================================
    # Persistence primitives (implemented by backends)
    # =========================================================================

    @abstractmethod
    async def _open(self) -> None:
        """Establish connectivity / load state."""

    @abstractmethod
    async def _close(self) -> None:
        """Release resources."""

    @abstractmethod
    async def _persist(self, entry_id: str, entry: Entry) -> None:
        """Durably store an entry under the id it already carries.

        Called with the write lock held.
        """

    @abstractmethod
    async def _fetch(self, entry_id: str) -> Entry | None:
        """Point lookup; None if absent."""

    @abstractmethod
    async def _all_entries(self) -> list[Entry]:
        """All retained entries, oldest stored first."""

    def _generate_id(self) -> str:
        return uuid.uuid4().hex

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def connect(self) -> None:
        """Establish backend connectivity. No-op when already connected.

        Raises:
            StorageUnavailable: If the underlying store cannot be reached.
        """
        async with self._connect_lock:
            if self._connected:
                return
            try:
                await self._open()
            except StorageUnavailable:
                raise
            except (OSError, ValueError, TelescopeError) as e:
                raise StorageUnavailable(
                    f"Cannot connect {self.name}: {e}",
                    backend=self.name,
                    operation="connect",
                ) from e
            self._connected = True

        _logger.info(
            {
                "event": "storage_connected",
                "message": f"Storage connected: {self.name}",
                "backend": self.name,
            }
        )

    async def close(self) -> None:
        """Close the backend. Safe to call when not connected."""
        async with self._connect_lock:
            if not self._connected:
                return
            self._connected = False
            await self._close()

    # =========================================================================
    # Listeners
    # =========================================================================

    def add_listener(self, listener: EntryListener) -> None:
        """Register a coroutine called once per successfully stored entry."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: EntryListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    # =========================================================================
    # Operations
    # =========================================================================

    async def store_entry(self, entry: BaseEntry) -> str:
        """Persist an entry, assign its id, and notify listeners.

        Any id already set on ``entry`` is ignored.

        Args:
            entry: Entry without id.

        Returns:
            The assigned id.

        Raises:
            StorageUnavailable: If not connected or persistence failed (no notification is sent).
        """
        self._require_connected("store_entry")

        async with self._write_lock:
            entry_id = self._generate_id()
            stored: Entry = entry.with_id(entry_id)  # type: ignore[assignment]
            try:
                await self._persist(entry_id, stored)
            except StorageUnavailable:
                raise
            except (OSError, TelescopeError, TypeError, ValueError) as e:
                raise StorageUnavailable(
                    f"Failed to store entry: {e}",
                    backend=self.name,
                    operation="store_entry",
                ) from e
            sequence = self._next_sequence
            self._next_sequence += 1

        # Shielded so a cancelled caller cannot leave its delivery slot unfilled
        await asyncio.shield(self._deliver(sequence, stored))
        return entry_id

    async def get_entry(self, entry_id: str) -> Entry | None:
        """Look up one entry.

        Returns:
            The entry, or None if no entry has this id.

        Raises:
            StorageUnavailable: On backend errors.
        """
        self._require_connected("get_entry")
        try:
            return await self._fetch(entry_id)
        except StorageUnavailable:
            raise
        except (OSError, TelescopeError, ValueError) as e:
            raise StorageUnavailable(
                f"Failed to fetch entry: {e}",
                backend=self.name,
                operation="get_entry",
            ) from e

    async def get_entries(self, entry_filter: EntryFilter) -> EntryPage:
        """Return one page of entries matching the filter.

        Raises:
            StorageUnavailable: On backend errors.
        """
        self._require_connected("get_entries")
        try:
            entries = await self._all_entries()
        except StorageUnavailable:
            raise
        except (OSError, TelescopeError, ValueError) as e:
            raise StorageUnavailable(
                f"Failed to query entries: {e}",
                backend=self.name,
                operation="get_entries",
            ) from e
        return paginate(entries, entry_filter)

    # =========================================================================
    # Internals
    # =========================================================================

    def _require_connected(self, operation: str) -> None:
        if not self._connected:
            raise StorageUnavailable(
                f"{self.name} is not connected",
                backend=self.name,
                operation=operation,
            )

    async def _deliver(self, sequence: int, entry: Entry) -> None:
        async with self._delivery:
            await self._delivery.wait_for(lambda: self._delivered_sequence == sequence)
            try:
                for listener in list(self._listeners):
                    try:
                        await listener(entry)
                    except Exception as e:
                        # One broken listener must not starve the others
                        log_exception_event(
                            _logger,
                            "entry_listener_failed",
                            "New-entry listener raised",
                            e,
                            entry_id=entry.id,
                            listener=getattr(listener, "__qualname__", repr(listener)),
                        )
            finally:
                self._delivered_sequence += 1
                self._delivery.notify_all()
