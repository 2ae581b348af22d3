"""Relay from storage notifications to live sessions.

The bus keeps no state of its own beyond whether it is attached: storage
calls it once per stored entry, in storage order, and it hands the entry to
the session manager for filtered fan-out.
"""

from __future__ import annotations

__all__ = ["EventBus"]

import logging

from telescope.constants import APP_NAME
from telescope.live.sessions import SessionManager
from telescope.models.entries import Entry
from telescope.storage.base import StorageBackend

_logger = logging.getLogger(f"{APP_NAME}.system.live.bus")


class EventBus:
    """Connects a storage backend's new-entry notifications to a session manager."""

    def __init__(self, storage: StorageBackend, sessions: SessionManager) -> None:
        self._storage = storage
        self._sessions = sessions
        self._attached = False

    @property
    def attached(self) -> bool:
        return self._attached

    def attach(self) -> None:
        """Start relaying. No-op when already attached."""
        if self._attached:
            return
        self._storage.add_listener(self._on_new_entry)
        self._attached = True
        _logger.debug({"event": "event_bus_attached", "message": "Event bus attached to storage"})

    def detach(self) -> None:
        if not self._attached:
            return
        self._storage.remove_listener(self._on_new_entry)
        self._attached = False
        _logger.debug({"event": "event_bus_detached", "message": "Event bus detached from storage"})

    async def _on_new_entry(self, entry: Entry) -> None:
        await self._sessions.dispatch(entry)
