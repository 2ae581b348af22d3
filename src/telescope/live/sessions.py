"""Live sessions and the manager that owns them.

A session is the server-side state of one connected dashboard channel:

    CONNECTED --GET_INITIAL_ENTRIES--> WATCHING(type, page, perPage)
        |                                  |  (re-entered on every GET_INITIAL_ENTRIES)
        +-------------- disconnect --------+--> CLOSED

Outbound messages (replies and pushes) go through a per-session FIFO queue
drained by one writer task, so a channel sees messages in exactly the order
they were produced and a slow channel never blocks storage or other sessions.
When the queue is full the message is dropped and logged.

The session table is mutated only by ``open``/``close`` (and by a writer
that finds its channel broken) and watch changes only by ``handle``; new-entry
fan-out (``dispatch``) only reads it.
"""

from __future__ import annotations

__all__ = [
    "Channel",
    "Session",
    "SessionManager",
    "SessionState",
    "Watch",
]

import asyncio
import contextlib
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from collections.abc import Callable
from typing import Any, Protocol

from telescope.constants import APP_NAME, DEFAULT_SORT, SESSION_QUEUE_SIZE
from telescope.exceptions import InvalidArgument, StorageUnavailable
from telescope.live.protocol import (
    EntryDetailsRequest,
    EventName,
    InitialEntriesRequest,
    decode_message,
    error_message,
    message,
    parse_payload,
)
from telescope.models.entries import Entry, EntryType
from telescope.query import QueryService

_logger = logging.getLogger(f"{APP_NAME}.system.live")

# Error texts sent to clients
INITIAL_ENTRIES_FAILED = "Failed to fetch initial entries"
ENTRY_NOT_FOUND = "Entry not found"
ENTRY_DETAILS_FAILED = "Failed to fetch entry details"


class Channel(Protocol):
    """Transport for one client (WebSocket, SSE stream, test double)."""

    async def send(self, message: dict[str, Any]) -> None: ...


class SessionState(str, Enum):
    CONNECTED = "connected"
    WATCHING = "watching"
    CLOSED = "closed"


@dataclass(frozen=True, slots=True)
class Watch:
    """What a session is watching. ``type`` None means every type."""

    type: EntryType | None
    page: int
    per_page: int

    def matches(self, entry: Entry) -> bool:
        return self.type is None or entry.type == self.type


class Session:
    """One live client. Created and owned by ``SessionManager``."""

    def __init__(
        self,
        channel: Channel,
        queue_size: int = SESSION_QUEUE_SIZE,
        on_broken: Callable[["Session"], None] | None = None,
    ) -> None:
        self.id = uuid.uuid4().hex
        self.channel = channel
        self.state = SessionState.CONNECTED
        self.watch: Watch | None = None
        self._queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=queue_size)
        self._writer: asyncio.Task[None] | None = None
        self._on_broken = on_broken

    def __repr__(self) -> str:
        return f"Session(id={self.id!r}, state={self.state.value}, watch={self.watch!r})"

    @property
    def is_open(self) -> bool:
        return self.state is not SessionState.CLOSED

    def wants(self, entry: Entry) -> bool:
        """Whether a new entry should be pushed to this session."""
        return self.state is SessionState.WATCHING and self.watch is not None and self.watch.matches(entry)

    def start(self) -> None:
        if self._writer is None:
            self._writer = asyncio.create_task(self._drain(), name=f"telescope-session-{self.id}")

    def enqueue(self, msg: dict[str, Any]) -> bool:
        """Queue a message for the channel.

        Returns:
            False if the session is closed or its queue is full (message dropped).
        """
        if not self.is_open:
            return False
        try:
            self._queue.put_nowait(msg)
        except asyncio.QueueFull:
            # Slow client, skip this message
            _logger.warning(
                {
                    "event": "live_queue_full",
                    "message": f"Session queue full, dropping message: {msg.get('name', 'unknown')}",
                    "session_id": self.id,
                    "details": {"message_name": msg.get("name", "unknown")},
                }
            )
            return False
        return True

    async def _drain(self) -> None:
        while True:
            msg = await self._queue.get()
            try:
                await self.channel.send(msg)
            except Exception as e:
                # Broken channel: stop delivering and let the owner drop the session
                _logger.info(
                    {
                        "event": "live_send_failed",
                        "message": f"Send to session failed, stopping delivery: {e}",
                        "session_id": self.id,
                        "error_type": type(e).__name__,
                    }
                )
                self.state = SessionState.CLOSED
                self._discard_queued()
                if self._on_broken is not None:
                    self._on_broken(self)
                return
            finally:
                self._queue.task_done()

    def _discard_queued(self) -> None:
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()

    async def flush(self) -> None:
        """Wait until every queued message has been handed to the channel."""
        if self._writer is not None and not self._writer.done():
            await self._queue.join()

    async def close(self) -> None:
        self.state = SessionState.CLOSED
        writer, self._writer = self._writer, None
        if writer is not None and not writer.done():
            writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await writer
        self._discard_queued()


class SessionManager:
    """Tracks live sessions and implements the live protocol.

    Args:
        query: Query service answering snapshot and detail requests.
        queue_size: Per-session outbound queue bound.
    """

    def __init__(self, query: QueryService, queue_size: int = SESSION_QUEUE_SIZE) -> None:
        self._query = query
        self._queue_size = queue_size
        self._sessions: dict[str, Session] = {}

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def open(self, channel: Channel) -> Session:
        """Create a session (state CONNECTED) for a newly opened channel."""
        session = Session(channel, queue_size=self._queue_size, on_broken=self._forget)
        session.start()
        self._sessions[session.id] = session
        _logger.info(
            {
                "event": "live_session_opened",
                "message": f"Live session opened (total: {self.session_count})",
                "session_id": session.id,
                "session_count": self.session_count,
            }
        )
        return session

    async def close(self, session: Session) -> None:
        """Close a session and remove it. Safe to call more than once."""
        self._forget(session)
        await session.close()

    def _forget(self, session: Session) -> None:
        """Drop a session from the table (logged once)."""
        if self._sessions.pop(session.id, None) is not None:
            _logger.info(
                {
                    "event": "live_session_closed",
                    "message": f"Live session closed (total: {self.session_count})",
                    "session_id": session.id,
                    "session_count": self.session_count,
                }
            )

    async def close_all(self) -> None:
        for session in list(self._sessions.values()):
            await self.close(session)

    # =========================================================================
    # Client requests
    # =========================================================================

    async def handle(self, session: Session, raw: str | bytes | dict[str, Any]) -> None:
        """Process one client message; the reply is queued on the session.

        Never raises for bad input or storage failures; those become ``error`` messages.
        """
        if not session.is_open:
            return
        try:
            msg = decode_message(raw)
        except InvalidArgument as e:
            session.enqueue(error_message(e.message))
            return

        if msg.name == EventName.GET_INITIAL_ENTRIES.value:
            await self._initial_entries(session, msg.payload)
        elif msg.name == EventName.GET_ENTRY_DETAILS.value:
            await self._entry_details(session, msg.payload)
        else:
            session.enqueue(error_message(f"Unknown message: {msg.name}"))

    async def _initial_entries(self, session: Session, payload: Any) -> None:
        try:
            request = parse_payload(InitialEntriesRequest, payload)
            entry_filter = self._query.normalize(
                type=request.type,
                page=request.page,
                per_page=request.per_page,
                sort=DEFAULT_SORT,
            )
            page = await self._query.storage.get_entries(entry_filter)
        except InvalidArgument as e:
            session.enqueue(error_message(e.message))
            return
        except StorageUnavailable as e:
            _logger.warning(
                {
                    "event": "live_initial_entries_failed",
                    "message": f"{INITIAL_ENTRIES_FAILED}: {e.message}",
                    "session_id": session.id,
                    "error_type": type(e).__name__,
                }
            )
            session.enqueue(error_message(INITIAL_ENTRIES_FAILED))
            return

        # No await between reading the snapshot and switching the watch, so
        # no entry falls between the snapshot and the first push
        if not session.is_open:
            return
        session.watch = Watch(type=entry_filter.type, page=entry_filter.page, per_page=entry_filter.per_page)
        session.state = SessionState.WATCHING
        session.enqueue(message(EventName.INITIAL_ENTRIES, page.to_wire()))

    async def _entry_details(self, session: Session, payload: Any) -> None:
        try:
            request = parse_payload(EntryDetailsRequest, payload)
            entry = await self._query.get_entry(request.id)
        except InvalidArgument as e:
            session.enqueue(error_message(e.message))
            return
        except StorageUnavailable as e:
            _logger.warning(
                {
                    "event": "live_entry_details_failed",
                    "message": f"{ENTRY_DETAILS_FAILED}: {e.message}",
                    "session_id": session.id,
                    "error_type": type(e).__name__,
                }
            )
            session.enqueue(error_message(ENTRY_DETAILS_FAILED))
            return

        if entry is None:
            session.enqueue(error_message(ENTRY_NOT_FOUND))
            return
        session.enqueue(message(EventName.ENTRY_DETAILS, entry.to_wire()))

    # =========================================================================
    # Fan-out
    # =========================================================================

    async def dispatch(self, entry: Entry) -> int:
        """Queue a NEW_ENTRY push to every session watching this entry's type.

        Returns:
            Number of sessions the push was queued for.
        """
        wire: dict[str, Any] | None = None
        delivered = 0
        for session in list(self._sessions.values()):
            if not session.wants(entry):
                continue
            if wire is None:
                wire = message(EventName.NEW_ENTRY, entry.to_wire())
            if session.enqueue(wire):
                delivered += 1
        return delivered
