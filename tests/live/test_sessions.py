"""Unit tests for live sessions and the session manager.

Uses AAA pattern (Arrange-Act-Assert) for clarity.
"""

import asyncio
from typing import Any
from unittest.mock import patch

import pytest

from telescope.live.sessions import Session, SessionManager, SessionState
from telescope.query import QueryService
from telescope.storage import MemoryStorage

from conftest import BrokenChannel, RecordingChannel, make_exception_entry, make_request_entry


@pytest.fixture
def manager(storage: MemoryStorage) -> SessionManager:
    return SessionManager(QueryService(storage))


async def _watch(manager: SessionManager, channel: RecordingChannel, entry_type: str | None) -> Session:
    session = await manager.open(channel)
    await manager.handle(session, {"name": "GET_INITIAL_ENTRIES", "payload": {"type": entry_type}})
    await session.flush()
    return session


class BlockingChannel:
    """Channel that holds every send until released."""

    def __init__(self) -> None:
        self.release = asyncio.Event()
        self.sent: list[dict[str, Any]] = []

    async def send(self, message: dict[str, Any]) -> None:
        await self.release.wait()
        self.sent.append(message)


class TestLifecycle:
    """Tests for open/close."""

    async def test_open_registers_connected_session(self, manager: SessionManager) -> None:
        """A new session is CONNECTED and tracked."""
        # Act
        session = await manager.open(RecordingChannel())

        # Assert
        assert session.state is SessionState.CONNECTED
        assert session.watch is None
        assert manager.session_count == 1
        assert manager.get(session.id) is session

    async def test_close_removes_session(self, manager: SessionManager) -> None:
        """Closing removes the session; closing again is harmless."""
        # Arrange
        session = await manager.open(RecordingChannel())

        # Act
        await manager.close(session)
        await manager.close(session)

        # Assert
        assert session.state is SessionState.CLOSED
        assert manager.session_count == 0
        assert manager.get(session.id) is None

    async def test_closed_session_gets_no_pushes(self, manager: SessionManager) -> None:
        """After disconnect no further messages are queued for the session."""
        # Arrange
        channel = RecordingChannel()
        session = await _watch(manager, channel, "request")
        await manager.close(session)

        # Act
        delivered = await manager.dispatch(make_request_entry().with_id("late"))

        # Assert
        assert delivered == 0
        assert channel.names() == ["INITIAL_ENTRIES"]

    async def test_close_all(self, manager: SessionManager) -> None:
        """close_all empties the session table."""
        # Arrange
        for _ in range(3):
            await manager.open(RecordingChannel())

        # Act
        await manager.close_all()

        # Assert
        assert manager.session_count == 0


class TestInitialEntries:
    """Tests for GET_INITIAL_ENTRIES."""

    async def test_replies_with_snapshot_and_starts_watching(
        self, manager: SessionManager, storage: MemoryStorage
    ) -> None:
        """The reply carries the newest entries of the type; the session then watches it."""
        # Arrange
        await storage.store_entry(make_request_entry(path="/a"))
        await storage.store_entry(make_exception_entry())
        channel = RecordingChannel()

        # Act
        session = await _watch(manager, channel, "request")

        # Assert
        reply = channel.sent[0]
        assert reply["name"] == "INITIAL_ENTRIES"
        assert [e["type"] for e in reply["payload"]["entries"]] == ["request"]
        assert reply["payload"]["pagination"] == {"currentPage": 1, "perPage": 20, "total": 1}
        assert session.state is SessionState.WATCHING
        assert session.watch.type == "request"

    async def test_per_page_respected(self, manager: SessionManager, storage: MemoryStorage) -> None:
        """perPage limits the snapshot size."""
        # Arrange
        for _ in range(5):
            await storage.store_entry(make_request_entry())
        channel = RecordingChannel()
        session = await manager.open(channel)

        # Act
        await manager.handle(session, {"name": "GET_INITIAL_ENTRIES", "payload": {"type": "request", "perPage": 2}})
        await session.flush()

        # Assert
        payload = channel.sent[0]["payload"]
        assert len(payload["entries"]) == 2
        assert payload["pagination"]["total"] == 5

    async def test_invalid_type_sends_error_and_keeps_state(self, manager: SessionManager) -> None:
        """An unknown type yields an error message; the session stays CONNECTED."""
        # Arrange
        channel = RecordingChannel()
        session = await manager.open(channel)

        # Act
        await manager.handle(session, {"name": "GET_INITIAL_ENTRIES", "payload": {"type": "job"}})
        await session.flush()

        # Assert
        assert channel.sent[0]["name"] == "error"
        assert "type" in channel.sent[0]["payload"]["message"]
        assert session.state is SessionState.CONNECTED

    async def test_storage_failure_sends_error(self) -> None:
        """A storage failure is reported as an error message, not raised."""
        # Arrange
        manager = SessionManager(QueryService(MemoryStorage()))  # not connected
        channel = RecordingChannel()
        session = await manager.open(channel)

        # Act
        await manager.handle(session, '{"name": "GET_INITIAL_ENTRIES", "payload": {}}')
        await session.flush()

        # Assert
        assert channel.sent == [{"name": "error", "payload": {"message": "Failed to fetch initial entries"}}]
        assert session.state is SessionState.CONNECTED

    async def test_second_request_switches_watch(self, manager: SessionManager) -> None:
        """Re-issuing GET_INITIAL_ENTRIES replaces the watch."""
        # Arrange
        channel = RecordingChannel()
        session = await _watch(manager, channel, "request")

        # Act
        await manager.handle(session, {"name": "GET_INITIAL_ENTRIES", "payload": {"type": "exception"}})
        await session.flush()
        await manager.dispatch(make_request_entry().with_id("r1"))
        await manager.dispatch(make_exception_entry().with_id("e1"))
        await session.flush()

        # Assert
        assert channel.names() == ["INITIAL_ENTRIES", "INITIAL_ENTRIES", "NEW_ENTRY"]
        assert channel.sent[-1]["payload"]["id"] == "e1"


class TestEntryDetails:
    """Tests for GET_ENTRY_DETAILS."""

    async def test_returns_entry(self, manager: SessionManager, storage: MemoryStorage) -> None:
        """A known id is answered with ENTRY_DETAILS."""
        # Arrange
        entry_id = await storage.store_entry(make_exception_entry("boom"))
        channel = RecordingChannel()
        session = await manager.open(channel)

        # Act
        await manager.handle(session, {"name": "GET_ENTRY_DETAILS", "payload": {"id": entry_id}})
        await session.flush()

        # Assert
        assert channel.sent[0]["name"] == "ENTRY_DETAILS"
        assert channel.sent[0]["payload"]["exception"]["message"] == "boom"

    async def test_unknown_id_sends_not_found(self, manager: SessionManager) -> None:
        """An unknown id is answered with an error."""
        # Arrange
        channel = RecordingChannel()
        session = await manager.open(channel)

        # Act
        await manager.handle(session, {"name": "GET_ENTRY_DETAILS", "payload": {"id": "nope"}})
        await session.flush()

        # Assert
        assert channel.sent == [{"name": "error", "payload": {"message": "Entry not found"}}]

    async def test_missing_id_sends_error(self, manager: SessionManager) -> None:
        """A payload without id is rejected."""
        # Arrange
        channel = RecordingChannel()
        session = await manager.open(channel)

        # Act
        await manager.handle(session, {"name": "GET_ENTRY_DETAILS", "payload": {}})
        await session.flush()

        # Assert
        assert channel.sent[0]["name"] == "error"


class TestRouting:
    """Tests for malformed and unknown messages."""

    async def test_unknown_message_name(self, manager: SessionManager) -> None:
        """Unknown names are answered with an error."""
        # Arrange
        channel = RecordingChannel()
        session = await manager.open(channel)

        # Act
        await manager.handle(session, {"name": "SUBSCRIBE"})
        await session.flush()

        # Assert
        assert channel.sent == [{"name": "error", "payload": {"message": "Unknown message: SUBSCRIBE"}}]

    async def test_invalid_json(self, manager: SessionManager) -> None:
        """Invalid JSON is answered with an error."""
        # Arrange
        channel = RecordingChannel()
        session = await manager.open(channel)

        # Act
        await manager.handle(session, "not json")
        await session.flush()

        # Assert
        assert channel.names() == ["error"]


class TestDispatch:
    """Tests for new-entry fan-out."""

    async def test_only_matching_watchers_receive(self, manager: SessionManager) -> None:
        """A request entry reaches the request watcher but not the exception watcher."""
        # Arrange
        channel_a, channel_b = RecordingChannel(), RecordingChannel()
        session_a = await _watch(manager, channel_a, "request")
        session_b = await _watch(manager, channel_b, "exception")

        # Act
        delivered = await manager.dispatch(make_request_entry().with_id("r1"))
        await session_a.flush()
        await session_b.flush()

        # Assert
        assert delivered == 1
        assert channel_a.names() == ["INITIAL_ENTRIES", "NEW_ENTRY"]
        assert channel_a.sent[-1]["payload"]["id"] == "r1"
        assert channel_b.names() == ["INITIAL_ENTRIES"]

    async def test_all_watch_receives_every_type(self, manager: SessionManager) -> None:
        """Watching 'all' matches every entry type."""
        # Arrange
        channel = RecordingChannel()
        session = await _watch(manager, channel, "all")

        # Act
        await manager.dispatch(make_request_entry().with_id("r1"))
        await manager.dispatch(make_exception_entry().with_id("e1"))
        await session.flush()

        # Assert
        assert [m["payload"]["id"] for m in channel.sent[1:]] == ["r1", "e1"]

    async def test_connected_session_not_pushed(self, manager: SessionManager) -> None:
        """Sessions that have not asked for a snapshot get no pushes."""
        # Arrange
        channel = RecordingChannel()
        session = await manager.open(channel)

        # Act
        delivered = await manager.dispatch(make_request_entry().with_id("r1"))
        await session.flush()

        # Assert
        assert delivered == 0
        assert channel.sent == []

    async def test_pushes_keep_order(self, manager: SessionManager) -> None:
        """Pushes reach the channel in dispatch order."""
        # Arrange
        channel = RecordingChannel()
        session = await _watch(manager, channel, "request")

        # Act
        for index in range(10):
            await manager.dispatch(make_request_entry().with_id(f"r{index}"))
        await session.flush()

        # Assert
        assert [m["payload"]["id"] for m in channel.sent[1:]] == [f"r{i}" for i in range(10)]


class TestBackpressure:
    """Tests for slow and broken channels."""

    async def test_full_queue_drops_message(self, storage: MemoryStorage) -> None:
        """When a session's queue is full further pushes are dropped and logged."""
        # Arrange
        manager = SessionManager(QueryService(storage), queue_size=1)
        channel = BlockingChannel()
        session = await manager.open(channel)
        session.enqueue({"name": "first"})
        await asyncio.sleep(0)  # writer takes "first" and blocks in send
        session.enqueue({"name": "second"})

        # Act
        with patch("telescope.live.sessions._logger") as mock_logger:
            accepted = session.enqueue({"name": "third"})
        channel.release.set()
        await session.flush()

        # Assert
        assert accepted is False
        assert [m["name"] for m in channel.sent] == ["first", "second"]
        assert mock_logger.warning.call_args.args[0]["event"] == "live_queue_full"
        await manager.close(session)

    async def test_broken_channel_closes_session(self, manager: SessionManager) -> None:
        """A failing send stops delivery, marks the session CLOSED and drops it."""
        # Arrange
        channel = BrokenChannel()
        session = await manager.open(channel)

        # Act
        await manager.handle(session, {"name": "GET_INITIAL_ENTRIES", "payload": {}})
        await session.flush()
        accepted = session.enqueue({"name": "later"})

        # Assert
        assert channel.attempts == 1
        assert session.state is SessionState.CLOSED
        assert accepted is False
        assert manager.session_count == 0
        assert manager.get(session.id) is None
        await manager.close(session)
        assert manager.session_count == 0
