"""Contract tests run against every storage backend.

Covers id assignment, round-trips, pagination and listener notification.
Uses AAA pattern (Arrange-Act-Assert) for clarity.
"""

import asyncio
from collections.abc import AsyncIterator
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

from telescope.exceptions import StorageUnavailable
from telescope.models.entries import Entry, EntryType, RequestEntry
from telescope.models.pages import EntryFilter
from telescope.storage import JsonlStorage, MemoryStorage, StorageBackend

from conftest import ENTRY_FACTORIES, make_exception_entry, make_request_entry


@pytest.fixture(params=["memory", "jsonl"])
async def backend(request: pytest.FixtureRequest, tmp_path: Path) -> AsyncIterator[StorageBackend]:
    """Connected backend of each kind."""
    if request.param == "memory":
        storage: StorageBackend = MemoryStorage()
    else:
        storage = JsonlStorage(tmp_path / "entries.jsonl")
    await storage.connect()
    yield storage
    await storage.close()


def _at(seconds: int):
    return datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=seconds)


class TestStoreAndFetch:
    """Tests for store_entry() and get_entry()."""

    @pytest.mark.parametrize("entry_type", list(EntryType))
    async def test_round_trip_preserves_entry(self, backend: StorageBackend, entry_type: EntryType) -> None:
        """A stored entry comes back equal apart from its assigned id."""
        # Arrange
        entry = ENTRY_FACTORIES[entry_type]()

        # Act
        entry_id = await backend.store_entry(entry)
        fetched = await backend.get_entry(entry_id)

        # Assert
        assert fetched is not None
        assert fetched.id == entry_id
        assert fetched == entry.with_id(entry_id)

    async def test_boom_exception_store_then_fetch(self, backend: StorageBackend) -> None:
        """An exception entry is retrievable by the id store returned."""
        # Act
        entry_id = await backend.store_entry(make_exception_entry("boom"))
        fetched = await backend.get_entry(entry_id)

        # Assert
        assert fetched is not None
        assert fetched.type == "exception"
        assert fetched.exception.message == "boom"

    async def test_caller_supplied_id_is_ignored(self, backend: StorageBackend) -> None:
        """Storage always assigns the id."""
        # Act
        entry_id = await backend.store_entry(make_request_entry().with_id("mine"))

        # Assert
        assert entry_id != "mine"
        assert await backend.get_entry("mine") is None

    async def test_unknown_id_returns_none(self, backend: StorageBackend) -> None:
        """A missing id is None, not an error."""
        # Assert
        assert await backend.get_entry("does-not-exist") is None

    async def test_ids_unique_under_concurrency(self, backend: StorageBackend) -> None:
        """Concurrent stores never share an id."""
        # Act
        ids = await asyncio.gather(*(backend.store_entry(make_request_entry()) for _ in range(50)))

        # Assert
        assert len(set(ids)) == 50
        page = await backend.get_entries(EntryFilter(per_page=100))
        assert page.pagination.total == 50

    async def test_operations_require_connection(self) -> None:
        """A backend that is not connected raises StorageUnavailable."""
        # Arrange
        backend = MemoryStorage()

        # Act & Assert
        with pytest.raises(StorageUnavailable) as exc_info:
            await backend.store_entry(make_request_entry())
        assert exc_info.value.operation == "store_entry"
        with pytest.raises(StorageUnavailable):
            await backend.get_entry("x")

    async def test_connect_is_idempotent(self, backend: StorageBackend) -> None:
        """A second connect is a no-op."""
        # Arrange
        entry_id = await backend.store_entry(make_request_entry())

        # Act
        await backend.connect()

        # Assert
        assert backend.is_connected
        assert await backend.get_entry(entry_id) is not None


class TestPagination:
    """Tests for get_entries()."""

    async def test_twenty_five_entries_split_twenty_and_five(self, backend: StorageBackend) -> None:
        """25 entries at 20 per page: page 1 has 20, page 2 has 5, total 25."""
        # Arrange
        for _ in range(25):
            await backend.store_entry(make_request_entry())

        # Act
        first = await backend.get_entries(EntryFilter(page=1, per_page=20))
        second = await backend.get_entries(EntryFilter(page=2, per_page=20))

        # Assert
        assert len(first.entries) == 20
        assert len(second.entries) == 5
        assert first.pagination.total == second.pagination.total == 25
        assert second.pagination.current_page == 2
        assert second.pagination.per_page == 20
        assert not {e.id for e in first.entries} & {e.id for e in second.entries}

    async def test_page_past_end_is_empty(self, backend: StorageBackend) -> None:
        """A page beyond the last one is empty but reports the total."""
        # Arrange
        await backend.store_entry(make_request_entry())

        # Act
        page = await backend.get_entries(EntryFilter(page=5, per_page=20))

        # Assert
        assert page.entries == []
        assert page.pagination.total == 1

    async def test_type_filter_total_counts_only_matches(self, backend: StorageBackend) -> None:
        """Total counts matching entries across all pages."""
        # Arrange
        for _ in range(3):
            await backend.store_entry(make_request_entry())
        for _ in range(4):
            await backend.store_entry(make_exception_entry())

        # Act
        page = await backend.get_entries(EntryFilter(type=EntryType.EXCEPTION, per_page=2))

        # Assert
        assert page.pagination.total == 4
        assert len(page.entries) == 2
        assert all(e.type == "exception" for e in page.entries)

    async def test_default_order_is_newest_first(self, backend: StorageBackend) -> None:
        """-timestamp puts the newest entry first."""
        # Arrange
        old = await backend.store_entry(make_request_entry(path="/old").model_copy(update={"timestamp": _at(0)}))
        new = await backend.store_entry(make_request_entry(path="/new").model_copy(update={"timestamp": _at(60)}))

        # Act
        page = await backend.get_entries(EntryFilter())

        # Assert
        assert [e.id for e in page.entries] == [new, old]

    async def test_ascending_sort(self, backend: StorageBackend) -> None:
        """timestamp without '-' is oldest first."""
        # Arrange
        new = await backend.store_entry(make_request_entry().model_copy(update={"timestamp": _at(60)}))
        old = await backend.store_entry(make_request_entry().model_copy(update={"timestamp": _at(0)}))

        # Act
        page = await backend.get_entries(EntryFilter(sort="timestamp"))

        # Assert
        assert [e.id for e in page.entries] == [old, new]

    async def test_equal_timestamps_newest_stored_first(self, backend: StorageBackend) -> None:
        """Ties keep storage order, latest stored first when descending."""
        # Arrange
        ids = [
            await backend.store_entry(make_request_entry().model_copy(update={"timestamp": _at(0)}))
            for _ in range(3)
        ]

        # Act
        page = await backend.get_entries(EntryFilter())

        # Assert
        assert [e.id for e in page.entries] == list(reversed(ids))

    async def test_naive_timestamps_sort_as_utc(self, backend: StorageBackend) -> None:
        """Entries with naive timestamps sort alongside aware ones."""
        # Arrange
        aware = await backend.store_entry(make_request_entry(path="/aware"))
        built = await backend.store_entry(
            RequestEntry(request=make_request_entry().request, timestamp=datetime(2024, 1, 1, 12))
        )
        copied = await backend.store_entry(
            make_request_entry().model_copy(update={"timestamp": datetime(2024, 1, 1, 13)})
        )

        # Act
        page = await backend.get_entries(EntryFilter())

        # Assert
        assert [e.id for e in page.entries] == [aware, copied, built]

    async def test_pages_are_consistent(self, backend: StorageBackend) -> None:
        """Walking every page yields each entry exactly once."""
        # Arrange
        stored = {await backend.store_entry(make_request_entry()) for _ in range(23)}

        # Act
        seen: list[str] = []
        for page_number in range(1, 4):
            page = await backend.get_entries(EntryFilter(page=page_number, per_page=10))
            seen.extend(e.id for e in page.entries)

        # Assert
        assert len(seen) == 23
        assert set(seen) == stored


class TestListeners:
    """Tests for new-entry notification."""

    async def test_listener_sees_entries_in_storage_order(self, backend: StorageBackend) -> None:
        """Concurrent stores are delivered in the order they were persisted."""
        # Arrange
        seen: list[str] = []

        async def listener(entry: Entry) -> None:
            await asyncio.sleep(0)
            seen.append(entry.id)

        backend.add_listener(listener)

        # Act
        ids = await asyncio.gather(*(backend.store_entry(make_request_entry()) for _ in range(20)))

        # Assert
        stored_order = [e.id for e in await backend._all_entries()]
        assert seen == stored_order
        assert set(seen) == set(ids)

    async def test_listener_receives_stored_entry_with_id(self, backend: StorageBackend) -> None:
        """The notified entry carries its assigned id."""
        # Arrange
        received: list[Entry] = []

        async def listener(entry: Entry) -> None:
            received.append(entry)

        backend.add_listener(listener)

        # Act
        entry_id = await backend.store_entry(make_exception_entry())

        # Assert
        assert [e.id for e in received] == [entry_id]

    async def test_failing_listener_does_not_block_others(self, backend: StorageBackend) -> None:
        """A raising listener is logged and the next listener still runs."""
        # Arrange
        received: list[str] = []

        async def broken(entry: Entry) -> None:
            raise RuntimeError("listener bug")

        async def healthy(entry: Entry) -> None:
            received.append(entry.id)

        backend.add_listener(broken)
        backend.add_listener(healthy)

        # Act
        with patch("telescope.storage.base._logger") as mock_logger:
            first = await backend.store_entry(make_request_entry())
            second = await backend.store_entry(make_request_entry())

        # Assert
        assert received == [first, second]
        logged = [c.args[1]["event"] for c in mock_logger.log.call_args_list]
        assert logged == ["entry_listener_failed", "entry_listener_failed"]

    async def test_removed_listener_not_called(self, backend: StorageBackend) -> None:
        """remove_listener stops notifications."""
        # Arrange
        received: list[str] = []

        async def listener(entry: Entry) -> None:
            received.append(entry.id)

        backend.add_listener(listener)
        backend.add_listener(listener)
        assert backend.listener_count == 1

        # Act
        backend.remove_listener(listener)
        await backend.store_entry(make_request_entry())

        # Assert
        assert received == []
        assert backend.listener_count == 0

    async def test_no_notification_when_persist_fails(self, backend: StorageBackend) -> None:
        """A failed store raises and notifies nobody."""
        # Arrange
        received: list[str] = []

        async def listener(entry: Entry) -> None:
            received.append(entry.id)

        async def failing_persist(entry_id: str, entry: Entry) -> None:
            raise OSError("disk full")

        backend.add_listener(listener)

        # Act
        with patch.object(backend, "_persist", failing_persist):
            with pytest.raises(StorageUnavailable) as exc_info:
                await backend.store_entry(make_request_entry())

        # Assert
        assert received == []
        assert exc_info.value.operation == "store_entry"

    async def test_delivery_continues_after_failed_store(self, backend: StorageBackend) -> None:
        """A failed store does not stall later notifications."""
        # Arrange
        received: list[str] = []

        async def listener(entry: Entry) -> None:
            received.append(entry.id)

        async def failing_persist(entry_id: str, entry: Entry) -> None:
            raise OSError("disk full")

        backend.add_listener(listener)
        with patch.object(backend, "_persist", failing_persist):
            with pytest.raises(StorageUnavailable):
                await backend.store_entry(make_request_entry())

        # Act
        entry_id = await asyncio.wait_for(backend.store_entry(make_request_entry()), timeout=1)

        # Assert
        assert received == [entry_id]
