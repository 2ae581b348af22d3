"""Unit tests for correlation ids.

Uses AAA pattern (Arrange-Act-Assert) for clarity.
"""

import asyncio

from telescope.context import (
    clear_request_id,
    get_request_id,
    new_request_id,
    set_request_id,
    unit_of_work,
)


class TestUnitOfWork:
    """Tests for unit_of_work()."""

    def test_generates_id_when_missing(self) -> None:
        """A fresh id is generated and visible inside the block."""
        # Act
        with unit_of_work() as request_id:
            inside = get_request_id()

        # Assert
        assert request_id
        assert inside == request_id
        assert get_request_id() is None

    def test_uses_supplied_id(self) -> None:
        """An explicit id is used as is."""
        # Act
        with unit_of_work("job-42") as request_id:
            inside = get_request_id()

        # Assert
        assert request_id == "job-42"
        assert inside == "job-42"

    def test_rejects_newline_id(self) -> None:
        """Ids containing newlines are replaced with a fresh one."""
        # Act
        with unit_of_work("bad\nid") as request_id:
            pass

        # Assert
        assert "\n" not in request_id

    def test_nesting_restores_outer_id(self) -> None:
        """Leaving an inner unit of work restores the outer id."""
        # Act
        with unit_of_work("outer"):
            with unit_of_work("inner"):
                inner = get_request_id()
            outer = get_request_id()

        # Assert
        assert inner == "inner"
        assert outer == "outer"

    async def test_concurrent_tasks_are_isolated(self) -> None:
        """Concurrent tasks never see each other's ids."""

        # Arrange
        async def work(request_id: str) -> str | None:
            with unit_of_work(request_id):
                await asyncio.sleep(0.01)
                return get_request_id()

        # Act
        results = await asyncio.gather(work("a"), work("b"), work("c"))

        # Assert
        assert results == ["a", "b", "c"]


class TestSetRequestId:
    """Tests for set/clear helpers."""

    def test_set_and_clear(self) -> None:
        """set_request_id sets, clear_request_id clears."""
        # Act
        set_request_id("req-1")
        value = get_request_id()
        clear_request_id()

        # Assert
        assert value == "req-1"
        assert get_request_id() is None

    def test_newline_id_clears(self) -> None:
        """A newline-bearing id is rejected and the context cleared."""
        # Act
        set_request_id("a\r\nb")

        # Assert
        assert get_request_id() is None

    def test_new_ids_are_unique(self) -> None:
        """Generated ids do not repeat."""
        # Act
        ids = {new_request_id() for _ in range(100)}

        # Assert
        assert len(ids) == 100
