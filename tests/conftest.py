"""Shared fixtures for telescope tests."""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator
from pathlib import Path
from typing import Any

import pytest

from telescope.capture.hooks import uninstall_exception_hooks
from telescope.config import TelescopeConfig
from telescope.core import Telescope
from telescope.models.entries import (
    CustomData,
    CustomEntry,
    EntryType,
    ExceptionData,
    ExceptionEntry,
    QueryData,
    QueryEntry,
    RequestData,
    RequestEntry,
)
from telescope.storage import MemoryStorage


def make_request_entry(path: str = "/users", status_code: int = 200, **kwargs: Any) -> RequestEntry:
    return RequestEntry(
        request=RequestData(method="GET", path=path, status_code=status_code, duration=1.5, **kwargs),
    )


def make_exception_entry(message: str = "boom", error_class: str = "ValueError") -> ExceptionEntry:
    return ExceptionEntry(exception=ExceptionData(message=message, error_class=error_class))


def make_query_entry(collection: str = "users") -> QueryEntry:
    return QueryEntry(data=QueryData(method="find", query="{}", collection=collection, duration=0.4))


def make_custom_entry(name: str = "cache_miss") -> CustomEntry:
    return CustomEntry(custom=CustomData(name=name, content={"key": "user:1"}))


ENTRY_FACTORIES = {
    EntryType.REQUEST: make_request_entry,
    EntryType.EXCEPTION: make_exception_entry,
    EntryType.QUERY: make_query_entry,
    EntryType.CUSTOM: make_custom_entry,
}


@pytest.fixture(autouse=True)
def _restore_exception_hooks() -> Iterator[None]:
    """Process-wide hooks must never leak between tests."""
    yield
    uninstall_exception_hooks()


@pytest.fixture
def config(tmp_path: Path) -> TelescopeConfig:
    """Config watching every entry type with query logging on."""
    return TelescopeConfig(
        watched_entries=list(EntryType),
        enable_query_logging=True,
        project_root=str(tmp_path),
        environment="development",
    )


@pytest.fixture
async def storage() -> AsyncIterator[MemoryStorage]:
    """Connected in-memory backend."""
    backend = MemoryStorage()
    await backend.connect()
    yield backend
    await backend.close()


@pytest.fixture
async def telescope(config: TelescopeConfig) -> AsyncIterator[Telescope]:
    """Connected collector over an in-memory backend."""
    collector = Telescope(config, storage=MemoryStorage())
    await collector.connect()
    yield collector
    await collector.shutdown()


class RecordingChannel:
    """Channel test double collecting sent messages."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []

    async def send(self, message: dict[str, Any]) -> None:
        self.sent.append(message)

    def names(self) -> list[str]:
        return [m["name"] for m in self.sent]


class BrokenChannel:
    """Channel whose transport has gone away."""

    def __init__(self) -> None:
        self.attempts = 0

    async def send(self, message: dict[str, Any]) -> None:
        self.attempts += 1
        raise ConnectionError("socket closed")
