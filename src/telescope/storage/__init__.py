"""Pluggable entry storage.

Backends:
- MemoryStorage: process-local, optional retention bound (default)
- JsonlStorage: append-only JSONL file
"""

from __future__ import annotations

__all__ = [
    "EntryListener",
    "JsonlStorage",
    "MemoryStorage",
    "StorageBackend",
    "create_storage",
    "paginate",
]

from telescope.config import StorageConfig
from telescope.exceptions import ConfigurationError
from telescope.storage.base import EntryListener, StorageBackend, paginate
from telescope.storage.jsonl import JsonlStorage
from telescope.storage.memory import MemoryStorage


def create_storage(config: StorageConfig) -> StorageBackend:
    """Build the backend selected by configuration (not yet connected).

    Raises:
        ConfigurationError: If the jsonl backend is selected without a path.
    """
    if config.backend == "jsonl":
        if not config.path:
            raise ConfigurationError("storage.path is required for the jsonl backend")
        return JsonlStorage(config.path)
    return MemoryStorage(max_entries=config.max_entries)
