"""In-memory storage backend.

Process-local and lost on restart. Suitable for development and tests, and
as the default backend when nothing durable is configured.
"""

from __future__ import annotations

__all__ = ["MemoryStorage"]

from collections import OrderedDict

from telescope.models.entries import Entry
from telescope.storage.base import StorageBackend


class MemoryStorage(StorageBackend):
    """Entries held in insertion order in a dict keyed by id.

    Args:
        max_entries: Optional retention bound. When exceeded, the oldest
            stored entry is evicted.
    """

    def __init__(self, max_entries: int | None = None) -> None:
        super().__init__()
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._max_entries = max_entries
        self._entries: OrderedDict[str, Entry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    async def _open(self) -> None:
        pass

    async def _close(self) -> None:
        pass

    async def _persist(self, entry_id: str, entry: Entry) -> None:
        self._entries[entry_id] = entry
        if self._max_entries is not None:
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    async def _fetch(self, entry_id: str) -> Entry | None:
        return self._entries.get(entry_id)

    async def _all_entries(self) -> list[Entry]:
        return list(self._entries.values())
