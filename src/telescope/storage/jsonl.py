"""Append-only JSONL document backend.

Each stored entry is one JSON object per line (its wire form). The file is
read once on ``connect()`` into an in-memory index; afterwards every store
appends a single line. Reads are answered from the index.

File I/O runs in a worker thread so the event loop is never blocked on disk.
Lines that cannot be parsed (truncated writes, manual edits) are skipped and
logged rather than failing the whole load.
"""

from __future__ import annotations

__all__ = ["JsonlStorage"]

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from telescope.constants import APP_NAME
from telescope.exceptions import InvalidArgument, StorageUnavailable
from telescope.models.entries import Entry, parse_entry
from telescope.storage.base import StorageBackend

_logger = logging.getLogger(f"{APP_NAME}.system.storage.jsonl")


def _read_lines(path: Path) -> list[tuple[int, bytes]]:
    # Raw bytes: each line is decoded on its own so one torn write cannot fail the load
    if not path.exists():
        return []
    with path.open("rb") as f:
        return [(line_no, line) for line_no, line in enumerate(f, start=1) if line.strip()]


def _append_line(path: Path, line: str) -> None:
    with path.open("a", encoding="utf-8") as f:
        f.write(line + "\n")
        f.flush()


class JsonlStorage(StorageBackend):
    """Entries persisted to an append-only JSONL file.

    Args:
        path: File to read and append to. Parent directories are created on connect.
    """

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self._path = Path(path).expanduser()
        self._entries: dict[str, Entry] = {}

    @property
    def path(self) -> Path:
        return self._path

    async def _open(self) -> None:
        try:
            await asyncio.to_thread(self._path.parent.mkdir, parents=True, exist_ok=True)
            lines = await asyncio.to_thread(_read_lines, self._path)
        except OSError as e:
            raise StorageUnavailable(
                f"Cannot open {self._path}: {e}",
                backend=self.name,
                operation="connect",
            ) from e

        self._entries.clear()
        skipped = 0
        for line_no, line in lines:
            entry = self._decode(line, line_no)
            if entry is None or entry.id is None:
                skipped += 1
                continue
            self._entries[entry.id] = entry

        _logger.info(
            {
                "event": "jsonl_storage_loaded",
                "message": f"Loaded {len(self._entries)} entries from {self._path}",
                "path": str(self._path),
                "entries": len(self._entries),
                "skipped": skipped,
            }
        )

    def _decode(self, line: bytes, line_no: int) -> Entry | None:
        try:
            data: Any = json.loads(line.decode("utf-8"))
            return parse_entry(data)
        except (UnicodeDecodeError, json.JSONDecodeError, InvalidArgument, TypeError) as e:
            _logger.warning(
                {
                    "event": "jsonl_line_skipped",
                    "message": f"Skipping unreadable line {line_no} in {self._path}",
                    "path": str(self._path),
                    "line": line_no,
                    "error_type": type(e).__name__,
                }
            )
            return None

    async def _close(self) -> None:
        self._entries.clear()

    async def _persist(self, entry_id: str, entry: Entry) -> None:
        line = json.dumps(entry.to_wire(), separators=(",", ":"))
        await asyncio.to_thread(_append_line, self._path, line)
        self._entries[entry_id] = entry

    async def _fetch(self, entry_id: str) -> Entry | None:
        return self._entries.get(entry_id)

    async def _all_entries(self) -> list[Entry]:
        return list(self._entries.values())
