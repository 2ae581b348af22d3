"""HTTP and live surface of the collector (FastAPI)."""

from __future__ import annotations

__all__ = [
    "create_app",
    "mount_collector",
]

from telescope.api.server import create_app, mount_collector
