"""API route modules.

Route organization:
- config: Dashboard configuration (/config)
- entries: Historical entries ({prefix}/api/entries)
- live: Live channel, WebSocket and SSE ({prefix}/ws, {prefix}/api/stream)
"""

from . import config, entries, live

__all__ = [
    "config",
    "entries",
    "live",
]
