"""Live distribution: protocol, sessions and the storage-to-session relay."""

from __future__ import annotations

__all__ = [
    "Channel",
    "EventBus",
    "EventName",
    "Session",
    "SessionManager",
    "SessionState",
    "Watch",
    "decode_message",
    "error_message",
]

from telescope.live.bus import EventBus
from telescope.live.protocol import EventName, decode_message, error_message
from telescope.live.sessions import Channel, Session, SessionManager, SessionState, Watch
