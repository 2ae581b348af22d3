"""Live channel endpoints.

- WS  {prefix}/ws - Bidirectional live protocol (GET_INITIAL_ENTRIES, GET_ENTRY_DETAILS, pushes)
- GET {prefix}/api/stream?type=&perPage= - SSE watch-only feed

Both transports carry the same ``{"name", "payload"}`` messages. The SSE
feed is one session that issues GET_INITIAL_ENTRIES on connect and then
receives NEW_ENTRY pushes; a keepalive comment is sent when idle.

Routes mounted at: {prefix}
"""

from __future__ import annotations

__all__ = ["router"]

import asyncio
import json
from typing import Any

from fastapi import APIRouter, Query, Request, WebSocket
from sse_starlette.sse import EventSourceResponse

from telescope.api.deps import QueryServiceDep, SessionManagerDep
from telescope.constants import SESSION_QUEUE_SIZE, SSE_KEEPALIVE_SECONDS
from telescope.live.protocol import EventName, message

router = APIRouter()

# WebSocket close code: server not ready (RFC 6455 "Try Again Later")
WS_TRY_AGAIN_LATER = 1013


class _WebSocketChannel:
    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket

    async def send(self, msg: dict[str, Any]) -> None:
        await self._websocket.send_json(msg)


class _QueueChannel:
    """Channel feeding an SSE generator."""

    def __init__(self) -> None:
        self.queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=SESSION_QUEUE_SIZE)

    async def send(self, msg: dict[str, Any]) -> None:
        await self.queue.put(msg)


@router.websocket("/ws")
async def live_socket(websocket: WebSocket) -> None:
    """Serve one live dashboard client until it disconnects."""
    telescope = getattr(websocket.app.state, "telescope", None)
    if telescope is None:
        await websocket.close(code=WS_TRY_AGAIN_LATER)
        return

    await websocket.accept()
    sessions = telescope.sessions
    session = await sessions.open(_WebSocketChannel(websocket))
    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            # Text and binary frames carry the same JSON messages
            raw = frame.get("text")
            if raw is None:
                raw = frame.get("bytes") or b""
            await sessions.handle(session, raw)
    finally:
        await sessions.close(session)


@router.get("/api/stream")
async def live_stream(
    request: Request,
    sessions: SessionManagerDep,
    query: QueryServiceDep,
    entry_type: str | None = Query(default=None, alias="type", description="Entry type to watch, or 'all'"),
    per_page: str | None = Query(default=None, alias="perPage", description="Snapshot page size"),
) -> EventSourceResponse:
    """SSE feed of one entry type.

    Event format: ``data: {"name": "...", "payload": ...}`` (no named SSE events).

    Raises:
        InvalidArgument: 400 for an unknown type or bad page size (handled globally).
    """
    # Reject bad parameters before the stream starts
    entry_filter = query.normalize(type=entry_type, per_page=per_page)
    request_payload = {
        "type": entry_filter.type.value if entry_filter.type else None,
        "page": 1,
        "perPage": entry_filter.per_page,
    }

    async def event_generator() -> Any:
        channel = _QueueChannel()
        session = await sessions.open(channel)
        try:
            await sessions.handle(session, message(EventName.GET_INITIAL_ENTRIES, request_payload))
            while True:
                if await request.is_disconnected():
                    break
                try:
                    msg = await asyncio.wait_for(channel.queue.get(), timeout=SSE_KEEPALIVE_SECONDS)
                    yield {"data": json.dumps(msg)}
                except asyncio.TimeoutError:
                    # SSE comment as keepalive (not data, won't trigger onmessage)
                    yield {"comment": "keepalive"}
        finally:
            await sessions.close(session)

    return EventSourceResponse(event_generator())
