"""Live channel protocol.

Messages in both directions are JSON objects ``{"name": ..., "payload": ...}``:

- Client -> server:
    {"name": "GET_INITIAL_ENTRIES", "payload": {"type": "request", "page": 1, "perPage": 20}}
    {"name": "GET_ENTRY_DETAILS", "payload": {"id": "..."}}
- Server -> client:
    {"name": "INITIAL_ENTRIES", "payload": {"entries": [...], "pagination": {...}}}
    {"name": "NEW_ENTRY", "payload": {<entry>}}
    {"name": "ENTRY_DETAILS", "payload": {<entry>}}
    {"name": "error", "payload": {"message": "..."}}

The protocol is transport-neutral: the WebSocket and SSE routes both carry
these dicts unchanged.
"""

from __future__ import annotations

__all__ = [
    "EntryDetailsRequest",
    "EventName",
    "InitialEntriesRequest",
    "LiveMessage",
    "decode_message",
    "error_message",
    "message",
    "parse_payload",
]

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from telescope.exceptions import InvalidArgument


class EventName(str, Enum):
    GET_INITIAL_ENTRIES = "GET_INITIAL_ENTRIES"
    INITIAL_ENTRIES = "INITIAL_ENTRIES"
    NEW_ENTRY = "NEW_ENTRY"
    GET_ENTRY_DETAILS = "GET_ENTRY_DETAILS"
    ENTRY_DETAILS = "ENTRY_DETAILS"
    ERROR = "error"


class LiveMessage(BaseModel):
    """One protocol message. ``name`` is kept as a string so unknown names can be reported."""

    name: str
    payload: Any = None


class InitialEntriesRequest(BaseModel):
    """Payload of GET_INITIAL_ENTRIES.

    Values are kept loosely typed; the query service validates them.
    """

    model_config = ConfigDict(populate_by_name=True)

    type: Any = None
    page: Any = None
    per_page: Any = Field(default=None, alias="perPage")


class EntryDetailsRequest(BaseModel):
    """Payload of GET_ENTRY_DETAILS."""

    id: str = Field(min_length=1)


def message(name: EventName, payload: Any = None) -> dict[str, Any]:
    """Build an outbound message dict."""
    return {"name": name.value, "payload": payload}


def error_message(text: str) -> dict[str, Any]:
    """Build an outbound ``error`` message."""
    return message(EventName.ERROR, {"message": text})


def decode_message(raw: str | bytes | dict[str, Any]) -> LiveMessage:
    """Decode an inbound message.

    Args:
        raw: JSON text/bytes or an already decoded dict.

    Returns:
        LiveMessage with the raw payload.

    Raises:
        InvalidArgument: If the message is not JSON or has no name.
    """
    data: Any = raw
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidArgument("Message is not valid JSON", field="message") from e

    if not isinstance(data, dict):
        raise InvalidArgument("Message must be a JSON object", field="message")
    try:
        return LiveMessage.model_validate(data)
    except ValidationError as e:
        raise InvalidArgument("Message must have a string 'name'", field="name") from e


def parse_payload(model: type[BaseModel], payload: Any) -> Any:
    """Validate a request payload against its model.

    Raises:
        InvalidArgument: On missing or malformed fields.
    """
    try:
        return model.model_validate(payload if payload is not None else {})
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) or "payload" for err in e.errors())
        raise InvalidArgument(f"Invalid payload: {fields}", field="payload") from e
