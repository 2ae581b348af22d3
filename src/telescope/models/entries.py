"""Entry model: the normalized record shape for every captured observation.

An entry is one of a closed set of variants selected by ``type``:

- ``request``: an inbound HTTP request (``request`` payload)
- ``exception``: a raised error (``exception`` payload)
- ``query``: a data-store operation (``data`` payload)
- ``custom``: an application-defined record (``custom`` payload)

All models are frozen. Field names are snake_case in Python and camelCase on
the wire (``statusCode``, ``requestId``); the exception class name is exposed
as ``class``.

Example:
    entry = ExceptionEntry(exception=ExceptionData(message="boom", error_class="ValueError"))
    wire = entry.to_wire()          # {"id": None, "type": "exception", ...}
    parse_entry(wire) == entry      # True
"""

from __future__ import annotations

__all__ = [
    "BaseEntry",
    "CustomData",
    "CustomEntry",
    "Entry",
    "EntryType",
    "ExceptionData",
    "ExceptionEntry",
    "QueryData",
    "QueryEntry",
    "RequestData",
    "RequestEntry",
    "WireModel",
    "parse_entry",
    "utc_now",
]

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from telescope.exceptions import InvalidArgument


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class EntryType(str, Enum):
    """Entry variants. ``type`` is the sole discriminator for filtering and live watches."""

    REQUEST = "request"
    EXCEPTION = "exception"
    QUERY = "query"
    CUSTOM = "custom"


class WireModel(BaseModel):
    """Base for immutable models serialized with camelCase keys."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# Variant payloads
# =============================================================================


class RequestData(WireModel):
    """An inbound request as observed by the request adapter.

    Attributes:
        method: HTTP method.
        path: Request path (without query string).
        status_code: Response status code.
        duration: Handling time in milliseconds.
        request_id: Correlation id of the unit of work.
    """

    method: str
    path: str
    status_code: int
    duration: float
    request_id: str | None = None
    query_string: str | None = None
    ip: str | None = None
    user_agent: str | None = None


class ExceptionData(WireModel):
    """A captured error.

    ``context`` maps line numbers (as strings) to sanitized source lines and
    is only present when source-context reading is enabled.
    """

    message: str
    error_class: str = Field(alias="class")
    stack: str | None = None
    file: str | None = None
    line: int | None = None
    context: dict[str, str] | None = None
    request_id: str | None = None


class QueryData(WireModel):
    """A data-store operation.

    Attributes:
        method: Operation name (find, insert_one, execute, ...).
        query: Serialized query/operation description.
        collection: Target collection or table.
        duration: Operation time in milliseconds.
        result: Truncated serialized result preview.
        error: Error text if the operation raised.
        request_id: Correlation id of the unit of work.
    """

    method: str
    query: str
    collection: str
    duration: float
    result: str | None = None
    error: str | None = None
    request_id: str | None = None


class CustomData(WireModel):
    """An application-defined observation."""

    name: str
    content: dict[str, Any] = Field(default_factory=dict)
    request_id: str | None = None


# =============================================================================
# Entries
# =============================================================================


class BaseEntry(WireModel):
    """Fields shared by every entry variant: storage-assigned id and creation time."""

    id: str | None = None
    timestamp: datetime = Field(default_factory=utc_now)

    @field_validator("timestamp")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        """Naive timestamps are taken as UTC; aware ones are converted to UTC."""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def with_id(self, entry_id: str) -> "BaseEntry":
        """Return a copy carrying the storage-assigned id."""
        return self.model_copy(update={"id": entry_id})

    def to_wire(self) -> dict[str, Any]:
        """Serialize to a transport-neutral dict (JSON types, camelCase keys)."""
        return self.model_dump(mode="json", by_alias=True)

    @property
    def request_id(self) -> str | None:
        """Correlation id carried by the variant payload, if any."""
        return getattr(self.payload, "request_id", None)

    @property
    def payload(self) -> WireModel:
        raise NotImplementedError


class RequestEntry(BaseEntry):
    type: Literal["request"] = "request"
    request: RequestData

    @property
    def payload(self) -> RequestData:
        return self.request


class ExceptionEntry(BaseEntry):
    type: Literal["exception"] = "exception"
    exception: ExceptionData

    @property
    def payload(self) -> ExceptionData:
        return self.exception


class QueryEntry(BaseEntry):
    type: Literal["query"] = "query"
    data: QueryData

    @property
    def payload(self) -> QueryData:
        return self.data


class CustomEntry(BaseEntry):
    type: Literal["custom"] = "custom"
    custom: CustomData

    @property
    def payload(self) -> CustomData:
        return self.custom


Entry = Annotated[
    Union[RequestEntry, ExceptionEntry, QueryEntry, CustomEntry],
    Field(discriminator="type"),
]

_entry_adapter: TypeAdapter[Entry] = TypeAdapter(Entry)


def parse_entry(data: dict[str, Any]) -> Entry:
    """Build an entry from its wire form.

    Args:
        data: Dict as produced by ``to_wire()`` (or stored by a backend).

    Returns:
        The matching entry variant.

    Raises:
        InvalidArgument: If the dict is not a valid entry.
    """
    try:
        return _entry_adapter.validate_python(data)
    except ValidationError as e:
        raise InvalidArgument(f"Invalid entry: {e.error_count()} validation error(s)", field="entry") from e
