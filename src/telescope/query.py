"""Query service for historical reads.

Thin layer over the storage backend shared by the HTTP surface and the live
protocol. Its only job beyond delegation is turning loosely typed client
input (query strings, JSON payloads) into a validated ``EntryFilter``.
"""

from __future__ import annotations

__all__ = ["QueryService"]

from typing import Any

from telescope.constants import DEFAULT_PAGE, DEFAULT_PER_PAGE, DEFAULT_SORT, MAX_PER_PAGE
from telescope.exceptions import InvalidArgument
from telescope.models.entries import Entry, EntryType
from telescope.models.pages import EntryFilter, EntryPage
from telescope.storage.base import StorageBackend

# Type values meaning "no type filter"
_ALL_TYPES = frozenset({"", "all", "*"})


def _coerce_type(value: Any) -> EntryType | None:
    if value is None or isinstance(value, EntryType):
        return value
    text = str(value).strip().lower()
    if text in _ALL_TYPES:
        return None
    try:
        return EntryType(text)
    except ValueError:
        allowed = ", ".join(t.value for t in EntryType)
        raise InvalidArgument(f"type must be one of: {allowed}", field="type", value=value) from None


def _coerce_positive_int(value: Any, default: int, field: str) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise InvalidArgument(f"{field} must be an integer >= 1", field=field, value=value)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidArgument(f"{field} must be an integer >= 1", field=field, value=value) from None
    if isinstance(value, float) and value != number:
        raise InvalidArgument(f"{field} must be an integer >= 1", field=field, value=value)
    if number < 1:
        raise InvalidArgument(f"{field} must be an integer >= 1", field=field, value=value)
    return number


class QueryService:
    """Validated, defaulted access to stored entries.

    Args:
        storage: Backend to read from.
        default_per_page: Page size used when the caller does not give one.
    """

    def __init__(self, storage: StorageBackend, default_per_page: int = DEFAULT_PER_PAGE) -> None:
        self._storage = storage
        self._default_per_page = default_per_page

    @property
    def storage(self) -> StorageBackend:
        return self._storage

    def normalize(
        self,
        type: Any = None,
        page: Any = None,
        per_page: Any = None,
        sort: Any = None,
    ) -> EntryFilter:
        """Build a filter from raw client input.

        Args:
            type: Entry type name; None, "" or "all" select every type.
            page: 1-based page number (default 1).
            per_page: Page size (default ``default_per_page``, capped at MAX_PER_PAGE).
            sort: Sort key, "-" prefix for descending (default "-timestamp").

        Returns:
            Validated EntryFilter.

        Raises:
            InvalidArgument: If any value is malformed or out of range.
        """
        per_page_value = _coerce_positive_int(per_page, self._default_per_page, "perPage")
        if per_page_value > MAX_PER_PAGE:
            raise InvalidArgument(f"perPage must be <= {MAX_PER_PAGE}", field="perPage", value=per_page)

        sort_value = DEFAULT_SORT if sort is None or sort == "" else str(sort).strip()

        return EntryFilter(
            type=_coerce_type(type),
            page=_coerce_positive_int(page, DEFAULT_PAGE, "page"),
            per_page=per_page_value,
            sort=sort_value,
        )

    async def get_entries(
        self,
        type: Any = None,
        page: Any = None,
        per_page: Any = None,
        sort: Any = None,
    ) -> EntryPage:
        """Fetch one page of entries.

        Raises:
            InvalidArgument: On malformed input (nothing is read).
            StorageUnavailable: On backend failure.
        """
        entry_filter = self.normalize(type=type, page=page, per_page=per_page, sort=sort)
        return await self._storage.get_entries(entry_filter)

    async def get_entry(self, entry_id: str) -> Entry | None:
        """Fetch one entry by id; None when absent.

        Raises:
            StorageUnavailable: On backend failure.
        """
        if not entry_id:
            return None
        return await self._storage.get_entry(entry_id)
