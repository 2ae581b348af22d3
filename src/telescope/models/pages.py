"""Filter and page models for historical entry queries.

An ``EntryFilter`` is built per call and never stored. Invalid values are
rejected at construction time with ``InvalidArgument``, so a backend never
sees a malformed filter.
"""

from __future__ import annotations

__all__ = [
    "EntryFilter",
    "EntryPage",
    "Pagination",
]

from dataclasses import dataclass
from typing import Any

from telescope.constants import DEFAULT_PAGE, DEFAULT_PER_PAGE, DEFAULT_SORT, SORTABLE_FIELDS
from telescope.exceptions import InvalidArgument
from telescope.models.entries import Entry, EntryType, WireModel


@dataclass(frozen=True, slots=True)
class EntryFilter:
    """Which entries to return and how to order and slice them.

    Attributes:
        type: Only entries of this type; None means all types.
        page: 1-based page number.
        per_page: Page size.
        sort: Field name, "-" prefix for descending (e.g. "-timestamp").
    """

    type: EntryType | None = None
    page: int = DEFAULT_PAGE
    per_page: int = DEFAULT_PER_PAGE
    sort: str = DEFAULT_SORT

    def __post_init__(self) -> None:
        if isinstance(self.page, bool) or not isinstance(self.page, int) or self.page < 1:
            raise InvalidArgument("page must be an integer >= 1", field="page", value=self.page)
        if isinstance(self.per_page, bool) or not isinstance(self.per_page, int) or self.per_page < 1:
            raise InvalidArgument("perPage must be an integer >= 1", field="perPage", value=self.per_page)
        if self.sort_field not in SORTABLE_FIELDS:
            allowed = ", ".join(sorted(SORTABLE_FIELDS))
            raise InvalidArgument(f"sort must be one of: {allowed} (prefix '-' for descending)", field="sort", value=self.sort)

    @property
    def sort_field(self) -> str:
        return self.sort.lstrip("-")

    @property
    def descending(self) -> bool:
        return self.sort.startswith("-")

    @property
    def offset(self) -> int:
        """Index of the first entry on this page."""
        return self.per_page * (self.page - 1)

    def matches(self, entry: Entry) -> bool:
        return self.type is None or entry.type == self.type


class Pagination(WireModel):
    """Page position and the total count of matching entries (all pages)."""

    current_page: int
    per_page: int
    total: int


class EntryPage(WireModel):
    """One page of entries plus pagination metadata.

    Wire shape: ``{"entries": [...], "pagination": {"currentPage", "perPage", "total"}}``
    """

    entries: list[Entry]
    pagination: Pagination

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
