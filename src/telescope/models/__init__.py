"""Data models shared by storage, capture and the live protocol."""

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
    "EntryFilter",
    "EntryPage",
    "Pagination",
    "parse_entry",
]

from .entries import (
    BaseEntry,
    CustomData,
    CustomEntry,
    Entry,
    EntryType,
    ExceptionData,
    ExceptionEntry,
    QueryData,
    QueryEntry,
    RequestData,
    RequestEntry,
    parse_entry,
)
from .pages import EntryFilter, EntryPage, Pagination
