"""Logging utilities: formatters for console and JSONL output."""

from __future__ import annotations

__all__ = [
    "ConsoleFormatter",
    "ISO8601Formatter",
]

from .formatters import ConsoleFormatter, ISO8601Formatter
