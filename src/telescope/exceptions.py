"""Custom exceptions for telescope.

Exceptions are organized by who sees them:

Surfaced to dashboard clients (HTTP status or live `error` message):
    - StorageUnavailable: Backend unreachable or erroring
    - InvalidArgument: Malformed pagination/filter input

Absorbed locally (logged, never surfaced to the host application):
    - CaptureFailure: Adapter-local failure (e.g. unreadable source file)

Startup:
    - ConfigurationError: Invalid or unreadable configuration

Storage and query APIs report a missing id as None rather than raising.

Usage:
    from telescope.exceptions import StorageUnavailable, InvalidArgument
"""

from __future__ import annotations

__all__ = [
    "CaptureFailure",
    "ConfigurationError",
    "InvalidArgument",
    "StorageUnavailable",
    "TelescopeError",
]

from typing import Any


class TelescopeError(Exception):
    """Base error for all telescope operations."""


class StorageUnavailable(TelescopeError):
    """Raised when the storage backend cannot be reached or fails an operation.

    Attributes:
        backend: Name of the backend class that failed.
        operation: Operation that failed (connect, store_entry, ...).
    """

    def __init__(
        self,
        message: str,
        *,
        backend: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.backend = backend
        self.operation = operation


class InvalidArgument(TelescopeError, ValueError):
    """Raised for malformed pagination, filter or protocol input.

    Attributes:
        field: Name of the offending parameter, if known.
        value: The rejected value.
    """

    def __init__(self, message: str, *, field: str | None = None, value: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.value = value

    def to_details(self) -> dict[str, Any]:
        """Structured details for API error responses."""
        details: dict[str, Any] = {}
        if self.field is not None:
            details["field"] = self.field
        if self.value is not None:
            details["value"] = str(self.value)
        return details


class CaptureFailure(TelescopeError):
    """Raised inside a capture adapter when building an entry partially fails.

    Never propagates to the instrumented application.
    """


class ConfigurationError(TelescopeError):
    """Invalid or missing configuration."""
