"""Error response schemas for API documentation.

These schemas are used for OpenAPI documentation and type hints.
The actual error handling is in api/errors.py.
"""

from __future__ import annotations

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
]

from typing import Any

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Structured error detail.

    Attributes:
        code: Error code for programmatic handling (e.g., "ENTRY_NOT_FOUND").
        message: Human-readable error message.
        details: Optional contextual details (varies by error type).
    """

    code: str = Field(
        description="Error code for programmatic handling",
        examples=["ENTRY_NOT_FOUND", "INVALID_ARGUMENT", "STORAGE_UNAVAILABLE"],
    )
    message: str = Field(
        description="Human-readable error message",
        examples=["Entry not found"],
    )
    details: dict[str, Any] | None = Field(
        default=None,
        description="Optional contextual details",
        examples=[{"field": "page", "value": "0"}],
    )


class ErrorResponse(BaseModel):
    """Full error response wrapper (``{"detail": {...}}``)."""

    detail: ErrorDetail
