"""Structured API error handling.

Every error the collector's HTTP surface returns has the same body:

    {"detail": {"code": "ENTRY_NOT_FOUND", "message": "Entry not found", "details": {...}}}

``details`` is omitted when empty. Route handlers raise ``APIError`` for
errors they decide on themselves; the collector's own ``InvalidArgument``
and ``StorageUnavailable`` are mapped by handlers so that routes and the
query service can raise them directly.

Usage:
    from telescope.api.errors import APIError, ErrorCode

    raise APIError(status_code=404, code=ErrorCode.ENTRY_NOT_FOUND, message="Entry not found")
"""

from __future__ import annotations

__all__ = [
    "APIError",
    "ErrorCode",
    "api_error_handler",
    "error_body",
    "http_exception_handler",
    "invalid_argument_handler",
    "register_exception_handlers",
    "storage_unavailable_handler",
    "validation_error_handler",
]

import logging
from enum import Enum
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from telescope.constants import APP_NAME
from telescope.exceptions import InvalidArgument, StorageUnavailable

_logger = logging.getLogger(f"{APP_NAME}.system.api")


class ErrorCode(str, Enum):
    """Machine-readable error codes returned in ``detail.code``."""

    ENTRY_NOT_FOUND = "ENTRY_NOT_FOUND"
    NOT_FOUND = "NOT_FOUND"

    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"

    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


# Codes for HTTPExceptions raised without one (framework 404s, host code)
_CODES_BY_STATUS: dict[int, ErrorCode] = {
    400: ErrorCode.INVALID_ARGUMENT,
    404: ErrorCode.NOT_FOUND,
    503: ErrorCode.SERVICE_UNAVAILABLE,
}


def error_body(code: ErrorCode, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    """Build the ``detail`` object shared by every error response."""
    body: dict[str, Any] = {"code": code.value, "message": message}
    if details:
        body["details"] = details
    return body


class APIError(HTTPException):
    """HTTPException carrying an ErrorCode.

    Attributes:
        code: Error code from ErrorCode.
        error_message: Human-readable message.
        error_details: Optional contextual details.
    """

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.error_message = message
        self.error_details = details
        super().__init__(status_code=status_code, detail=error_body(code, message, details))


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


async def invalid_argument_handler(request: Request, exc: InvalidArgument) -> JSONResponse:
    """Malformed filter or pagination input: 400 naming the field."""
    return JSONResponse(
        status_code=400,
        content={"detail": error_body(ErrorCode.INVALID_ARGUMENT, exc.message, exc.to_details())},
    )


async def storage_unavailable_handler(request: Request, exc: StorageUnavailable) -> JSONResponse:
    """Backend failure: 500 with a generic message.

    The backend's own message may carry hostnames or paths, so it is
    logged and not returned.
    """
    _logger.error(
        {
            "event": "storage_unavailable",
            "message": f"Storage failure while serving {request.url.path}: {exc.message}",
            "path": request.url.path,
            "backend": exc.backend,
            "operation": exc.operation,
        }
    )
    return JSONResponse(
        status_code=500,
        content={"detail": error_body(ErrorCode.STORAGE_UNAVAILABLE, "Storage unavailable")},
    )


def _describe_validation(errors: list[Any]) -> str:
    """One-line summary: "field: msg" for a single error, else a count."""
    if len(errors) != 1:
        return f"{len(errors)} validation errors"
    error = errors[0]
    field = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path"))
    msg = error.get("msg", "Validation error")
    return f"{field}: {msg}" if field else msg


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request validation: 422 keeping the field-level errors."""
    errors = list(exc.errors())
    body = error_body(ErrorCode.VALIDATION_ERROR, _describe_validation(errors))
    body["validation_errors"] = [
        {"loc": list(e.get("loc", [])), "msg": e.get("msg", ""), "type": e.get("type", "")} for e in errors
    ]
    return JSONResponse(status_code=422, content={"detail": body})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Plain HTTPExceptions get a code; structured ones pass through."""
    if isinstance(exc.detail, dict) and "code" in exc.detail:
        detail = exc.detail
    else:
        code = _CODES_BY_STATUS.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
        detail = error_body(code, str(exc.detail) if exc.detail else f"HTTP {exc.status_code}")
    return JSONResponse(status_code=exc.status_code, content={"detail": detail})


def register_exception_handlers(app: FastAPI) -> None:
    """Install every handler above on an app."""
    app.add_exception_handler(APIError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(InvalidArgument, invalid_argument_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StorageUnavailable, storage_unavailable_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
