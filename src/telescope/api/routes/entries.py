"""Historical entries API endpoints.

Provides read access to stored entries:
- GET {prefix}/api/entries - One page of entries (filter by type, sort, paginate)
- GET {prefix}/api/entries/{entry_id} - One entry

Query parameters are accepted as strings and validated by the query
service, so malformed values produce the collector's 400 INVALID_ARGUMENT
rather than a framework-level 422.

Routes mounted at: {prefix}/api/entries
"""

from __future__ import annotations

__all__ = ["router"]

import logging
from typing import Any

from fastapi import APIRouter, Query

from telescope.api.deps import QueryServiceDep
from telescope.api.errors import APIError, ErrorCode
from telescope.api.schemas import ErrorResponse
from telescope.constants import APP_NAME
from telescope.exceptions import StorageUnavailable

_logger = logging.getLogger(f"{APP_NAME}.system.api.entries")

router = APIRouter()


def _storage_error(e: StorageUnavailable, message: str, **details: Any) -> APIError:
    _logger.error(
        {
            "event": "entries_read_failed",
            "message": f"{message}: {e.message}",
            "backend": e.backend,
            "operation": e.operation,
            **details,
        }
    )
    return APIError(status_code=500, code=ErrorCode.STORAGE_UNAVAILABLE, message=message)


@router.get(
    "",
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def list_entries(
    query: QueryServiceDep,
    entry_type: str | None = Query(default=None, alias="type", description="Entry type, or 'all'"),
    page: str | None = Query(default=None, description="1-based page number"),
    per_page: str | None = Query(default=None, alias="perPage", description="Page size"),
    sort: str | None = Query(default=None, description="Sort field, '-' prefix for descending"),
) -> dict[str, Any]:
    """List entries, newest first by default.

    Returns:
        ``{"entries": [...], "pagination": {"currentPage", "perPage", "total"}}``

    Raises:
        InvalidArgument: 400 for malformed parameters (handled globally).
        APIError: 500 if storage fails.
    """
    try:
        result = await query.get_entries(type=entry_type, page=page, per_page=per_page, sort=sort)
    except StorageUnavailable as e:
        raise _storage_error(e, "Failed to retrieve entries") from e
    return result.to_wire()


@router.get(
    "/{entry_id}",
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def get_entry(entry_id: str, query: QueryServiceDep) -> dict[str, Any]:
    """Get one entry by id.

    Raises:
        APIError: 404 if no entry has this id, 500 if storage fails.
    """
    try:
        entry = await query.get_entry(entry_id)
    except StorageUnavailable as e:
        raise _storage_error(e, "Failed to retrieve entry", entry_id=entry_id) from e

    if entry is None:
        raise APIError(
            status_code=404,
            code=ErrorCode.ENTRY_NOT_FOUND,
            message="Entry not found",
            details={"entry_id": entry_id},
        )
    return entry.to_wire()
