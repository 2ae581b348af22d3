"""Shared dependencies for API routes.

The collector is stored on ``app.state.telescope`` by ``create_app`` /
``Telescope.init_app``; routes reach its services through the dependencies
below rather than through module globals.

Usage with Annotated:
    from telescope.api.deps import QueryServiceDep

    @router.get("/entries")
    async def list_entries(query: QueryServiceDep) -> dict[str, Any]:
        ...
"""

from __future__ import annotations

__all__ = [
    # Dependency functions
    "get_query_service",
    "get_session_manager",
    "get_telescope",
    # Type aliases for Annotated pattern
    "QueryServiceDep",
    "SessionManagerDep",
    "TelescopeDep",
]

from typing import TYPE_CHECKING, Annotated, Any, Callable

from fastapi import Depends, HTTPException, Request

if TYPE_CHECKING:
    from telescope.core import Telescope
    from telescope.live.sessions import SessionManager
    from telescope.query import QueryService


# =============================================================================
# Factory for State Getters
# =============================================================================


def _create_state_getter(
    attr_name: str,
    type_hint: str,
    error_detail: str,
) -> Callable[[Request], Any]:
    """Create a dependency function that retrieves a value from app.state.

    Args:
        attr_name: Attribute name on app.state (e.g., "telescope").
        type_hint: Type name used in the generated docstring.
        error_detail: Error message for the 503 raised when the value is missing.

    Returns:
        A dependency function compatible with FastAPI's Depends().
    """

    def getter(request: Request) -> Any:
        value = getattr(request.app.state, attr_name, None)
        if value is None:
            raise HTTPException(status_code=503, detail=error_detail)
        return value

    getter.__name__ = f"get_{attr_name}"
    getter.__doc__ = f"Get {type_hint} from app.state.\n\nRaises HTTPException 503 if not available."
    return getter


# =============================================================================
# Dependency Functions
# =============================================================================

get_telescope: Callable[[Request], "Telescope"] = _create_state_getter(
    "telescope",
    "Telescope",
    "Telescope not available. Collector may still be starting.",
)


def get_query_service(request: Request) -> "QueryService":
    """Get the query service of the mounted collector."""
    return get_telescope(request).query


def get_session_manager(request: Request) -> "SessionManager":
    """Get the live session manager of the mounted collector."""
    return get_telescope(request).sessions


# =============================================================================
# Type Aliases for Annotated Pattern
# =============================================================================

TelescopeDep = Annotated["Telescope", Depends(get_telescope)]
QueryServiceDep = Annotated["QueryService", Depends(get_query_service)]
SessionManagerDep = Annotated["SessionManager", Depends(get_session_manager)]
