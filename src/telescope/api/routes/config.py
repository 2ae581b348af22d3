"""Dashboard configuration endpoint.

- GET /config - Route prefix the dashboard should use

Routes mounted at the application root.
"""

from __future__ import annotations

__all__ = ["router"]

from fastapi import APIRouter

from telescope.api.deps import TelescopeDep
from telescope.api.schemas import ConfigResponse
from telescope.constants import CONFIG_ROUTE

router = APIRouter()


@router.get(CONFIG_ROUTE, response_model=ConfigResponse)
async def get_config(telescope: TelescopeDep) -> ConfigResponse:
    """Return ``{"routePrefix": ...}``."""
    return ConfigResponse(route_prefix=telescope.config.route_prefix)
