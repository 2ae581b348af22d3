"""FastAPI application for the collector's HTTP and live surface.

Two ways to expose a collector:

- ``create_app(telescope)`` builds a standalone app (used by ``telescope serve``)
  whose lifespan connects and shuts down the collector.
- ``Telescope.init_app(host_app)`` mounts the same routes onto an existing
  FastAPI app and adds request capture middleware.

Routes:
- GET /config
- GET {prefix}/api/entries, GET {prefix}/api/entries/{id}
- WS  {prefix}/ws
- GET {prefix}/api/stream

Usage:
    For standalone development/testing:
        uvicorn telescope.api.server:create_app --factory --port 8000
"""

from __future__ import annotations

__all__ = [
    "create_app",
    "mount_collector",
]

from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from telescope import __version__
from telescope.api.errors import (
    APIError,
    api_error_handler,
    invalid_argument_handler,
    register_exception_handlers,
    storage_unavailable_handler,
)
from telescope.api.routes import config, entries, live
from telescope.exceptions import InvalidArgument, StorageUnavailable

if TYPE_CHECKING:
    from telescope.core import Telescope


def mount_collector(app: FastAPI, telescope: "Telescope") -> None:
    """Attach a collector's routes and state to an app.

    Only the collector's own error types get handlers here, so a host app's
    error formatting is left alone.

    Args:
        app: Target application.
        telescope: Collector to expose.
    """
    prefix = telescope.config.route_prefix
    app.state.telescope = telescope

    app.add_exception_handler(APIError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(InvalidArgument, invalid_argument_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StorageUnavailable, storage_unavailable_handler)  # type: ignore[arg-type]

    app.include_router(config.router, tags=["config"])
    app.include_router(entries.router, prefix=f"{prefix}/api/entries", tags=["entries"])
    app.include_router(live.router, prefix=prefix, tags=["live"])


def create_app(telescope: "Telescope | None" = None) -> FastAPI:
    """Create a standalone collector application.

    Args:
        telescope: Collector to serve; a default in-memory one is built if omitted.

    Returns:
        Configured FastAPI application.
    """
    if telescope is None:
        from telescope.core import Telescope

        telescope = Telescope()

    app = FastAPI(
        title="Telescope",
        description="Observability collector API",
        version=__version__,
        lifespan=telescope.lifespan,
    )

    # CORS is disabled unless origins are configured (separate dashboard dev server)
    if telescope.config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=telescope.config.cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "OPTIONS"],
            allow_headers=["Content-Type"],
            max_age=3600,  # Cache preflight for 1 hour
        )

    register_exception_handlers(app)
    mount_collector(app, telescope)
    return app
