"""The Telescope collector facade.

Wires the pipeline together:

    capture adapters --store--> storage --notify--> event bus --> session manager --> channels
                                   ^
                     query service +  (HTTP routes, live snapshots)

Lifecycle:
    telescope = Telescope(config)
    await telescope.connect()       # storage connect + bus attach
    ...
    await telescope.shutdown()      # flush captures, close sessions, close storage

With FastAPI, ``init_app`` mounts the routes and request middleware, and
``lifespan`` runs connect/shutdown:

    telescope = Telescope()
    app = FastAPI(lifespan=telescope.lifespan)
    telescope.init_app(app)
"""

from __future__ import annotations

__all__ = ["Telescope"]

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractContextManager, asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from telescope.capture.custom import CustomCapture
from telescope.capture.exceptions import ExceptionCapture
from telescope.capture.hooks import install_exception_hooks, install_loop_handler, uninstall_exception_hooks
from telescope.capture.queries import QueryCapture, QueryHandle
from telescope.capture.requests import RequestCapture, TelescopeMiddleware
from telescope.config import TelescopeConfig
from telescope.constants import APP_NAME
from telescope.exceptions import StorageUnavailable
from telescope.live.bus import EventBus
from telescope.live.sessions import SessionManager
from telescope.query import QueryService
from telescope.storage import StorageBackend, create_storage
from telescope.telemetry.system_logger import (
    configure_system_logger_file,
    get_system_logger,
    set_system_log_level,
)

if TYPE_CHECKING:
    from fastapi import FastAPI

_logger = logging.getLogger(f"{APP_NAME}.system.core")


class Telescope:
    """Embedded observability collector.

    Args:
        config: Collector configuration (defaults apply when omitted).
        storage: Backend to use; built from ``config.storage`` when omitted.
    """

    def __init__(self, config: TelescopeConfig | None = None, storage: StorageBackend | None = None) -> None:
        self.config = config or TelescopeConfig()

        get_system_logger()
        set_system_log_level(self.config.log_level)
        if self.config.log_dir:
            configure_system_logger_file(Path(self.config.log_dir).expanduser() / "system.jsonl")

        self.storage = storage if storage is not None else create_storage(self.config.storage)
        self.query = QueryService(self.storage, default_per_page=self.config.default_per_page)
        self.sessions = SessionManager(self.query)
        self.bus = EventBus(self.storage, self.sessions)

        self.exceptions = ExceptionCapture(self.storage, self.config)
        self.queries = QueryCapture(self.storage, self.config)
        self.requests = RequestCapture(self.storage, self.config)
        self.custom = CustomCapture(self.storage, self.config)

        self._owns_hooks = False

    def __repr__(self) -> str:
        return f"Telescope(storage={self.storage.name}, route_prefix={self.config.route_prefix!r})"

    @property
    def adapters(self) -> tuple[ExceptionCapture, QueryCapture, RequestCapture, CustomCapture]:
        return (self.exceptions, self.queries, self.requests, self.custom)

    @property
    def is_connected(self) -> bool:
        return self.storage.is_connected

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def connect(self) -> bool:
        """Connect storage and start live distribution.

        A storage failure is logged, not raised: the host application keeps
        running and the dashboard is degraded until a later connect succeeds.

        Returns:
            True if storage is connected.
        """
        try:
            await self.storage.connect()
        except StorageUnavailable as e:
            _logger.error(
                {
                    "event": "storage_connect_failed",
                    "message": f"Telescope storage unavailable: {e.message}",
                    "backend": e.backend,
                }
            )
            return False

        loop = asyncio.get_running_loop()
        for adapter in self.adapters:
            adapter.bind_loop(loop)
        self.bus.attach()
        if self._owns_hooks:
            install_loop_handler(loop)

        _logger.info(
            {
                "event": "telescope_connected",
                "message": f"Telescope collecting: {', '.join(t.value for t in self.config.watched_entries)}",
                "watched_entries": [t.value for t in self.config.watched_entries],
                "route_prefix": self.config.route_prefix,
            }
        )
        return True

    async def shutdown(self) -> None:
        """Flush pending captures, close live sessions, and close storage."""
        for adapter in self.adapters:
            await adapter.flush()
            adapter.bind_loop(None)
        await self.sessions.close_all()
        self.bus.detach()
        await self.storage.close()
        if self._owns_hooks:
            uninstall_exception_hooks()
            self._owns_hooks = False

    @asynccontextmanager
    async def lifespan(self, app: Any = None) -> AsyncIterator[None]:
        """ASGI lifespan: connect on startup, shut down on exit."""
        await self.connect()
        try:
            yield
        finally:
            await self.shutdown()

    async def flush(self) -> None:
        """Wait for every capture scheduled so far to be stored."""
        for adapter in self.adapters:
            await adapter.flush()

    def install_hooks(self) -> bool:
        """Install process-wide uncaught-error hooks (once per process).

        Returns:
            True if this collector installed them, False if already installed.
        """
        installed = install_exception_hooks(self.exceptions)
        if installed:
            self._owns_hooks = True
            try:
                install_loop_handler()
            except RuntimeError:
                # No running loop yet; connect() installs it
                pass
        return installed

    # =========================================================================
    # Capture shortcuts
    # =========================================================================

    def log_exception(self, error: Any, request_id: str | None = None) -> None:
        """Capture an error. Never raises."""
        self.exceptions.capture(error, request_id=request_id)

    def record_request(
        self,
        method: str,
        path: str,
        status_code: int,
        duration: float,
        request_id: str | None = None,
        **extra: Any,
    ) -> None:
        """Capture a request observed outside the middleware. Never raises."""
        self.requests.record(method, path, status_code, duration, request_id=request_id, **extra)

    def record(self, name: str, content: dict[str, Any] | None = None) -> None:
        """Capture an application-defined entry. Never raises."""
        self.custom.record(name, content)

    def track_query(self, method: str, collection: str, query: Any = None) -> AbstractContextManager[QueryHandle]:
        """Context manager timing one data-store operation (see QueryCapture.track)."""
        return self.queries.track(method, collection, query)

    def instrument_query(self, method: str, collection: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator recording calls of a data-access function."""
        return self.queries.instrument(method, collection)

    # =========================================================================
    # Framework integration
    # =========================================================================

    @property
    def middleware(self) -> tuple[type[TelescopeMiddleware], dict[str, Any]]:
        """Middleware class and options, for ``app.add_middleware(cls, **options)``."""
        return TelescopeMiddleware, {"telescope": self}

    def init_app(self, app: "FastAPI") -> None:
        """Mount the collector's routes and request capture onto a host app."""
        from telescope.api.server import mount_collector

        mount_collector(app, self)
        middleware_class, options = self.middleware
        app.add_middleware(middleware_class, **options)
