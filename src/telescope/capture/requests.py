"""Request capture and the ASGI middleware that drives it.

``TelescopeMiddleware`` wraps each inbound request in a unit of work:
- establishes the correlation id (incoming ``X-Request-ID`` or a new one)
  and echoes it on the response
- times the request and records a request entry
- captures unhandled exceptions, records the request as a 500, then
  re-raises so the host's own error handling is unchanged

Requests to the collector's own routes (route prefix and ``/config``) are
not recorded, otherwise every dashboard poll would produce new entries.
"""

from __future__ import annotations

__all__ = [
    "RequestCapture",
    "TelescopeMiddleware",
]

import logging
import time
from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from telescope.capture.base import CaptureAdapter
from telescope.constants import APP_NAME, CONFIG_ROUTE, REQUEST_ID_HEADER
from telescope.context import get_request_id, unit_of_work
from telescope.models.entries import EntryType, RequestData, RequestEntry
from telescope.telemetry.system_logger import log_exception_event

if TYPE_CHECKING:
    from telescope.core import Telescope

_logger = logging.getLogger(f"{APP_NAME}.system.capture.requests")


class RequestCapture(CaptureAdapter):
    """Capture adapter for inbound HTTP requests."""

    entry_type = EntryType.REQUEST

    def build_entry(
        self,
        method: str,
        path: str,
        status_code: int,
        duration: float,
        request_id: str | None = None,
        query_string: str | None = None,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> RequestEntry:
        return RequestEntry(
            request=RequestData(
                method=method.upper(),
                path=path,
                status_code=status_code,
                duration=round(duration, 3),
                request_id=request_id if request_id is not None else get_request_id(),
                query_string=query_string or None,
                ip=ip,
                user_agent=user_agent,
            )
        )

    def record(
        self,
        method: str,
        path: str,
        status_code: int,
        duration: float,
        request_id: str | None = None,
        query_string: str | None = None,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        """Build and store a request entry. Never raises.

        Args:
            method: HTTP method.
            path: Request path.
            status_code: Response status.
            duration: Handling time in milliseconds.
            request_id: Correlation id; defaults to the current unit of work's.
            query_string: Raw query string, if any.
            ip: Client address.
            user_agent: User-Agent header.
        """
        if not self.enabled:
            return
        try:
            entry = self.build_entry(
                method,
                path,
                status_code,
                duration,
                request_id=request_id,
                query_string=query_string,
                ip=ip,
                user_agent=user_agent,
            )
        except Exception as e:
            log_exception_event(
                _logger,
                "request_capture_failed",
                "Failed to build request entry",
                e,
                level=logging.WARNING,
                path=path,
            )
            return
        self.submit(entry)


# =============================================================================
# Middleware
# =============================================================================


class TelescopeMiddleware(BaseHTTPMiddleware):
    """Records every host request and the exceptions it raises."""

    def __init__(self, app: ASGIApp, telescope: "Telescope") -> None:
        """Initialize middleware.

        Args:
            app: ASGI application.
            telescope: Collector receiving the captures.
        """
        super().__init__(app)
        self.telescope = telescope

    def _is_collector_route(self, path: str) -> bool:
        prefix = self.telescope.config.route_prefix
        return path == CONFIG_ROUTE or path == prefix or path.startswith(prefix + "/")

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Run the request inside a unit of work and record it.

        Args:
            request: Incoming request.
            call_next: Next middleware/handler.

        Returns:
            Response from the handler, with the correlation id header set.
        """
        path = request.url.path
        if self._is_collector_route(path):
            return await call_next(request)

        with unit_of_work(request.headers.get(REQUEST_ID_HEADER)) as request_id:
            started = time.perf_counter()
            status_code = 500
            try:
                response = await call_next(request)
                status_code = response.status_code
            except Exception as e:
                self.telescope.exceptions.capture(e, request_id=request_id)
                raise
            finally:
                self.telescope.requests.record(
                    request.method,
                    path,
                    status_code,
                    (time.perf_counter() - started) * 1000,
                    request_id=request_id,
                    query_string=request.url.query,
                    ip=request.client.host if request.client else None,
                    user_agent=request.headers.get("user-agent"),
                )

            response.headers[REQUEST_ID_HEADER] = request_id
            return response
