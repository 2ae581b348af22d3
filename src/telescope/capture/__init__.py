"""Capture adapters: turn runtime signals into stored entries.

Adapters:
- ExceptionCapture: raised errors, optional sanitized source context
- QueryCapture: explicitly wrapped data-store operations
- RequestCapture / TelescopeMiddleware: inbound HTTP requests
- CustomCapture: application-defined records

Every adapter is inert unless its entry type is watched, and never raises
into the code it observes.
"""

from __future__ import annotations

__all__ = [
    "CaptureAdapter",
    "CustomCapture",
    "ExceptionCapture",
    "QueryCapture",
    "QueryHandle",
    "RequestCapture",
    "TelescopeMiddleware",
    "install_exception_hooks",
    "install_loop_handler",
    "sanitize_code_snippet",
    "uninstall_exception_hooks",
]

from telescope.capture.base import CaptureAdapter
from telescope.capture.custom import CustomCapture
from telescope.capture.exceptions import ExceptionCapture
from telescope.capture.hooks import install_exception_hooks, install_loop_handler, uninstall_exception_hooks
from telescope.capture.queries import QueryCapture, QueryHandle
from telescope.capture.requests import RequestCapture, TelescopeMiddleware
from telescope.capture.sanitizer import sanitize_code_snippet
