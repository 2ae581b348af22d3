"""Operational logging for the collector itself."""

from __future__ import annotations

__all__ = [
    "configure_system_logger_file",
    "get_system_logger",
    "log_exception_event",
    "set_system_log_level",
]

from .system_logger import (
    configure_system_logger_file,
    get_system_logger,
    log_exception_event,
    set_system_log_level,
)
