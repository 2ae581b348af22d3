"""System logger for the collector's own operational events.

Everything the collector wants to say about itself (storage failures, dropped
pushes, capture problems) goes through this logger. It never writes into the
entry store: an observability failure must not feed back into the data it is
observing.

Logging strategy:
- Console (stderr): INFO and above, human-readable
- File (system.jsonl): WARNING and above, one JSON object per line

The file handler is configured separately via configure_system_logger_file()
once the log directory from config is available.
"""

from __future__ import annotations

__all__ = [
    "configure_system_logger_file",
    "get_system_logger",
    "log_exception_event",
    "set_system_log_level",
]

import logging
import sys
from pathlib import Path
from typing import Any

from telescope.constants import APP_NAME
from telescope.utils.logging.formatters import ConsoleFormatter, ISO8601Formatter

# Module-level singleton logger - initialized once on first use
_system_logger: logging.Logger | None = None
_file_handler_configured: bool = False


def get_system_logger() -> logging.Logger:
    """Get the singleton system logger instance.

    Creates the logger on first call with a stderr handler only. Child
    loggers (``telescope.system.<area>``) share its handlers.

    Returns:
        logging.Logger: Configured system logger instance.

    Example:
        >>> logger = get_system_logger()
        >>> logger.warning({"event": "entry_store_failed", "error": "..."})
    """
    global _system_logger

    if _system_logger is not None:
        return _system_logger

    _system_logger = logging.getLogger(f"{APP_NAME}.system")
    _system_logger.setLevel(logging.INFO)
    _system_logger.propagate = False

    # Close and remove any existing handlers to avoid duplicates
    for handler in _system_logger.handlers:
        handler.close()
    _system_logger.handlers.clear()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.INFO)
    stderr_handler.setFormatter(ConsoleFormatter())
    _system_logger.addHandler(stderr_handler)

    return _system_logger


def set_system_log_level(level: str | int) -> None:
    """Apply the configured log level to the system logger and its console handler."""
    logger = get_system_logger()
    logger.setLevel(level)
    for handler in logger.handlers:
        if not isinstance(handler, logging.FileHandler):
            handler.setLevel(level)


def configure_system_logger_file(log_path: Path) -> None:
    """Add the JSONL file handler (WARNING and above) to the system logger.

    Only the first call has an effect.

    Args:
        log_path: Path to the system log file.
    """
    global _file_handler_configured

    if _file_handler_configured:
        return

    logger = get_system_logger()

    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        # stderr still works
        logger.warning(
            {
                "event": "system_log_dir_unavailable",
                "message": f"Cannot create log directory {log_path.parent}: {e}",
                "path": str(log_path.parent),
            }
        )
        return

    file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    file_handler.setLevel(logging.WARNING)
    file_handler.setFormatter(ISO8601Formatter())
    logger.addHandler(file_handler)

    _file_handler_configured = True


def log_exception_event(
    logger: logging.Logger,
    event: str,
    message: str,
    exc: BaseException,
    *,
    level: int = logging.ERROR,
    **extra: Any,
) -> None:
    """Log a structured event describing a caught exception.

    Args:
        logger: Logger to write to.
        event: Machine-friendly event name.
        message: Human-readable description.
        exc: The caught exception.
        level: Log level (default ERROR).
        **extra: Additional structured fields.
    """
    logger.log(
        level,
        {
            "event": event,
            "message": f"{message}: {exc}",
            "error_type": type(exc).__name__,
            "error_message": str(exc),
            **extra,
        },
    )
