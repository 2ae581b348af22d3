"""Exception capture.

Builds exception entries from raised errors (or any other value handed to
the error path) and stores them fire-and-forget.

What an entry carries:
- message, error class name and the formatted stack
- file and line of the innermost traceback frame (where the error was raised)
- optionally, a few sanitized source lines around that line

File paths in ``file`` and ``stack`` have the project root replaced with
``[PROJECT_ROOT]``, so absolute filesystem layout never leaves the process.

Source context is read only when file reading is enabled and the current
environment is allow-listed. Reading is best-effort: an unreadable file
yields an entry without ``context``.
"""

from __future__ import annotations

__all__ = ["ExceptionCapture"]

import linecache
import logging
import os
import traceback
from types import TracebackType
from typing import Any

from telescope.capture.base import CaptureAdapter
from telescope.capture.sanitizer import sanitize_code_snippet
from telescope.constants import APP_NAME, PROJECT_ROOT_PLACEHOLDER, UNKNOWN_ERROR_CLASS
from telescope.context import get_request_id
from telescope.exceptions import CaptureFailure
from telescope.models.entries import EntryType, ExceptionData, ExceptionEntry
from telescope.telemetry.system_logger import log_exception_event

_logger = logging.getLogger(f"{APP_NAME}.system.capture.exceptions")


def _innermost_frame(tb: TracebackType | None) -> tuple[str | None, int | None]:
    if tb is None:
        return None, None
    while tb.tb_next is not None:
        tb = tb.tb_next
    return tb.tb_frame.f_code.co_filename, tb.tb_lineno


class ExceptionCapture(CaptureAdapter):
    """Capture adapter for raised errors."""

    entry_type = EntryType.EXCEPTION

    # =========================================================================
    # Entry construction
    # =========================================================================

    def build_entry(self, error: Any, request_id: str | None = None) -> ExceptionEntry:
        """Build an exception entry without storing it.

        Args:
            error: Exception instance, or any value used as an error.
            request_id: Correlation id; defaults to the current unit of work's.

        Returns:
            ExceptionEntry (id unset).
        """
        if request_id is None:
            request_id = get_request_id()

        if not isinstance(error, BaseException):
            return ExceptionEntry(
                exception=ExceptionData(
                    message=str(error),
                    error_class=UNKNOWN_ERROR_CLASS,
                    request_id=request_id,
                )
            )

        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        filename, line = _innermost_frame(error.__traceback__)

        context = None
        if filename and line and self._config.should_read_files():
            context = self._read_context(filename, line)

        return ExceptionEntry(
            exception=ExceptionData(
                message=str(error),
                error_class=type(error).__name__,
                stack=self._mask_paths(stack.rstrip("\n")),
                file=self._mask_paths(filename) if filename else None,
                line=line,
                context=context,
                request_id=request_id,
            )
        )

    def _mask_paths(self, text: str) -> str:
        root = self._config.resolved_project_root().rstrip(os.sep)
        if not root:
            return text
        return text.replace(root, PROJECT_ROOT_PLACEHOLDER)

    def _read_context(self, filename: str, line: int) -> dict[str, str] | None:
        try:
            return self._source_window(filename, line)
        except CaptureFailure as e:
            log_exception_event(
                _logger,
                "exception_context_unavailable",
                "Could not read source context",
                e,
                level=logging.DEBUG,
                file=self._mask_paths(filename),
            )
            return None

    def _source_window(self, filename: str, line: int) -> dict[str, str]:
        """Sanitized lines around ``line``, keyed by 1-based line number.

        Raises:
            CaptureFailure: If the file cannot be read or ``line`` is outside it.
        """
        linecache.checkcache(filename)
        lines = linecache.getlines(filename)
        if not lines:
            raise CaptureFailure(f"Source not available: {os.path.basename(filename)}")
        if line > len(lines):
            raise CaptureFailure(f"Line {line} outside file of {len(lines)} lines")

        start = max(1, line - self._config.context_lines_before)
        end = min(len(lines), line + self._config.context_lines_after)
        return {str(number): sanitize_code_snippet(lines[number - 1]) for number in range(start, end + 1)}

    # =========================================================================
    # Capture
    # =========================================================================

    def capture(self, error: Any, request_id: str | None = None) -> None:
        """Build and store an exception entry. Never raises.

        Inert when exceptions are not in the watch-set.
        """
        if not self.enabled:
            return
        try:
            entry = self.build_entry(error, request_id=request_id)
        except Exception as e:
            log_exception_event(
                _logger,
                "exception_capture_failed",
                "Failed to build exception entry",
                e,
                level=logging.WARNING,
            )
            return
        self.submit(entry)
