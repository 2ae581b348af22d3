"""Process-wide hooks for uncaught errors.

Three kinds of failure escape normal request handling:
- uncaught exceptions in the main thread (``sys.excepthook``)
- uncaught exceptions in other threads (``threading.excepthook``)
- errors nobody awaited on an event loop (the loop's exception handler)

Installation is an explicit step tracked by one process-wide ``HookState``:
at most one telescope handler per kind is active, repeated installs are
no-ops, and ``uninstall_exception_hooks`` restores whatever was there before.
Every handler captures the error and then chains to the previous handler, so
default reporting (tracebacks on stderr) is unchanged.

Usage:
    install_exception_hooks(telescope.exceptions)
    install_loop_handler()          # from inside the running loop
    ...
    uninstall_exception_hooks()
"""

from __future__ import annotations

__all__ = [
    "HookState",
    "get_hook_state",
    "install_exception_hooks",
    "install_loop_handler",
    "uninstall_exception_hooks",
]

import asyncio
import logging
import sys
import threading
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any, Callable

from telescope.capture.exceptions import ExceptionCapture
from telescope.constants import APP_NAME

_logger = logging.getLogger(f"{APP_NAME}.system.capture.hooks")

LoopHandler = Callable[[asyncio.AbstractEventLoop, dict[str, Any]], object]


@dataclass
class HookState:
    """What is installed and what it replaced.

    Attributes:
        capture: Adapter receiving errors; None when not installed.
        previous_excepthook: sys.excepthook before installation.
        previous_threading_hook: threading.excepthook before installation.
        loops: Loops with a telescope handler, mapped to their previous handler.
    """

    capture: ExceptionCapture | None = None
    previous_excepthook: Callable[..., Any] | None = None
    previous_threading_hook: Callable[..., Any] | None = None
    loops: dict[asyncio.AbstractEventLoop, LoopHandler | None] = field(default_factory=dict)

    @property
    def installed(self) -> bool:
        return self.capture is not None


_state = HookState()
_state_lock = threading.Lock()


def get_hook_state() -> HookState:
    return _state


# =============================================================================
# Handlers
# =============================================================================


def _capture(error: Any) -> None:
    capture = _state.capture
    if capture is None:
        return
    # Handlers run on the failure path itself; nothing may escape from here
    try:
        capture.capture(error)
    except Exception as e:
        _logger.error(
            {
                "event": "hook_capture_failed",
                "message": f"Uncaught error hook failed to capture: {e}",
                "error_type": type(e).__name__,
            }
        )


def _excepthook(
    exc_type: type[BaseException],
    exc_value: BaseException,
    exc_tb: TracebackType | None,
) -> None:
    if not issubclass(exc_type, KeyboardInterrupt):
        _capture(exc_value)
    previous = _state.previous_excepthook or sys.__excepthook__
    previous(exc_type, exc_value, exc_tb)


def _threading_excepthook(args: threading.ExceptHookArgs) -> None:
    if args.exc_value is not None and not issubclass(args.exc_type, SystemExit):
        _capture(args.exc_value)
    previous = _state.previous_threading_hook or threading.__excepthook__
    previous(args)


def _loop_exception_handler(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
    error = context.get("exception")
    _capture(error if error is not None else context.get("message", "Unhandled event loop error"))

    previous = _state.loops.get(loop)
    if previous is not None:
        previous(loop, context)
    else:
        loop.default_exception_handler(context)


# =============================================================================
# Install / uninstall
# =============================================================================


def install_exception_hooks(capture: ExceptionCapture) -> bool:
    """Install the process-wide handlers.

    Args:
        capture: Adapter that receives uncaught errors.

    Returns:
        True if installed by this call, False if already installed (no-op).
    """
    with _state_lock:
        if _state.installed:
            _logger.debug(
                {
                    "event": "exception_hooks_already_installed",
                    "message": "Exception hooks already installed, skipping",
                }
            )
            return False

        _state.capture = capture
        _state.previous_excepthook = sys.excepthook
        _state.previous_threading_hook = threading.excepthook
        sys.excepthook = _excepthook
        threading.excepthook = _threading_excepthook

    _logger.info(
        {
            "event": "exception_hooks_installed",
            "message": "Uncaught exception hooks installed",
        }
    )
    return True


def install_loop_handler(loop: asyncio.AbstractEventLoop | None = None) -> bool:
    """Install the unhandled-error handler on an event loop.

    Args:
        loop: Target loop; defaults to the running loop.

    Returns:
        True if installed by this call; False if hooks are not installed or
        this loop already has the handler.
    """
    if loop is None:
        loop = asyncio.get_running_loop()

    with _state_lock:
        if not _state.installed or loop in _state.loops:
            return False
        _state.loops[loop] = loop.get_exception_handler()
        loop.set_exception_handler(_loop_exception_handler)
    return True


def uninstall_exception_hooks() -> bool:
    """Restore the handlers that were active before installation.

    A handler replaced by someone else after installation is left alone.

    Returns:
        True if hooks were installed and are now removed.
    """
    with _state_lock:
        if not _state.installed:
            return False

        if sys.excepthook is _excepthook:
            sys.excepthook = _state.previous_excepthook or sys.__excepthook__
        if threading.excepthook is _threading_excepthook:
            threading.excepthook = _state.previous_threading_hook or threading.__excepthook__

        for loop, previous in list(_state.loops.items()):
            if not loop.is_closed() and loop.get_exception_handler() is _loop_exception_handler:
                loop.set_exception_handler(previous)
        _state.loops.clear()

        _state.capture = None
        _state.previous_excepthook = None
        _state.previous_threading_hook = None

    _logger.info(
        {
            "event": "exception_hooks_uninstalled",
            "message": "Uncaught exception hooks removed",
        }
    )
    return True
