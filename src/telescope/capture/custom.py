"""Application-defined entries (``telescope.record("cache_miss", {...})``)."""

from __future__ import annotations

__all__ = ["CustomCapture"]

import logging
from typing import Any

from telescope.capture.base import CaptureAdapter
from telescope.constants import APP_NAME
from telescope.context import get_request_id
from telescope.models.entries import CustomData, CustomEntry, EntryType
from telescope.telemetry.system_logger import log_exception_event

_logger = logging.getLogger(f"{APP_NAME}.system.capture.custom")


class CustomCapture(CaptureAdapter):
    entry_type = EntryType.CUSTOM

    def build_entry(
        self,
        name: str,
        content: dict[str, Any] | None = None,
        request_id: str | None = None,
    ) -> CustomEntry:
        return CustomEntry(
            custom=CustomData(
                name=name,
                content=content or {},
                request_id=request_id if request_id is not None else get_request_id(),
            )
        )

    def record(self, name: str, content: dict[str, Any] | None = None, request_id: str | None = None) -> None:
        """Store a custom entry. Inert unless ``custom`` is watched; never raises."""
        if not self.enabled:
            return
        try:
            entry = self.build_entry(name, content, request_id=request_id)
        except Exception as e:
            log_exception_event(
                _logger,
                "custom_capture_failed",
                "Failed to build custom entry",
                e,
                level=logging.WARNING,
                name=name,
            )
            return
        self.submit(entry)
