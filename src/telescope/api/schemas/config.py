"""Configuration API schemas."""

from __future__ import annotations

__all__ = ["ConfigResponse"]

from pydantic import Field

from telescope.models.entries import WireModel


class ConfigResponse(WireModel):
    """What the dashboard needs to find the collector's routes."""

    route_prefix: str = Field(description="Prefix of the entries API and live channel", examples=["/telescope"])
