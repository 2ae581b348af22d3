"""API schemas (Pydantic models) for response documentation.

Entry and page payloads reuse the models in telescope.models.
"""

from __future__ import annotations

from telescope.api.schemas.config import ConfigResponse
from telescope.api.schemas.errors import ErrorDetail, ErrorResponse

__all__ = [
    "ConfigResponse",
    "ErrorDetail",
    "ErrorResponse",
]
