"""Telescope: embedded observability collector for running applications.

Captures requests, exceptions and data-store queries as normalized entries,
persists them through a pluggable storage backend, and streams new entries
to connected dashboard sessions.

Usage:
    from telescope import Telescope, TelescopeConfig

    telescope = Telescope(TelescopeConfig(enable_query_logging=True))
    app = FastAPI()
    telescope.init_app(app)
"""

from __future__ import annotations

__all__ = [
    "Telescope",
    "TelescopeConfig",
    "__version__",
]

__version__ = "0.3.0"

from telescope.config import TelescopeConfig
from telescope.core import Telescope
