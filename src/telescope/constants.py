"""Application-wide constants for telescope.

Constants that define collector behavior.
For user-configurable settings per deployment, see config.py.
"""

__all__ = [
    # Application identity
    "APP_NAME",
    "ENVIRONMENT_VAR",
    "CONFIG_PATH_VAR",
    "DEFAULT_ENVIRONMENT",
    # Routing
    "DEFAULT_ROUTE_PREFIX",
    "CONFIG_ROUTE",
    "REQUEST_ID_HEADER",
    # Pagination
    "DEFAULT_PAGE",
    "DEFAULT_PER_PAGE",
    "MAX_PER_PAGE",
    "DEFAULT_SORT",
    "SORTABLE_FIELDS",
    # Capture
    "PROJECT_ROOT_PLACEHOLDER",
    "RESULT_PREVIEW_CHARS",
    "CONTEXT_LINES_BEFORE",
    "CONTEXT_LINES_AFTER",
    "UNKNOWN_ERROR_CLASS",
    # Live distribution
    "SESSION_QUEUE_SIZE",
    "SSE_KEEPALIVE_SECONDS",
    # HTTP client
    "DEFAULT_HTTP_TIMEOUT_SECONDS",
    "DEFAULT_COLLECTOR_URL",
]

APP_NAME = "telescope"

# Environment variable naming the runtime environment (development, production, ...)
ENVIRONMENT_VAR = "TELESCOPE_ENV"
CONFIG_PATH_VAR = "TELESCOPE_CONFIG"
DEFAULT_ENVIRONMENT = "development"

# =============================================================================
# Routing
# =============================================================================

DEFAULT_ROUTE_PREFIX = "/telescope"
CONFIG_ROUTE = "/config"
REQUEST_ID_HEADER = "X-Request-ID"

# =============================================================================
# Pagination
# =============================================================================

DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 500

# "-" prefix = descending
DEFAULT_SORT = "-timestamp"
SORTABLE_FIELDS: frozenset[str] = frozenset({"timestamp", "type", "id"})

# =============================================================================
# Capture
# =============================================================================

PROJECT_ROOT_PLACEHOLDER = "[PROJECT_ROOT]"

# Query result previews are cut to this many characters
RESULT_PREVIEW_CHARS = 200

# Source window around the faulting line: 2 above, 2 below (plus the line itself)
CONTEXT_LINES_BEFORE = 2
CONTEXT_LINES_AFTER = 2

UNKNOWN_ERROR_CLASS = "UnknownError"

# =============================================================================
# Live distribution
# =============================================================================

# Per-session outbound queue; pushes beyond this are dropped for that session
SESSION_QUEUE_SIZE = 1000
SSE_KEEPALIVE_SECONDS = 30.0

# =============================================================================
# HTTP client (CLI)
# =============================================================================

DEFAULT_HTTP_TIMEOUT_SECONDS = 10.0
DEFAULT_COLLECTOR_URL = "http://127.0.0.1:8000"
