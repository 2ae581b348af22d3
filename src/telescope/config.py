"""Collector configuration.

Defines configuration models for capture, routing, storage and logging.
Config can be built in code or loaded from a JSON file.

Example usage:
    # In code
    config = TelescopeConfig(enable_query_logging=True, route_prefix="/debug")

    # Load from config file
    config = TelescopeConfig.load_from_file(config_path)

    # Save configuration
    config.save_to_file(config_path)
"""

from __future__ import annotations

__all__ = [
    "StorageConfig",
    "TelescopeConfig",
    "get_default_environment",
    "load_validated_json",
]

import json
import os
from pathlib import Path
from typing import Literal, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator

from telescope.constants import (
    CONTEXT_LINES_AFTER,
    CONTEXT_LINES_BEFORE,
    DEFAULT_ENVIRONMENT,
    DEFAULT_PER_PAGE,
    DEFAULT_ROUTE_PREFIX,
    ENVIRONMENT_VAR,
    MAX_PER_PAGE,
    RESULT_PREVIEW_CHARS,
)
from telescope.exceptions import ConfigurationError
from telescope.models.entries import EntryType

T = TypeVar("T", bound=BaseModel)


def get_default_environment() -> str:
    """Runtime environment from ``TELESCOPE_ENV``, falling back to development."""
    return os.environ.get(ENVIRONMENT_VAR) or DEFAULT_ENVIRONMENT


def _default_watched_entries() -> list[EntryType]:
    return [EntryType.REQUEST, EntryType.EXCEPTION, EntryType.QUERY]


# =============================================================================
# Storage Configuration
# =============================================================================


class StorageConfig(BaseModel):
    """Storage backend selection.

    Attributes:
        backend: "memory" (default, process-local) or "jsonl" (append-only file).
        path: JSONL file path (required for the jsonl backend).
        max_entries: Optional bound on retained entries (oldest evicted, memory backend).
    """

    backend: Literal["memory", "jsonl"] = "memory"
    path: str | None = None
    max_entries: int | None = Field(default=None, ge=1)


# =============================================================================
# Main Configuration
# =============================================================================


class TelescopeConfig(BaseModel):
    """Configuration for a Telescope collector.

    Attributes:
        watched_entries: Entry types that are captured and distributed.
        enable_query_logging: Turn on the query adapter (also needs "query" watched).
        route_prefix: Prefix for the dashboard API and live channel.
        enable_file_reading: Attach surrounding source lines to exception entries.
        file_reading_environments: Environments in which file reading is allowed.
        environment: Current runtime environment (default from TELESCOPE_ENV).
        cors_origins: Origins allowed to call the API cross-origin (empty = no CORS).
        storage: Storage backend settings.
        default_per_page: Page size when a client does not specify one.
        result_preview_chars: Maximum characters kept in query result previews.
        context_lines_before: Source lines read above the faulting line.
        context_lines_after: Source lines read below the faulting line.
        project_root: Path replaced by a placeholder in captured file paths (default: cwd).
        log_level: Level for the collector's own system logger.
        log_dir: Directory for system.jsonl; None disables file logging.
    """

    watched_entries: list[EntryType] = Field(default_factory=_default_watched_entries)
    enable_query_logging: bool = False
    route_prefix: str = DEFAULT_ROUTE_PREFIX
    enable_file_reading: bool = False
    file_reading_environments: list[str] = Field(default_factory=lambda: [DEFAULT_ENVIRONMENT])
    environment: str = Field(default_factory=get_default_environment)
    cors_origins: list[str] = Field(default_factory=list)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    default_per_page: int = Field(default=DEFAULT_PER_PAGE, ge=1, le=MAX_PER_PAGE)
    result_preview_chars: int = Field(default=RESULT_PREVIEW_CHARS, ge=1)
    context_lines_before: int = Field(default=CONTEXT_LINES_BEFORE, ge=0)
    context_lines_after: int = Field(default=CONTEXT_LINES_AFTER, ge=0)
    project_root: str | None = None
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_dir: str | None = None

    @field_validator("route_prefix")
    @classmethod
    def _normalize_route_prefix(cls, value: str) -> str:
        """Ensure a single leading slash and no trailing slash ("telescope/" -> "/telescope")."""
        stripped = value.strip().strip("/")
        if not stripped:
            raise ValueError("route_prefix must not be empty")
        return f"/{stripped}"

    def is_watched(self, entry_type: EntryType | str) -> bool:
        """Whether entries of this type are captured at all."""
        return entry_type in self.watched_entries

    def should_read_files(self) -> bool:
        """Whether exception capture may read source files in this environment."""
        return self.enable_file_reading and self.environment in self.file_reading_environments

    def resolved_project_root(self) -> str:
        return self.project_root or os.getcwd()

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to a JSON file, creating parent directories.

        Args:
            config_path: Path where the config JSON file should be saved.
        """
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)

    @classmethod
    def load_from_file(cls, config_path: Path) -> "TelescopeConfig":
        """Load configuration from a JSON file.

        Args:
            config_path: Path to the config JSON file.

        Returns:
            TelescopeConfig instance.

        Raises:
            ConfigurationError: If the file is missing, not JSON, or fails validation.
        """
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found at {config_path}.")
        return load_validated_json(config_path, cls, file_type="config")


def load_validated_json(
    file_path: Path,
    model_class: type[T],
    file_type: str = "file",
) -> T:
    """Load a JSON file and validate it against a Pydantic model.

    Args:
        file_path: Path to JSON file.
        model_class: Pydantic model class to validate against.
        file_type: Description for error messages.

    Returns:
        Validated model instance.

    Raises:
        ConfigurationError: If JSON is invalid or validation fails.
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {file_type} file {file_path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Could not read {file_type} file {file_path}: {e}") from e

    try:
        return model_class.model_validate(data)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            errors.append(f"  - {loc}: {error['msg']}")
        raise ConfigurationError(f"Invalid {file_type} file {file_path}:\n" + "\n".join(errors)) from e
