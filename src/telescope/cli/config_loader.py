"""Config resolution shared by CLI commands."""

from __future__ import annotations

__all__ = ["load_config", "resolve_config_path"]

import os
from pathlib import Path

import click

from telescope.config import TelescopeConfig
from telescope.constants import CONFIG_PATH_VAR
from telescope.exceptions import ConfigurationError


def resolve_config_path(config_path: Path | None) -> Path | None:
    """Explicit path wins, then ``$TELESCOPE_CONFIG``, else None (defaults)."""
    if config_path is not None:
        return config_path
    env_path = os.environ.get(CONFIG_PATH_VAR)
    return Path(env_path).expanduser() if env_path else None


def load_config(config_path: Path | None) -> TelescopeConfig:
    """Load a config file or fall back to defaults.

    Raises:
        click.ClickException: If the file is missing or invalid.
    """
    path = resolve_config_path(config_path)
    if path is None:
        return TelescopeConfig()
    try:
        return TelescopeConfig.load_from_file(path)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e
