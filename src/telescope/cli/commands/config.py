"""Config command group for the telescope CLI."""

from __future__ import annotations

__all__ = ["config"]

import json
from pathlib import Path

import click

from telescope.constants import CONFIG_PATH_VAR

from ..config_loader import load_config, resolve_config_path
from ..styling import style_dim, style_header

_config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help=f"Config JSON file (default: ${CONFIG_PATH_VAR})",
)


@click.group()
def config() -> None:
    """Configuration commands."""


@config.command("show")
@_config_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def config_show(config_path: Path | None, as_json: bool) -> None:
    """Display the effective configuration.

    Without a config file, built-in defaults are shown.
    """
    loaded = load_config(config_path)

    if as_json:
        click.echo(json.dumps(loaded.model_dump(mode="json"), indent=2))
        return

    click.echo("\ntelescope configuration:\n")

    click.echo(style_header("Capture"))
    click.echo(f"  watched_entries: {', '.join(t.value for t in loaded.watched_entries)}")
    click.echo(f"  enable_query_logging: {loaded.enable_query_logging}")
    click.echo(f"  enable_file_reading: {loaded.enable_file_reading}")
    click.echo(f"  environment: {loaded.environment}")
    click.echo(f"  file_reading_environments: {', '.join(loaded.file_reading_environments)}")
    click.echo()

    click.echo(style_header("API"))
    click.echo(f"  route_prefix: {loaded.route_prefix}")
    click.echo(f"  default_per_page: {loaded.default_per_page}")
    if loaded.cors_origins:
        click.echo(f"  cors_origins: {', '.join(loaded.cors_origins)}")
    else:
        click.echo("  cors_origins: " + style_dim("(disabled)"))
    click.echo()

    click.echo(style_header("Storage"))
    click.echo(f"  backend: {loaded.storage.backend}")
    if loaded.storage.path:
        click.echo(f"  path: {loaded.storage.path}")
    if loaded.storage.max_entries:
        click.echo(f"  max_entries: {loaded.storage.max_entries}")
    click.echo()

    click.echo(style_header("Logging"))
    click.echo(f"  log_level: {loaded.log_level}")
    click.echo(f"  log_dir: {loaded.log_dir or style_dim('(console only)')}")


@config.command("path")
@_config_option
def config_path_cmd(config_path: Path | None) -> None:
    """Show which config file would be used."""
    path = resolve_config_path(config_path)
    if path is None:
        click.echo(style_dim(f"No config file (set ${CONFIG_PATH_VAR} or pass --config); using defaults"))
        return
    status = "" if path.exists() else style_dim(" (not found)")
    click.echo(f"{path}{status}")
