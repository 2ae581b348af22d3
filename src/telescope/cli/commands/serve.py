"""Serve command: run a standalone collector."""

from __future__ import annotations

__all__ = ["serve"]

from pathlib import Path

import click

from telescope.constants import CONFIG_PATH_VAR

from ..config_loader import load_config


@click.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar=CONFIG_PATH_VAR,
    help=f"Config JSON file (default: built-in defaults, or ${CONFIG_PATH_VAR})",
)
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind")
@click.option("--port", default=8000, show_default=True, type=click.IntRange(1, 65535), help="Port to bind")
def serve(config_path: Path | None, host: str, port: int) -> None:
    """Run the collector API and live channel.

    Binds to localhost unless --host is given. The collector has no
    authentication, so only expose it on trusted networks.
    """
    import uvicorn

    from telescope.api.server import create_app
    from telescope.core import Telescope

    config = load_config(config_path)
    telescope = Telescope(config)
    app = create_app(telescope)

    click.echo(f"Telescope serving on http://{host}:{port}{config.route_prefix}")
    uvicorn.run(app, host=host, port=port, log_level=config.log_level.lower())
