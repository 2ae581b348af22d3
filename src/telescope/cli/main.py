"""Main CLI entry point for telescope.

Commands:
    config   - Configuration (show, path)
    entries  - Browse a running collector (list, show)
    serve    - Run a standalone collector

Subcommand help:
    telescope COMMAND -h         Show help for a specific command
"""

from __future__ import annotations

__all__ = ["cli", "main"]

import sys

import click

from telescope import __version__

from .commands.config import config
from .commands.entries import entries
from .commands.serve import serve


class ReorderedGroup(click.Group):
    """Group that appends quick-start help after the commands section."""

    def format_epilog(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        formatter.write(
            """
Quick Start:
  telescope serve --port 8000                   Run a collector with defaults
  telescope entries list --type exception       Latest captured exceptions
  telescope entries show <id> --json            One entry as JSON
"""
        )


@click.group(
    cls=ReorderedGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option("--version", "-v", is_flag=True, help="Show version")
@click.pass_context
def cli(ctx: click.Context, version: bool) -> None:
    """telescope: embedded observability collector."""
    if version:
        click.echo(f"telescope {__version__}")
        sys.exit(0)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# Register commands
cli.add_command(config)
cli.add_command(entries)
cli.add_command(serve)


def main() -> None:
    """CLI entry point."""
    cli()
