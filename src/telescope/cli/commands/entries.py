"""Entries command group for the telescope CLI.

Reads entries from a running collector over its HTTP API.
"""

from __future__ import annotations

__all__ = ["entries"]

import json
import os
from typing import Any

import click

from telescope.constants import DEFAULT_COLLECTOR_URL, DEFAULT_ROUTE_PREFIX

from ..api_client import CollectorAPIError, api_request
from ..styling import style_dim, style_entry_type, style_header, style_label, style_status

URL_VAR = "TELESCOPE_URL"

_url_option = click.option(
    "--url",
    default=lambda: os.environ.get(URL_VAR, DEFAULT_COLLECTOR_URL),
    show_default=DEFAULT_COLLECTOR_URL,
    help=f"Collector base URL (or ${URL_VAR})",
)
_prefix_option = click.option(
    "--prefix",
    default=DEFAULT_ROUTE_PREFIX,
    show_default=True,
    help="Collector route prefix",
)


def _summary(entry: dict[str, Any]) -> str:
    """One-line description of a wire entry."""
    entry_type = entry.get("type")
    if entry_type == "request":
        data = entry.get("request", {})
        status = style_status(data.get("statusCode"))
        return f"{data.get('method')} {data.get('path')} -> {status} ({data.get('duration')}ms)"
    if entry_type == "exception":
        data = entry.get("exception", {})
        return f"{data.get('class')}: {data.get('message')}"
    if entry_type == "query":
        data = entry.get("data", {})
        suffix = " [error]" if data.get("error") else ""
        return f"{data.get('collection')}.{data.get('method')} ({data.get('duration')}ms){suffix}"
    if entry_type == "custom":
        data = entry.get("custom", {})
        return str(data.get("name"))
    return ""


def _as_object(result: Any) -> dict[str, Any]:
    if not isinstance(result, dict):
        raise CollectorAPIError(f"Unexpected response: expected a JSON object, got {type(result).__name__}")
    return result


@click.group()
def entries() -> None:
    """Browse entries stored by a running collector."""


@entries.command("list")
@click.option("--type", "entry_type", help="Entry type (request, exception, query, custom, all)")
@click.option("--page", type=int, help="1-based page number")
@click.option("--per-page", type=int, help="Entries per page")
@click.option("--sort", help="Sort field, '-' prefix for descending (e.g. -timestamp)")
@_url_option
@_prefix_option
@click.option("--json", "as_json", is_flag=True, help="Output raw JSON")
def entries_list(
    entry_type: str | None,
    page: int | None,
    per_page: int | None,
    sort: str | None,
    url: str,
    prefix: str,
    as_json: bool,
) -> None:
    """List one page of entries, newest first."""
    result = api_request(
        "GET",
        f"{prefix}/api/entries",
        base_url=url,
        params={"type": entry_type, "page": page, "perPage": per_page, "sort": sort},
    )

    if as_json:
        click.echo(json.dumps(result, indent=2))
        return

    body = _as_object(result)
    items = body.get("entries", [])
    pagination = body.get("pagination", {})

    if not items:
        click.echo(style_dim("No entries."))
        return

    for item in items:
        entry_type = style_entry_type(item.get("type", ""))
        click.echo(f"{item.get('timestamp')}  {entry_type}  {item.get('id')}  {_summary(item)}")

    click.echo()
    click.echo(
        style_label("Page")
        + f" {pagination.get('currentPage')} ({pagination.get('perPage')} per page, {pagination.get('total')} total)"
    )


@entries.command("show")
@click.argument("entry_id")
@_url_option
@_prefix_option
@click.option("--json", "as_json", is_flag=True, help="Output raw JSON")
def entries_show(entry_id: str, url: str, prefix: str, as_json: bool) -> None:
    """Show one entry by id."""
    result = api_request("GET", f"{prefix}/api/entries/{entry_id}", base_url=url)

    if as_json:
        click.echo(json.dumps(result, indent=2))
        return

    entry = _as_object(result)
    click.echo(style_header(f"{entry.get('type', 'entry')} {entry.get('id')}"))
    click.echo(f"  timestamp: {entry.get('timestamp')}")
    click.echo(f"  summary: {_summary(entry)}")
    for key, value in entry.items():
        if key in ("id", "type", "timestamp"):
            continue
        click.echo(style_label(f"  {key}"))
        click.echo(json.dumps(value, indent=2))
