"""CLI output styling helpers.

Section headers and labels are cyan bold, empty states dim. Entry types
and HTTP statuses get fixed colors so list output can be scanned quickly.
"""

from __future__ import annotations

__all__ = [
    "style_dim",
    "style_entry_type",
    "style_header",
    "style_label",
    "style_status",
]

import click

_TYPE_COLORS = {
    "request": "green",
    "exception": "red",
    "query": "blue",
    "custom": "magenta",
}


def style_header(title: str) -> str:
    """Render "--- Title ---" in cyan bold."""
    return click.style(f"--- {title} ---", fg="cyan", bold=True)


def style_label(label: str) -> str:
    return click.style(f"{label}:", fg="cyan", bold=True)


def style_dim(message: str) -> str:
    return click.style(message, dim=True)


def style_entry_type(entry_type: str, width: int = 9) -> str:
    """Pad an entry type to a column and color it by type."""
    return click.style(f"{entry_type:<{width}}", fg=_TYPE_COLORS.get(entry_type))


def style_status(status_code: object) -> str:
    """Color an HTTP status: red for 5xx, yellow for 4xx, green otherwise."""
    try:
        code = int(status_code)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return str(status_code)
    color = "red" if code >= 500 else "yellow" if code >= 400 else "green"
    return click.style(str(code), fg=color)
