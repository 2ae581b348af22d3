"""Unit tests for CLI commands.

Tests CLI behavior using Click's CliRunner for isolated, fast testing.
Tests use the AAA pattern (Arrange-Act-Assert) for clarity.
"""

import json
from pathlib import Path
from unittest.mock import patch

import click
import pytest
from click.testing import CliRunner

from telescope import __version__
from telescope.cli.api_client import CollectorNotRunningError
from telescope.cli.main import cli
from telescope.cli.styling import style_entry_type, style_status
from telescope.config import TelescopeConfig


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI runner for testing."""
    return CliRunner()


@pytest.fixture
def page_response() -> dict:
    return {
        "entries": [
            {
                "id": "abc123",
                "type": "exception",
                "timestamp": "2024-01-01T00:00:00Z",
                "exception": {"message": "boom", "class": "ValueError"},
            },
            {
                "id": "def456",
                "type": "request",
                "timestamp": "2024-01-01T00:00:01Z",
                "request": {"method": "GET", "path": "/users", "statusCode": 200, "duration": 1.5},
            },
        ],
        "pagination": {"currentPage": 1, "perPage": 20, "total": 2},
    }


class TestVersionAndHelp:
    """Tests for --version and help output."""

    @pytest.mark.parametrize("flag", ["--version", "-v"])
    def test_version_flag(self, runner: CliRunner, flag: str) -> None:
        """Given a version flag, prints the version."""
        # Act
        result = runner.invoke(cli, [flag])

        # Assert
        assert result.exit_code == 0
        assert f"telescope {__version__}" in result.output

    def test_no_command_shows_help(self, runner: CliRunner) -> None:
        """Without a subcommand, help with all commands is shown."""
        # Act
        result = runner.invoke(cli, [])

        # Assert
        assert result.exit_code == 0
        for command in ("serve", "entries", "config"):
            assert command in result.output
        assert "Quick Start" in result.output


class TestEntriesCommands:
    """Tests for 'telescope entries'."""

    def test_list_prints_summaries(self, runner: CliRunner, page_response: dict) -> None:
        """Entries are listed one per line with a pagination footer."""
        # Arrange
        with patch("telescope.cli.commands.entries.api_request", return_value=page_response) as mock_request:
            # Act
            result = runner.invoke(cli, ["entries", "list", "--type", "exception", "--per-page", "5"])

        # Assert
        assert result.exit_code == 0
        assert "ValueError: boom" in result.output
        assert "GET /users -> 200" in result.output
        assert "2 total" in result.output
        kwargs = mock_request.call_args.kwargs
        assert kwargs["params"] == {"type": "exception", "page": None, "perPage": 5, "sort": None}
        assert mock_request.call_args.args == ("GET", "/telescope/api/entries")

    def test_list_json(self, runner: CliRunner, page_response: dict) -> None:
        """--json prints the raw response."""
        # Arrange
        with patch("telescope.cli.commands.entries.api_request", return_value=page_response):
            # Act
            result = runner.invoke(cli, ["entries", "list", "--json"])

        # Assert
        assert json.loads(result.output) == page_response

    def test_list_empty(self, runner: CliRunner) -> None:
        """An empty page says so."""
        # Arrange
        empty = {"entries": [], "pagination": {"currentPage": 1, "perPage": 20, "total": 0}}
        with patch("telescope.cli.commands.entries.api_request", return_value=empty):
            # Act
            result = runner.invoke(cli, ["entries", "list"])

        # Assert
        assert "No entries" in result.output

    def test_list_uses_url_and_prefix(self, runner: CliRunner, page_response: dict) -> None:
        """--url and --prefix select the collector."""
        # Arrange
        with patch("telescope.cli.commands.entries.api_request", return_value=page_response) as mock_request:
            # Act
            runner.invoke(cli, ["entries", "list", "--url", "http://debug:9000", "--prefix", "/debug"])

        # Assert
        assert mock_request.call_args.args[1] == "/debug/api/entries"
        assert mock_request.call_args.kwargs["base_url"] == "http://debug:9000"

    def test_show_entry(self, runner: CliRunner, page_response: dict) -> None:
        """show prints one entry with its payload."""
        # Arrange
        entry = page_response["entries"][0]
        with patch("telescope.cli.commands.entries.api_request", return_value=entry) as mock_request:
            # Act
            result = runner.invoke(cli, ["entries", "show", "abc123"])

        # Assert
        assert result.exit_code == 0
        assert "abc123" in result.output
        assert "ValueError: boom" in result.output
        assert mock_request.call_args.args[1] == "/telescope/api/entries/abc123"

    def test_non_object_response_is_an_error(self, runner: CliRunner) -> None:
        """A response that is not a JSON object is reported, not crashed on."""
        # Arrange
        with patch("telescope.cli.commands.entries.api_request", return_value=["unexpected"]):
            # Act
            result = runner.invoke(cli, ["entries", "show", "abc123"])

        # Assert
        assert result.exit_code == 1
        assert "Unexpected response" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)

    def test_show_not_running(self, runner: CliRunner) -> None:
        """A missing collector exits non-zero with a hint."""
        # Arrange
        with patch(
            "telescope.cli.commands.entries.api_request",
            side_effect=CollectorNotRunningError("http://127.0.0.1:8000"),
        ):
            # Act
            result = runner.invoke(cli, ["entries", "show", "abc123"])

        # Assert
        assert result.exit_code != 0
        assert "telescope serve" in result.output


class TestConfigCommands:
    """Tests for 'telescope config'."""

    def test_show_defaults(self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without a config file the defaults are shown."""
        # Arrange
        monkeypatch.delenv("TELESCOPE_CONFIG", raising=False)

        # Act
        result = runner.invoke(cli, ["config", "show"])

        # Assert
        assert result.exit_code == 0
        assert "route_prefix: /telescope" in result.output
        assert "backend: memory" in result.output

    def test_show_file_as_json(self, runner: CliRunner, tmp_path: Path) -> None:
        """--config loads the given file."""
        # Arrange
        path = tmp_path / "telescope.json"
        TelescopeConfig(route_prefix="/debug").save_to_file(path)

        # Act
        result = runner.invoke(cli, ["config", "show", "--config", str(path), "--json"])

        # Assert
        assert result.exit_code == 0
        assert json.loads(result.output)["route_prefix"] == "/debug"

    def test_show_invalid_file(self, runner: CliRunner, tmp_path: Path) -> None:
        """An invalid file is reported as a CLI error."""
        # Arrange
        path = tmp_path / "telescope.json"
        path.write_text("{broken")

        # Act
        result = runner.invoke(cli, ["config", "show", "--config", str(path)])

        # Assert
        assert result.exit_code != 0
        assert "Invalid JSON" in result.output

    def test_path_from_env(self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """config path reports $TELESCOPE_CONFIG and whether it exists."""
        # Arrange
        monkeypatch.setenv("TELESCOPE_CONFIG", str(tmp_path / "missing.json"))

        # Act
        result = runner.invoke(cli, ["config", "path"])

        # Assert
        assert str(tmp_path / "missing.json") in result.output
        assert "not found" in result.output


class TestServeCommand:
    """Tests for 'telescope serve'."""

    def test_runs_uvicorn_with_collector_app(self, runner: CliRunner, tmp_path: Path) -> None:
        """serve builds the app from the config and hands it to uvicorn."""
        # Arrange
        path = tmp_path / "telescope.json"
        TelescopeConfig(route_prefix="/debug").save_to_file(path)

        with patch("uvicorn.run") as mock_run:
            # Act
            result = runner.invoke(cli, ["serve", "--config", str(path), "--port", "9100"])

        # Assert
        assert result.exit_code == 0, result.output
        app = mock_run.call_args.args[0]
        assert app.state.telescope.config.route_prefix == "/debug"
        assert mock_run.call_args.kwargs["port"] == 9100
        assert mock_run.call_args.kwargs["host"] == "127.0.0.1"
        assert "/debug" in result.output

    def test_missing_config_file_fails(self, runner: CliRunner, tmp_path: Path) -> None:
        """A missing config file is an error before anything starts."""
        # Arrange
        with patch("uvicorn.run") as mock_run:
            # Act
            result = runner.invoke(cli, ["serve", "--config", str(tmp_path / "none.json")])

        # Assert
        assert result.exit_code != 0
        mock_run.assert_not_called()


class TestStyling:
    """Tests for entry-type and status styling."""

    def test_entry_type_padded(self) -> None:
        """Entry types are padded to a fixed column."""
        # Act
        styled = click.unstyle(style_entry_type("query"))

        # Assert
        assert styled == "query    "

    @pytest.mark.parametrize(
        ("status", "color_code"),
        [(200, "\x1b[32m"), (404, "\x1b[33m"), (503, "\x1b[31m")],
    )
    def test_status_colored_by_class(self, status: int, color_code: str) -> None:
        """2xx green, 4xx yellow, 5xx red."""
        # Act
        styled = style_status(status)

        # Assert
        assert styled.startswith(color_code)
        assert click.unstyle(styled) == str(status)

    def test_non_numeric_status_unstyled(self) -> None:
        """Missing or odd statuses are shown as-is."""
        # Act & Assert
        assert style_status(None) == "None"
