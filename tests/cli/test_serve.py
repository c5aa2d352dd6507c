"""CLI integration tests for the serve command and map --serve."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import responses
from click.testing import CliRunner

from moment_map.cli import main
from moment_map.views import server


@pytest.fixture
def started(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    """Record start_server calls instead of binding a socket."""
    calls: list[dict[str, Any]] = []

    def fake_start_server(client: Any, map_config: Any, **kwargs: Any) -> None:
        calls.append(kwargs)

    monkeypatch.setattr(server, "start_server", fake_start_server)
    return calls


class TestServe:
    """Tests for moment-map serve."""

    @pytest.mark.ai_generated
    def test_serve_uses_config_defaults(
        self, cli_runner: CliRunner, cli_env: dict[str, str], started: list[dict[str, Any]]
    ) -> None:
        result = cli_runner.invoke(main, ["serve", "--no-open"], env=cli_env)

        assert result.exit_code == 0, f"Command failed: {result.output}"
        assert started == [{"host": "127.0.0.1", "port": 8080, "open_browser": False}]

    @pytest.mark.ai_generated
    def test_serve_port_zero_is_passed_through(
        self, cli_runner: CliRunner, cli_env: dict[str, str], started: list[dict[str, Any]]
    ) -> None:
        """Verify --port 0 (any free port) is not mistaken for "unset"."""
        result = cli_runner.invoke(main, ["serve", "--port", "0", "--no-open"], env=cli_env)

        assert result.exit_code == 0, f"Command failed: {result.output}"
        assert started[0]["port"] == 0

    @pytest.mark.ai_generated
    def test_serve_port_from_config_file(
        self,
        cli_runner: CliRunner,
        cli_env: dict[str, str],
        started: list[dict[str, Any]],
        tmp_path: Path,
    ) -> None:
        config_file = tmp_path / "config.toml"
        config_file.write_text('[server]\nhost = "0.0.0.0"\nport = 9000\n')

        result = cli_runner.invoke(
            main, ["--config", str(config_file), "serve", "--no-open"], env=cli_env
        )

        assert result.exit_code == 0, f"Command failed: {result.output}"
        assert started == [{"host": "0.0.0.0", "port": 9000, "open_browser": False}]

    @pytest.mark.ai_generated
    def test_map_serve_port_zero(
        self,
        cli_runner: CliRunner,
        cli_env: dict[str, str],
        mock_backend: responses.RequestsMock,
        started: list[dict[str, Any]],
    ) -> None:
        result = cli_runner.invoke(
            main, ["map", "col-1", "--serve", "--port", "0"], env=cli_env
        )

        assert result.exit_code == 0, f"Command failed: {result.output}"
        assert started[0]["port"] == 0
        assert started[0]["open_browser"] is False

    @pytest.mark.ai_generated
    def test_map_help_names_stdout_default(
        self, cli_runner: CliRunner, cli_env: dict[str, str]
    ) -> None:
        result = cli_runner.invoke(main, ["map", "--help"], env=cli_env)

        assert result.exit_code == 0
        assert "default: stdout)" in result.output
        assert "map.html" not in result.output
