"""CLI integration tests for the show command."""

from __future__ import annotations

import json
from typing import Any

import pytest
import responses
from click.testing import CliRunner

from moment_map.cli import EXIT_NOT_FOUND, EXIT_USAGE, main
from tests.conftest import add_backend_routes


class TestShow:
    """Tests for moment-map show."""

    @pytest.mark.ai_generated
    def test_show_outputs_dock_and_locations(
        self,
        cli_runner: CliRunner,
        cli_env: dict[str, str],
        mock_backend: responses.RequestsMock,
    ) -> None:
        """Verify the summary lists stats and map locations."""
        result = cli_runner.invoke(main, ["show", "col-1"], env=cli_env)

        assert result.exit_code == 0, f"Command failed: {result.output}"
        assert "Europe Trip" in result.output
        assert "Current: Eiffel Tower" in result.output
        assert "Memories:" in result.output
        assert "Paris, France (48.8566, 2.3522)" in result.output
        assert "London, United Kingdom" in result.output
        assert "1 moments have locations without known coordinates" in result.output

    @pytest.mark.ai_generated
    def test_show_verbose_lists_moments(
        self,
        cli_runner: CliRunner,
        cli_env: dict[str, str],
        mock_backend: responses.RequestsMock,
    ) -> None:
        result = cli_runner.invoke(main, ["-v", "show", "col-1"], env=cli_env)

        assert result.exit_code == 0, f"Command failed: {result.output}"
        assert "- 2024-01-05 Eiffel Tower" in result.output

    @pytest.mark.ai_generated
    def test_show_json_output(
        self,
        cli_runner: CliRunner,
        cli_env: dict[str, str],
        mock_backend: responses.RequestsMock,
    ) -> None:
        """Verify --json produces the page summary as JSON."""
        # --json is a global option, must come before subcommand
        result = cli_runner.invoke(main, ["--json", "show", "col-1"], env=cli_env)

        assert result.exit_code == 0, f"Command failed: {result.output}"
        try:
            data = json.loads(result.output)
        except json.JSONDecodeError as e:
            pytest.fail(f"Invalid JSON output: {e}\nOutput: {result.output}")

        assert data["status"] == "success"
        assert data["view"] == "map"
        assert data["moments_fetched"] == 5
        assert data["moments_located"] == 4
        assert data["stats"]["total_countries"] == 3
        assert [loc["id"] for loc in data["locations"]] == [
            "Paris, France",
            "London, United Kingdom",
        ]
        assert data["locations"][0]["moments"] == ["Eiffel Tower", "Anniversary dinner"]

    @pytest.mark.ai_generated
    def test_show_empty_collection(
        self,
        cli_runner: CliRunner,
        cli_env: dict[str, str],
        collection_row: dict[str, Any],
        user_row: dict[str, Any],
    ) -> None:
        with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
            add_backend_routes(rsps, collection_row, user_row, [])
            result = cli_runner.invoke(main, ["show", "col-1"], env=cli_env)

        assert result.exit_code == 0, f"Command failed: {result.output}"
        assert "No moments with location data yet." in result.output

    @pytest.mark.ai_generated
    def test_show_missing_collection(
        self,
        cli_runner: CliRunner,
        cli_env: dict[str, str],
        mock_backend: responses.RequestsMock,
    ) -> None:
        result = cli_runner.invoke(main, ["show", "missing"], env=cli_env)

        assert result.exit_code == EXIT_NOT_FOUND
        assert "Collection not found: missing" in result.output

    @pytest.mark.ai_generated
    def test_show_missing_collection_json(
        self,
        cli_runner: CliRunner,
        cli_env: dict[str, str],
        mock_backend: responses.RequestsMock,
    ) -> None:
        result = cli_runner.invoke(main, ["--json", "show", "missing"], env=cli_env)

        assert result.exit_code == EXIT_NOT_FOUND
        data = json.loads(result.output)
        assert data["status"] == "error"
        assert data["error"] == "Collection not found: missing"

    @pytest.mark.ai_generated
    def test_show_without_backend_settings(
        self,
        cli_runner: CliRunner,
        cli_env: dict[str, str],
    ) -> None:
        """Verify missing backend settings are a usage error."""
        env: dict[str, str | None] = {
            **cli_env,
            "SUPABASE_URL": None,
            "NEXT_PUBLIC_SUPABASE_URL": None,
        }

        result = cli_runner.invoke(main, ["show", "col-1"], env=env)

        assert result.exit_code == EXIT_USAGE
        assert "Supabase URL is required" in result.output
