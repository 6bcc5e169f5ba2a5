"""CLI integration tests for the routes command."""

from __future__ import annotations

import json
from pathlib import Path

import responses

from plotted.cli import main
from plotted.services.strava import API_BASE_URL

SINGLE_POINT = "_p~iF~ps|U"


def _mock_strava() -> None:
    responses.add(
        responses.GET, f"{API_BASE_URL}/athlete/activities", json=[{"id": 1}, {"id": 2}]
    )
    responses.add(responses.GET, f"{API_BASE_URL}/athlete/activities", json=[])
    responses.add(
        responses.GET,
        f"{API_BASE_URL}/activities/1",
        json={"id": 1, "map": {"polyline": SINGLE_POINT}},
    )
    responses.add(
        responses.GET,
        f"{API_BASE_URL}/activities/2",
        json={"id": 2, "map": {"polyline": ""}},
    )


class TestRoutesCommand:
    """Tests for plotted routes."""

    @responses.activate
    def test_routes_summary(self, cli_runner, cli_data_dir: Path, cli_env: dict[str, str]) -> None:
        """Verify a summary is printed and the route is cached."""
        _mock_strava()

        result = cli_runner.invoke(
            main,
            ["routes", "--after", "01/01/2019", "--before", "31/01/2019", "--token", "tok"],
            env=cli_env,
        )

        assert result.exit_code == 0, f"Command failed: {result.output}"
        assert "1 routes from 2 activities" in result.output
        assert (cli_data_dir / "cache" / "1.cache").read_bytes() == SINGLE_POINT.encode()
        assert not (cli_data_dir / "cache" / "2.cache").exists()

    @responses.activate
    def test_routes_json_output(self, cli_runner, cli_env: dict[str, str]) -> None:
        """Verify --json produces the aggregation result."""
        _mock_strava()

        result = cli_runner.invoke(
            main,
            ["--json", "routes", "--after", "01/01/2019", "--before", "31/01/2019"],
            env={**cli_env, "STRAVA_ACCESS_TOKEN": "tok"},
        )

        assert result.exit_code == 0, f"Command failed: {result.output}"
        data = json.loads(result.output)
        assert data["status"] == "success"
        assert data["routes"] == [{"activity_id": 1, "coords": [[38.5, -120.2]]}]
        assert data["activities_listed"] == 2
        assert data["without_route"] == 1

    @responses.activate
    def test_routes_writes_map(
        self, cli_runner, tmp_path: Path, cli_env: dict[str, str]
    ) -> None:
        """Verify --output writes the map page."""
        _mock_strava()
        output = tmp_path / "map.html"

        result = cli_runner.invoke(
            main,
            [
                "routes",
                "--after",
                "01/01/2019",
                "--before",
                "31/01/2019",
                "--token",
                "tok",
                "-o",
                str(output),
            ],
            env=cli_env,
        )

        assert result.exit_code == 0, f"Command failed: {result.output}"
        assert "[[[38.5, -120.2]]]" in output.read_text()

    def test_routes_invalid_date(self, cli_runner, cli_env: dict[str, str]) -> None:
        """Verify a malformed date exits with a usage error."""
        result = cli_runner.invoke(
            main,
            ["routes", "--after", "2019-01-01", "--before", "31/01/2019", "--token", "tok"],
            env=cli_env,
        )

        assert result.exit_code == 2
        assert "Invalid after" in result.output

    def test_routes_requires_token(self, cli_runner, cli_env: dict[str, str]) -> None:
        """Verify running without any access token fails cleanly."""
        result = cli_runner.invoke(
            main,
            ["routes", "--after", "01/01/2019", "--before", "31/01/2019"],
            env=cli_env,
        )

        assert result.exit_code == 2
        assert "access token" in result.output

    @responses.activate
    def test_routes_progress_follows_verbosity(self, cli_runner, cli_env: dict[str, str]) -> None:
        """Verify per-activity progress needs -vv and is silenced by -q."""
        args = ["routes", "--after", "01/01/2019", "--before", "31/01/2019", "--token", "tok"]

        responses.reset()
        _mock_strava()
        plain = cli_runner.invoke(main, args, env=cli_env)
        responses.reset()
        _mock_strava()
        chatty = cli_runner.invoke(main, ["-vv", *args], env=cli_env)
        responses.reset()
        _mock_strava()
        quiet = cli_runner.invoke(main, ["-q", "-vv", *args], env=cli_env)

        assert plain.exit_code == chatty.exit_code == quiet.exit_code == 0
        assert "[1/2] 1: 1 points" not in plain.output
        assert "[1/2] 1: 1 points" in chatty.output
        assert "[2/2] 2: no route" in chatty.output
        assert "[1/2] 1: 1 points" not in quiet.output
        assert "routes from" not in quiet.output
