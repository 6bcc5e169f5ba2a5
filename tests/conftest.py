"""Shared pytest fixtures for plotted tests."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from click.testing import CliRunner

from plotted.services import polyline
from plotted.services.cache import PolylineCache

if TYPE_CHECKING:
    from collections.abc import Generator

# Encodes [(38.5, -120.2), (40.7, -120.95), (43.252, -126.453)]
SAMPLE_ROUTE = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"


@pytest.fixture(autouse=True)
def _reset_plotted_logging() -> Generator[None, None, None]:
    """Drop handlers installed by setup_logging between tests."""
    yield
    for name in ("plotted", "stravalib", "urllib3"):
        log = logging.getLogger(name)
        for handler in list(log.handlers):
            if handler.get_name() in ("plotted-console", "plotted-file"):
                handler.close()
                log.removeHandler(handler)


@pytest.fixture
def temp_data_dir(tmp_path: Path) -> Path:
    """Empty data directory."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def cache(temp_data_dir: Path) -> PolylineCache:
    """Polyline cache inside the temporary data directory."""
    return PolylineCache(temp_data_dir / "cache")


@pytest.fixture
def sample_coords() -> list[tuple[float, float]]:
    return polyline.decode(SAMPLE_ROUTE)


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def cli_data_dir(tmp_path: Path) -> Path:
    """Data directory used by CLI tests."""
    data_dir = tmp_path / "cli-data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def cli_env(tmp_path: Path, cli_data_dir: Path) -> dict[str, str]:
    """Environment isolating CLI runs from the user's config."""
    return {
        "PLOTTED_CONFIG": str(tmp_path / "missing-config.toml"),
        "PLOTTED_DATA_DIR": str(cli_data_dir),
        "STRAVA_CLIENT_ID": "",
        "STRAVA_CLIENT_SECRET": "",
        "STRAVA_ACCESS_TOKEN": "",
        "MAPBOX_TOKEN": "",
        "PLOTTED_CACHE_DIR": "",
    }
