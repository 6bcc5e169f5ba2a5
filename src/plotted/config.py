"""Configuration management for plotted.

Handles loading configuration from TOML files, environment variables,
and command-line options with proper precedence.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


DEFAULT_CONFIG_PATH = Path.home() / ".config" / "plotted" / "config.toml"
LOCAL_CONFIG_NAME = ".plotted.toml"
DEFAULT_DATA_DIR = Path("./data")


@dataclass
class StravaConfig:
    """Strava API configuration."""

    client_id: str = ""
    client_secret: str = ""
    access_token: str = ""
    timeout: float = 30.0


@dataclass
class MapboxConfig:
    """Map tile configuration."""

    token: str = ""


@dataclass
class ServerConfig:
    """Local HTTP server configuration."""

    host: str = "127.0.0.1"
    port: int = 8888
    base_url: str = ""

    @property
    def public_url(self) -> str:
        """Base URL the OAuth provider redirects back to."""
        if self.base_url:
            return self.base_url.rstrip("/")
        host = "localhost" if self.host in ("127.0.0.1", "0.0.0.0", "") else self.host
        return f"http://{host}:{self.port}"


@dataclass
class DataConfig:
    """Data storage configuration."""

    directory: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)
    cache_directory: Path | None = None

    @property
    def cache_dir(self) -> Path:
        """Directory holding cached polylines."""
        return self.cache_directory or self.directory / "cache"

    @property
    def logs_dir(self) -> Path:
        return self.directory / "logs"


@dataclass
class MapConfig:
    """Map view defaults."""

    default_after: str = "30/01/2018"
    default_before: str = "30/09/2019"


@dataclass
class Config:
    """Main configuration container."""

    strava: StravaConfig = field(default_factory=StravaConfig)
    mapbox: MapboxConfig = field(default_factory=MapboxConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    data: DataConfig = field(default_factory=DataConfig)
    map: MapConfig = field(default_factory=MapConfig)
    config_path: Path | None = None


def _get_env_value(key: str, default: str = "") -> str:
    """Get environment variable value."""
    return os.environ.get(key, default)


def _find_config_path() -> Path:
    """Locate the configuration file when none was given explicitly.

    Looks at ``PLOTTED_CONFIG``, then ``.plotted.toml`` in the working
    directory, then the per-user default.
    """
    if env_config := _get_env_value("PLOTTED_CONFIG"):
        return Path(env_config)
    local = Path(LOCAL_CONFIG_NAME)
    if local.exists():
        return local
    return DEFAULT_CONFIG_PATH


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file and environment variables.

    Configuration is loaded with the following precedence (highest to lowest):
    1. Environment variables
    2. Configuration file
    3. Default values

    Missing credentials are not an error here; they surface when the Strava
    API rejects a request.

    Args:
        config_path: Path to configuration file. If None, it is looked up.

    Returns:
        Populated Config object.
    """
    config = Config()

    if config_path is None:
        config_path = _find_config_path()

    config.config_path = config_path

    if config_path.exists():
        config = _load_from_file(config_path, config)

    config = _apply_env_overrides(config)

    return config


def _load_from_file(path: Path, config: Config) -> Config:
    """Load configuration from TOML file.

    Args:
        path: Path to TOML file.
        config: Existing config to update.

    Returns:
        Updated Config object.
    """
    with open(path, "rb") as f:
        data = tomllib.load(f)

    if "strava" in data:
        strava = data["strava"]
        config.strava.client_id = str(strava.get("client_id", config.strava.client_id))
        config.strava.client_secret = strava.get("client_secret", config.strava.client_secret)
        config.strava.access_token = strava.get("access_token", config.strava.access_token)
        config.strava.timeout = float(strava.get("timeout", config.strava.timeout))

    if "mapbox" in data:
        config.mapbox.token = data["mapbox"].get("token", config.mapbox.token)

    if "server" in data:
        server = data["server"]
        config.server.host = server.get("host", config.server.host)
        config.server.port = int(server.get("port", config.server.port))
        config.server.base_url = server.get("base_url", config.server.base_url)

    if "data" in data:
        data_section = data["data"]
        if "directory" in data_section:
            config.data.directory = Path(data_section["directory"])

    if "cache" in data and "directory" in data["cache"]:
        config.data.cache_directory = Path(data["cache"]["directory"])

    if "map" in data:
        map_section = data["map"]
        config.map.default_after = map_section.get("default_after", config.map.default_after)
        config.map.default_before = map_section.get("default_before", config.map.default_before)

    return config


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to configuration.

    Args:
        config: Config to update.

    Returns:
        Updated Config object.
    """
    if client_id := _get_env_value("STRAVA_CLIENT_ID"):
        config.strava.client_id = client_id
    if client_secret := _get_env_value("STRAVA_CLIENT_SECRET"):
        config.strava.client_secret = client_secret
    if access_token := _get_env_value("STRAVA_ACCESS_TOKEN"):
        config.strava.access_token = access_token

    if mapbox_token := _get_env_value("MAPBOX_TOKEN"):
        config.mapbox.token = mapbox_token

    if data_dir := _get_env_value("PLOTTED_DATA_DIR"):
        config.data.directory = Path(data_dir)
    if cache_dir := _get_env_value("PLOTTED_CACHE_DIR"):
        config.data.cache_directory = Path(cache_dir)

    return config

