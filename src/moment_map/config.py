"""Configuration management for moment-map.

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


DEFAULT_CONFIG_PATH = Path.home() / ".config" / "moment-map" / "config.toml"
LOCAL_CONFIG_NAME = ".moment-map.toml"
DEFAULT_LOG_DIR = Path("./logs")

DEFAULT_TILE_URL = "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"
DEFAULT_ATTRIBUTION = (
    '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> contributors'
)


@dataclass
class SupabaseConfig:
    """Hosted backend configuration."""

    url: str = ""
    key: str = ""
    timeout: float = 30.0


@dataclass
class MapConfig:
    """Map rendering configuration."""

    tile_url: str = DEFAULT_TILE_URL
    attribution: str = DEFAULT_ATTRIBUTION
    min_zoom: int = 4
    max_zoom: int = 18


@dataclass
class ServerConfig:
    """Local preview server configuration."""

    host: str = "127.0.0.1"
    port: int = 8080


@dataclass
class LogConfig:
    """Log file configuration."""

    directory: Path = field(default_factory=lambda: DEFAULT_LOG_DIR)


@dataclass
class Config:
    """Main configuration container."""

    supabase: SupabaseConfig = field(default_factory=SupabaseConfig)
    map: MapConfig = field(default_factory=MapConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log: LogConfig = field(default_factory=LogConfig)
    config_path: Path | None = None


def _get_env_value(*keys: str, default: str = "") -> str:
    """Get the first non-empty environment variable among keys."""
    for key in keys:
        value = os.environ.get(key, "")
        if value:
            return value
    return default


def _find_config_path() -> Path:
    """Locate the configuration file when none is given explicitly."""
    env_config = _get_env_value("MOMENT_MAP_CONFIG")
    if env_config:
        return Path(env_config)

    local_config = Path(LOCAL_CONFIG_NAME)
    if local_config.exists():
        return local_config

    return DEFAULT_CONFIG_PATH


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file and environment variables.

    Configuration is loaded with the following precedence (highest to lowest):
    1. Environment variables
    2. Configuration file
    3. Default values

    Args:
        config_path: Path to configuration file. If None, looks at
            $MOMENT_MAP_CONFIG, then ./.moment-map.toml, then the
            user config directory.

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

    if "supabase" in data:
        sb = data["supabase"]
        config.supabase.url = sb.get("url", config.supabase.url)
        config.supabase.key = sb.get("key", config.supabase.key)
        config.supabase.timeout = float(sb.get("timeout", config.supabase.timeout))

    if "map" in data:
        map_section = data["map"]
        config.map.tile_url = map_section.get("tile_url", config.map.tile_url)
        config.map.attribution = map_section.get("attribution", config.map.attribution)
        config.map.min_zoom = int(map_section.get("min_zoom", config.map.min_zoom))
        config.map.max_zoom = int(map_section.get("max_zoom", config.map.max_zoom))

    if "server" in data:
        server = data["server"]
        config.server.host = server.get("host", config.server.host)
        config.server.port = int(server.get("port", config.server.port))

    if "log" in data:
        log_section = data["log"]
        if "directory" in log_section:
            config.log.directory = Path(log_section["directory"])

    return config


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to configuration.

    Args:
        config: Config to update.

    Returns:
        Updated Config object.
    """
    # The NEXT_PUBLIC_ names are what the hosted front end deploys with
    if url := _get_env_value("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"):
        config.supabase.url = url
    if key := _get_env_value("SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY"):
        config.supabase.key = key

    if log_dir := _get_env_value("MOMENT_MAP_LOG_DIR"):
        config.log.directory = Path(log_dir)

    return config


def validate_config(config: Config) -> None:
    """Check that the backend connection is configured.

    Args:
        config: Configuration to validate.

    Raises:
        ValueError: If the Supabase URL or key is missing, or the zoom range is empty.
    """
    if not config.supabase.url:
        raise ValueError(
            "Supabase URL is required (set SUPABASE_URL or [supabase] url in the config file)"
        )
    if not config.supabase.key:
        raise ValueError(
            "Supabase key is required (set SUPABASE_ANON_KEY or [supabase] key in the config file)"
        )
    if config.map.min_zoom > config.map.max_zoom:
        raise ValueError(
            f"min_zoom ({config.map.min_zoom}) must not exceed max_zoom ({config.map.max_zoom})"
        )
