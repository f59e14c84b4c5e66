"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. CLI arguments (passed directly to functions)
2. Environment variables (VELOX_*)
3. Config file (~/.velox/config.toml)
4. Default values

Environment variables:
- VELOX_CONFIG_PATH: Path to config file (overrides default location)
- VELOX_DATA_DIR: Path to Velox data directory (overrides ~/.velox/)
- VELOX_MAX_DEPTH, VELOX_INCLUDE_HIDDEN, VELOX_FOLLOW_SYMLINKS: scan defaults
- VELOX_MAX_CONCURRENT_SCANS: advisory limit on concurrent scans
- VELOX_PROGRESS_INTERVAL_MS, VELOX_RELAY_INTERVAL_MS: progress throttling
- VELOX_SERVER_BIND, VELOX_SERVER_PORT: daemon listen address
- VELOX_LOG_LEVEL, VELOX_LOG_FILE, VELOX_LOG_FORMAT: logging
"""

from __future__ import annotations

import logging
import os
import threading
import tomllib
from pathlib import Path
from typing import Any

from velox.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from velox.config.env import EnvReader
from velox.config.models import VeloxConfig

logger = logging.getLogger(__name__)

# Default config location
DEFAULT_CONFIG_DIR = Path.home() / ".velox"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

# Cache for loaded config files (path -> (parsed dict, mtime))
_config_cache: dict[Path, tuple[dict[str, Any], float]] = {}
_config_cache_lock = threading.Lock()


class ConfigFileError(Exception):
    """Raised when a config file exists but cannot be read or parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid config file {path}: {reason}")


def get_data_dir() -> Path:
    """Get the Velox data directory.

    Can be overridden by VELOX_DATA_DIR environment variable.
    Supports tilde expansion (e.g., ~/custom/velox).

    Returns:
        Path to the data directory (~/.velox/ by default).
    """
    env_path = os.environ.get("VELOX_DATA_DIR")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_DIR


def get_default_config_path() -> Path:
    """Get the default config file path.

    VELOX_CONFIG_PATH wins, then ``config.toml`` inside the data directory.

    Returns:
        Path to config file.
    """
    env_path = os.environ.get("VELOX_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return get_data_dir() / "config.toml"


def load_toml_file(path: Path, *, strict: bool = False) -> dict[str, Any]:
    """Load and parse a TOML file.

    Args:
        path: Path to the TOML file.
        strict: If True, raise ConfigFileError on read or parse failures.

    Returns:
        Parsed dictionary. Empty dict if the file doesn't exist, or if it
        cannot be parsed and strict is False.

    Raises:
        ConfigFileError: When strict=True and the file cannot be parsed.
    """
    if not path.exists():
        logger.debug("Config file not found: %s", path)
        return {}

    try:
        with path.open("rb") as f:
            config = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        if strict:
            raise ConfigFileError(path, str(e)) from e
        logger.warning("Failed to load config file %s: %s", path, e)
        return {}

    logger.debug("Loaded config from %s", path)
    return config


def load_config_file(path: Path | None = None, *, strict: bool = False) -> dict:
    """Load configuration from TOML file.

    Results are cached with mtime-based invalidation. Use
    clear_config_cache() to force a reload regardless of mtime.

    Args:
        path: Path to config file. If None, uses default location.
        strict: If True, raise ConfigFileError on parse failures.

    Returns:
        Parsed configuration dict. Empty dict if file doesn't exist.
    """
    if path is None:
        path = get_default_config_path()

    try:
        current_mtime = path.stat().st_mtime
    except OSError:
        current_mtime = 0.0

    with _config_cache_lock:
        cached = _config_cache.get(path)
        if cached is not None and cached[1] == current_mtime:
            return cached[0]

        result = load_toml_file(path, strict=strict)
        _config_cache[path] = (result, current_mtime)
        return result


def clear_config_cache() -> None:
    """Clear the config file cache. Primarily useful for testing."""
    with _config_cache_lock:
        _config_cache.clear()


def get_config(
    config_path: Path | None = None,
    # CLI overrides (highest precedence)
    max_depth: int | None = None,
    include_hidden: bool | None = None,
    follow_symlinks: bool | None = None,
    progress_interval_ms: int | None = None,
    bind: str | None = None,
    port: int | None = None,
    # Optional dependency injection for testing
    env_reader: EnvReader | None = None,
    *,
    strict: bool = False,
) -> VeloxConfig:
    """Get Velox configuration with full precedence handling.

    Args:
        config_path: Path to config file (overrides VELOX_CONFIG_PATH).
        max_depth: CLI override for the default maximum depth.
        include_hidden: CLI override for hidden entry handling.
        follow_symlinks: CLI override for symlink handling.
        progress_interval_ms: CLI override for the walker emit interval.
        bind: CLI override for the daemon bind address.
        port: CLI override for the daemon port.
        env_reader: Optional EnvReader for testing (uses os.environ if None).
        strict: If True, raise ConfigFileError on config file parse failures.

    Returns:
        VeloxConfig with merged configuration.

    Raises:
        ConfigFileError: When strict=True and the config file is invalid.
        ValueError: When a merged value fails section validation.
    """
    reader = env_reader or EnvReader()

    file_config = load_config_file(config_path, strict=strict)

    cli_source = ConfigSource(
        scanner_default_max_depth=max_depth,
        scanner_include_hidden=include_hidden,
        scanner_follow_symlinks=follow_symlinks,
        scanner_progress_interval_ms=progress_interval_ms,
        server_bind=bind,
        server_port=port,
    )

    # file < env < cli
    builder = ConfigBuilder()
    builder.apply(source_from_file(file_config), source_name="file")
    builder.apply(source_from_env(reader), source_name="env")
    builder.apply(cli_source, source_name="cli")

    return builder.build()
