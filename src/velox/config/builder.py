"""Configuration builder with explicit layering.

This module provides ConfigBuilder for building VeloxConfig by composing
multiple configuration sources with explicit precedence handling.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from velox.config.env import EnvReader
from velox.config.models import (
    LoggingConfig,
    ScannerConfig,
    ServerConfig,
    VeloxConfig,
)


@dataclass
class ConfigSource:
    """Configuration values from a single source.

    None values indicate "not specified in this source" and will not
    override values from lower-precedence sources.
    """

    # Scanner config
    scanner_max_concurrent_scans: int | None = None
    scanner_default_max_depth: int | None = None
    scanner_include_hidden: bool | None = None
    scanner_follow_symlinks: bool | None = None
    scanner_progress_interval_ms: int | None = None
    scanner_relay_interval_ms: int | None = None
    scanner_channel_capacity: int | None = None

    # Server config
    server_bind: str | None = None
    server_port: int | None = None
    server_shutdown_timeout: float | None = None

    # Logging config
    logging_level: str | None = None
    logging_file: Path | None = None
    logging_format: str | None = None
    logging_include_stderr: bool | None = None
    logging_max_bytes: int | None = None
    logging_backup_count: int | None = None


class ConfigBuilder:
    """Builds VeloxConfig by layering ConfigSources with precedence.

    Later sources override earlier ones (for non-None values).

    Example:
        builder = ConfigBuilder()
        builder.apply(source_from_file(file_config), source_name="file")
        builder.apply(source_from_env(reader), source_name="env")
        config = builder.build()
    """

    def __init__(self) -> None:
        """Initialize the builder with no values set."""
        self._values: dict[str, Any] = {}
        self._sources: dict[str, str] = {}

    def apply(self, source: ConfigSource, source_name: str = "unknown") -> None:
        """Apply configuration source, overriding existing values.

        Args:
            source: Configuration source to apply.
            source_name: Label recorded for each value this source sets.
        """
        for field_obj in fields(source):
            value = getattr(source, field_obj.name)
            if value is not None:
                self._values[field_obj.name] = value
                self._sources[field_obj.name] = source_name

    def source_of(self, key: str) -> str:
        """Return which source supplied a value ("default" if none did)."""
        return self._sources.get(key, "default")

    def _get(self, key: str, default: Any) -> Any:
        return self._values.get(key, default)

    def build(self) -> VeloxConfig:
        """Build the final VeloxConfig with defaults for unset values.

        Returns:
            Complete VeloxConfig. Section ``__post_init__`` validation runs
            here, so invalid values raise ValueError.
        """
        defaults = VeloxConfig()

        scanner = ScannerConfig(
            max_concurrent_scans=self._get(
                "scanner_max_concurrent_scans",
                defaults.scanner.max_concurrent_scans,
            ),
            default_max_depth=self._get(
                "scanner_default_max_depth", defaults.scanner.default_max_depth
            ),
            include_hidden_default=self._get(
                "scanner_include_hidden", defaults.scanner.include_hidden_default
            ),
            follow_symlinks_default=self._get(
                "scanner_follow_symlinks", defaults.scanner.follow_symlinks_default
            ),
            progress_emit_interval_ms=self._get(
                "scanner_progress_interval_ms",
                defaults.scanner.progress_emit_interval_ms,
            ),
            relay_interval_ms=self._get(
                "scanner_relay_interval_ms", defaults.scanner.relay_interval_ms
            ),
            channel_capacity=self._get(
                "scanner_channel_capacity", defaults.scanner.channel_capacity
            ),
        )

        server = ServerConfig(
            bind=self._get("server_bind", defaults.server.bind),
            port=self._get("server_port", defaults.server.port),
            shutdown_timeout=self._get(
                "server_shutdown_timeout", defaults.server.shutdown_timeout
            ),
        )

        logging_config = LoggingConfig(
            level=self._get("logging_level", defaults.logging.level),
            file=self._get("logging_file", defaults.logging.file),
            format=self._get("logging_format", defaults.logging.format),
            include_stderr=self._get(
                "logging_include_stderr", defaults.logging.include_stderr
            ),
            max_bytes=self._get("logging_max_bytes", defaults.logging.max_bytes),
            backup_count=self._get(
                "logging_backup_count", defaults.logging.backup_count
            ),
        )

        return VeloxConfig(scanner=scanner, server=server, logging=logging_config)


def source_from_file(file_config: dict[str, Any]) -> ConfigSource:
    """Create ConfigSource from parsed TOML config file.

    Expected layout::

        [scanner]
        max_depth = 50
        include_hidden = false

        [server]
        port = 8347

        [logging]
        level = "debug"

    Args:
        file_config: Parsed configuration dictionary from TOML file.

    Returns:
        ConfigSource with values from the config file.
    """
    scanner = file_config.get("scanner", {})
    server = file_config.get("server", {})
    logging_conf = file_config.get("logging", {})

    log_file_str = logging_conf.get("file")
    log_file = Path(log_file_str).expanduser() if log_file_str else None

    return ConfigSource(
        # Scanner
        scanner_max_concurrent_scans=scanner.get("max_concurrent_scans"),
        scanner_default_max_depth=scanner.get("max_depth"),
        scanner_include_hidden=scanner.get("include_hidden"),
        scanner_follow_symlinks=scanner.get("follow_symlinks"),
        scanner_progress_interval_ms=scanner.get("progress_interval_ms"),
        scanner_relay_interval_ms=scanner.get("relay_interval_ms"),
        scanner_channel_capacity=scanner.get("channel_capacity"),
        # Server
        server_bind=server.get("bind"),
        server_port=server.get("port"),
        server_shutdown_timeout=server.get("shutdown_timeout"),
        # Logging
        logging_level=logging_conf.get("level"),
        logging_file=log_file,
        logging_format=logging_conf.get("format"),
        logging_include_stderr=logging_conf.get("include_stderr"),
        logging_max_bytes=logging_conf.get("max_bytes"),
        logging_backup_count=logging_conf.get("backup_count"),
    )


def source_from_env(reader: EnvReader) -> ConfigSource:
    """Create ConfigSource from environment variables.

    Args:
        reader: EnvReader instance for reading environment variables.

    Returns:
        ConfigSource with values from VELOX_* environment variables.
    """
    return ConfigSource(
        # Scanner
        scanner_max_concurrent_scans=reader.get_int("VELOX_MAX_CONCURRENT_SCANS"),
        scanner_default_max_depth=reader.get_int("VELOX_MAX_DEPTH"),
        scanner_include_hidden=reader.get_bool("VELOX_INCLUDE_HIDDEN"),
        scanner_follow_symlinks=reader.get_bool("VELOX_FOLLOW_SYMLINKS"),
        scanner_progress_interval_ms=reader.get_int("VELOX_PROGRESS_INTERVAL_MS"),
        scanner_relay_interval_ms=reader.get_int("VELOX_RELAY_INTERVAL_MS"),
        scanner_channel_capacity=reader.get_int("VELOX_CHANNEL_CAPACITY"),
        # Server
        server_bind=reader.get_str("VELOX_SERVER_BIND"),
        server_port=reader.get_int("VELOX_SERVER_PORT"),
        server_shutdown_timeout=reader.get_float("VELOX_SERVER_SHUTDOWN_TIMEOUT"),
        # Logging
        logging_level=reader.get_str("VELOX_LOG_LEVEL"),
        logging_file=reader.get_path("VELOX_LOG_FILE"),
        logging_format=reader.get_str("VELOX_LOG_FORMAT"),
    )
