"""Configuration data models for Velox."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class ScannerConfig:
    """Defaults and limits applied to every scan.

    Per-request options (max depth, hidden entries, symlinks) fall back to
    these defaults when a caller leaves them unset.
    """

    # Advisory only: exceeding it logs a warning, scans are never rejected
    max_concurrent_scans: int = 4

    default_max_depth: int = 100
    include_hidden_default: bool = False
    follow_symlinks_default: bool = False

    # Minimum spacing between snapshots produced by the walker
    progress_emit_interval_ms: int = 50

    # Minimum spacing between snapshots forwarded to observers
    relay_interval_ms: int = 50

    # Bound on snapshots buffered between walker and relay
    channel_capacity: int = 100

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.max_concurrent_scans < 1:
            raise ValueError(
                f"max_concurrent_scans must be at least 1, "
                f"got {self.max_concurrent_scans}"
            )
        if self.default_max_depth < 0:
            raise ValueError(
                f"default_max_depth must be non-negative, got {self.default_max_depth}"
            )
        if self.progress_emit_interval_ms < 0:
            raise ValueError(
                f"progress_emit_interval_ms must be non-negative, "
                f"got {self.progress_emit_interval_ms}"
            )
        if self.relay_interval_ms < 0:
            raise ValueError(
                f"relay_interval_ms must be non-negative, got {self.relay_interval_ms}"
            )
        if self.channel_capacity < 1:
            raise ValueError(
                f"channel_capacity must be at least 1, got {self.channel_capacity}"
            )


@dataclass
class ServerConfig:
    """Configuration for daemon server mode.

    Controls bind address, port, and shutdown behavior for `velox serve`.
    """

    bind: str = "127.0.0.1"
    """Network address to bind to. Default localhost for security."""

    port: int = 8347
    """Port number for HTTP server."""

    shutdown_timeout: float = 30.0
    """Seconds to wait for in-flight scans during graceful shutdown."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port must be 1-65535, got {self.port}")
        if self.shutdown_timeout <= 0:
            raise ValueError(
                f"shutdown_timeout must be positive, got {self.shutdown_timeout}"
            )

    @property
    def url(self) -> str:
        """Base URL clients use to reach the daemon."""
        host = "127.0.0.1" if self.bind in ("0.0.0.0", "") else self.bind
        return f"http://{host}:{self.port}"


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    # Log level: debug, info, warning, error
    level: str = "info"

    # Log file path (None = stderr only)
    file: Path | None = None

    # Log format: text or json
    format: str = "text"

    # Also log to stderr when file is set
    include_stderr: bool = False

    # Rotation threshold in bytes (default 10MB)
    max_bytes: int = 10_485_760

    # Number of rotated files to keep
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate configuration."""
        valid_levels = {"debug", "info", "warning", "error"}
        if self.level.lower() not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}, got {self.level}")
        valid_formats = {"text", "json"}
        if self.format.lower() not in valid_formats:
            raise ValueError(
                f"format must be one of {valid_formats}, got {self.format}"
            )


@dataclass
class VeloxConfig:
    """Main configuration container for Velox.

    Aggregates all configuration sections.
    """

    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
