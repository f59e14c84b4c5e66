"""Daemon lifecycle management.

Tracks startup time and graceful shutdown state for ``velox serve``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)


@dataclass
class ShutdownState:
    """Tracks shutdown progress for graceful termination."""

    initiated: datetime | None = None
    """UTC timestamp when shutdown was initiated, None if not shutting down."""

    timeout_deadline: datetime | None = None
    """UTC timestamp after which remaining scans are abandoned."""

    @property
    def is_shutting_down(self) -> bool:
        """Returns True if shutdown has been initiated."""
        return self.initiated is not None

    @property
    def is_timed_out(self) -> bool:
        """Returns True if shutdown timeout has been exceeded."""
        if self.timeout_deadline is None:
            return False
        return datetime.now(timezone.utc) >= self.timeout_deadline


@dataclass
class DaemonLifecycle:
    """Manages daemon startup and shutdown state."""

    shutdown_timeout: float = 30.0
    """Seconds to wait for in-flight scans before abandoning them."""

    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    """UTC timestamp when daemon started."""

    shutdown_state: ShutdownState = field(default_factory=ShutdownState)
    """Current shutdown state."""

    @property
    def uptime_seconds(self) -> float:
        """Returns seconds since daemon startup."""
        return (datetime.now(timezone.utc) - self.start_time).total_seconds()

    @property
    def is_shutting_down(self) -> bool:
        """Returns True if shutdown has been initiated."""
        return self.shutdown_state.is_shutting_down

    def initiate_shutdown(self) -> None:
        """Begin graceful shutdown. Idempotent."""
        if self.shutdown_state.initiated is not None:
            return

        now = datetime.now(timezone.utc)
        self.shutdown_state.initiated = now
        self.shutdown_state.timeout_deadline = now + timedelta(
            seconds=self.shutdown_timeout
        )
        logger.info("Shutdown initiated (timeout %.1fs)", self.shutdown_timeout)

