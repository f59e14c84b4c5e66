"""Host introspection for the system-info endpoint."""

from __future__ import annotations

import os
import platform
import socket
from dataclasses import asdict, dataclass

from velox import __version__
from velox.core.datetime_utils import utc_now_iso


@dataclass(frozen=True)
class SystemInfo:
    """Static facts about the host running the scanner."""

    os: str
    arch: str
    version: str
    hostname: str
    cpu_cores: int
    timestamp: str

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


def get_system_info() -> SystemInfo:
    """Collect system information for the current host.

    Returns:
        SystemInfo with OS name, machine architecture, package version,
        hostname ("unknown" if it cannot be resolved) and logical CPU count.
    """
    try:
        hostname = socket.gethostname() or "unknown"
    except OSError:
        hostname = "unknown"

    return SystemInfo(
        os=platform.system().lower() or "unknown",
        arch=platform.machine() or "unknown",
        version=__version__,
        hostname=hostname,
        cpu_cores=os.cpu_count() or 1,
        timestamp=utc_now_iso(),
    )
