"""HTTP daemon exposing the scanner over a JSON and SSE API."""

from velox.server.app import create_app
from velox.server.lifecycle import DaemonLifecycle, ShutdownState

__all__ = [
    "DaemonLifecycle",
    "ShutdownState",
    "create_app",
]
