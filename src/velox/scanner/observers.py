"""Observers that receive scan events.

Scan progress and outcomes are published as named events with a plain
dict payload, so any sink (terminal display, SSE stream, test recorder)
can consume them without depending on scanner internals. Observers are
always invoked on the event loop thread.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Protocol

logger = logging.getLogger(__name__)

EVENT_PROGRESS = "scan:progress"
EVENT_COMPLETE = "scan:complete"
EVENT_ERROR = "scan:error"


class ScanObserver(Protocol):
    """Protocol for scan event sinks."""

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        """Deliver one event.

        Args:
            event: Event name (``scan:progress``, ``scan:complete`` or
                ``scan:error``).
            payload: JSON-serializable event body.
        """
        ...


class NullObserver:
    """Observer that discards every event."""

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        pass


class CompositeObserver:
    """Fans events out to several observers.

    A failing observer is logged and skipped so the others still receive
    the event.
    """

    def __init__(self, observers: Iterable[ScanObserver]) -> None:
        self.observers = list(observers)

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        for observer in self.observers:
            try:
                observer.emit(event, payload)
            except Exception:
                logger.exception(
                    "Observer %s failed handling %s", type(observer).__name__, event
                )


class RecordingObserver:
    """Observer that keeps every event in memory.

    Used by the CLI JSON output and by tests.
    """

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        self.events.append((event, payload))

    def named(self, event: str) -> list[dict[str, Any]]:
        """Return payloads of all events with the given name, in order."""
        return [payload for name, payload in self.events if name == event]

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.events]
