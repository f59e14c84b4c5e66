"""Scan context for structured logging.

Provides context propagation for scan tasks using contextvars, enabling
automatic injection of scan_id and root_path into log records. The context
is copied into the walker thread by ``asyncio.to_thread``.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Generator

_scan_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "scan_id", default=None
)
_root_path: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "root_path", default=None
)

# Length of the scan id prefix shown in text logs
SCAN_TAG_LENGTH = 8

SCAN_EVENTS = frozenset({"started", "rejected", "completed", "cancelled", "failed"})


def set_scan_context(scan_id: str, root_path: Path | str | None = None) -> None:
    """Set the current scan context.

    Args:
        scan_id: Scan session identifier.
        root_path: Root path being scanned, or None.
    """
    _scan_id.set(scan_id)
    _root_path.set(str(root_path) if root_path is not None else None)


def clear_scan_context() -> None:
    """Clear the current scan context."""
    _scan_id.set(None)
    _root_path.set(None)


@contextmanager
def scan_context(
    scan_id: str,
    root_path: Path | str | None = None,
) -> Generator[None, None, None]:
    """Context manager for scan processing context.

    Sets scan context on entry, restores the previous context on exit.

    Args:
        scan_id: Scan session identifier.
        root_path: Root path being scanned.

    Yields:
        None

    Example:
        with scan_context(session.id, session.root_path):
            logger.info("Starting scan")  # Automatically includes context
    """
    old_scan_id = _scan_id.get()
    old_root_path = _root_path.get()
    try:
        set_scan_context(scan_id, root_path)
        yield
    finally:
        _scan_id.set(old_scan_id)
        _root_path.set(old_root_path)


def get_scan_context() -> tuple[str | None, str | None]:
    """Get current scan context.

    Returns:
        Tuple of (scan_id, root_path), either may be None.
    """
    return _scan_id.get(), _root_path.get()


class ScanContextFilter(logging.Filter):
    """Logging filter that injects scan context into log records.

    Adds scan_id and root_path attributes to LogRecord from contextvars.
    For text format, also adds a formatted scan_tag for compact display
    like [S:1a2b3c4d].
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Inject scan context into log record.

        Args:
            record: The log record to process.

        Returns:
            Always True (does not filter, only enriches).
        """
        scan_id, root_path = get_scan_context()

        record.scan_id = scan_id
        record.root_path = root_path

        if scan_id:
            record.scan_tag = f"[S:{scan_id[:SCAN_TAG_LENGTH]}] "
        else:
            record.scan_tag = ""

        return True


def scan_extra(event: str, **stats: Any) -> dict[str, Any]:
    """Build the ``extra`` mapping for a scan lifecycle record.

    Args:
        event: One of SCAN_EVENTS.
        **stats: Counters or options describing the scan at this point.

    Raises:
        ValueError: If ``event`` is not a known lifecycle event.

    Example:
        logger.info("Scan completed", extra=scan_extra("completed", files=4))
    """
    if event not in SCAN_EVENTS:
        raise ValueError(f"Unknown scan event: {event}")
    return {"scan_event": event, "scan_stats": stats}
