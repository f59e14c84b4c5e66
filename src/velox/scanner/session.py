"""Scan sessions and the registry that tracks them.

A ScanSession is the handle for one traversal: identity, root path, status
and a cancellation flag shared with the running walker. The registry maps
scan ids to sessions for the boundary layers (HTTP, CLI) that need to look
scans up, cancel them, or count them.
"""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime

from velox.core.datetime_utils import utc_now
from velox.core.locking import ReadWriteLock
from velox.scanner.exceptions import ScanNotFoundError, ScanStateError
from velox.scanner.models import ScanStatus

logger = logging.getLogger(__name__)


class ScanSession:
    """Handle for a single scan.

    The cancellation flag is a threading.Event so the walker thread can
    poll it without touching the registry lock. Once set it stays set.
    """

    def __init__(self, root_path: str, scan_id: str | None = None) -> None:
        """Initialize a session in Idle status.

        Args:
            root_path: Directory the scan will walk.
            scan_id: Explicit id, mainly for tests. Defaults to a new UUID4.
        """
        self.id = scan_id or str(uuid.uuid4())
        self.root_path = root_path
        self.created_at: datetime = utc_now()
        self._status = ScanStatus.IDLE
        self._status_lock = threading.Lock()
        self._cancel_event = threading.Event()

    def __repr__(self) -> str:
        return (
            f"ScanSession(id={self.id!r}, root_path={self.root_path!r}, "
            f"status={self._status.value})"
        )

    @property
    def status(self) -> ScanStatus:
        return self._status

    @property
    def is_cancelled(self) -> bool:
        """Whether cancellation has been requested."""
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """Request cancellation. Idempotent and never blocks."""
        self._cancel_event.set()

    def transition(self, status: ScanStatus) -> None:
        """Move the session to a new status.

        Allowed: idle → scanning, scanning → completed/cancelled/error.

        Raises:
            ScanStateError: On any other transition.
        """
        with self._status_lock:
            current = self._status
            allowed = (
                current is ScanStatus.IDLE and status is ScanStatus.SCANNING
            ) or (current is ScanStatus.SCANNING and status.is_terminal)
            if not allowed:
                raise ScanStateError(self.id, current.value, status.value)
            self._status = status
        logger.debug("Scan %s: %s -> %s", self.id, current.value, status.value)


class SessionRegistry:
    """Thread-safe map of scan id to ScanSession.

    Reads (lookup, counts) share a ReadWriteLock; register/deregister take
    it exclusively. Cancellation only needs a read, since the flag carries
    its own synchronization.
    """

    def __init__(self, max_concurrent_scans: int = 4) -> None:
        """Initialize an empty registry.

        Args:
            max_concurrent_scans: Advisory limit. Exceeding it logs a
                warning; registration is never refused.
        """
        self.max_concurrent_scans = max_concurrent_scans
        self._sessions: dict[str, ScanSession] = {}
        self._lock = ReadWriteLock()

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._sessions)

    def register(self, root_path: str) -> str:
        """Create and store a new session.

        Returns:
            The new session's id.
        """
        session = ScanSession(root_path)
        self.add(session)
        return session.id

    def add(self, session: ScanSession) -> None:
        """Store an already-constructed session."""
        with self._lock.write_locked():
            self._sessions[session.id] = session
            in_flight = sum(
                1 for s in self._sessions.values() if not s.status.is_terminal
            )
        if in_flight > self.max_concurrent_scans:
            logger.warning(
                "%d scans registered, above the advisory limit of %d",
                in_flight,
                self.max_concurrent_scans,
            )

    def lookup(self, scan_id: str) -> ScanSession | None:
        with self._lock.read_locked():
            return self._sessions.get(scan_id)

    def cancel(self, scan_id: str) -> bool:
        """Flag a session for cancellation.

        Returns:
            True if the session exists, False otherwise.
        """
        session = self.lookup(scan_id)
        if session is None:
            return False
        session.cancel()
        logger.info("Cancellation requested for scan %s", scan_id)
        return True

    def cancel_all(self) -> int:
        """Flag every registered session for cancellation.

        Returns:
            Number of sessions flagged.
        """
        with self._lock.read_locked():
            sessions = list(self._sessions.values())
        for session in sessions:
            session.cancel()
        return len(sessions)

    def deregister(self, scan_id: str) -> None:
        """Remove a session. Unknown ids are ignored."""
        with self._lock.write_locked():
            self._sessions.pop(scan_id, None)

    def active_count(self) -> int:
        """Count sessions currently in Scanning status."""
        with self._lock.read_locked():
            return sum(
                1
                for s in self._sessions.values()
                if s.status is ScanStatus.SCANNING
            )

    def get_status(self, scan_id: str) -> ScanStatus:
        """Return a session's status.

        Raises:
            ScanNotFoundError: If the id is unknown.
        """
        session = self.lookup(scan_id)
        if session is None:
            raise ScanNotFoundError(scan_id)
        return session.status
