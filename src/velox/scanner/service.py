"""Scan service: the boundary object used by the HTTP server and the CLI.

ScanService owns the session registry, the scanner defaults and the event
observer. Boundary layers call it instead of wiring sessions and scanners
together themselves.
"""

from __future__ import annotations

import asyncio
import logging

from velox import __version__
from velox.config.models import ScannerConfig
from velox.core.datetime_utils import elapsed_ms, utc_now, utc_now_iso
from velox.core.system_info import SystemInfo, get_system_info
from velox.scanner.exceptions import VeloxError
from velox.scanner.models import HeartbeatResponse, ScanConfig, ScanResult, ScanStatus
from velox.scanner.observers import NullObserver, ScanObserver
from velox.scanner.orchestrator import DirectoryScanner
from velox.scanner.session import ScanSession, SessionRegistry

logger = logging.getLogger(__name__)


class ScanService:
    """Starts, tracks and cancels scans.

    Example:
        service = ScanService(ScannerConfig(), observer=broadcaster)
        scan_id = service.start_scan("/data", service.build_config())
        service.cancel_scan(scan_id)
    """

    def __init__(
        self,
        config: ScannerConfig | None = None,
        observer: ScanObserver | None = None,
        registry: SessionRegistry | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            config: Scanner defaults and limits.
            observer: Receives progress and outcome events for every scan.
            registry: Session registry; a new one is created if None.
        """
        self.config = config or ScannerConfig()
        self.observer: ScanObserver = observer or NullObserver()
        self.registry = registry or SessionRegistry(self.config.max_concurrent_scans)
        self.started_at = utc_now()
        self._tasks: dict[str, asyncio.Task[None]] = {}

    @property
    def uptime_ms(self) -> int:
        return elapsed_ms(self.started_at)

    @property
    def background_scans(self) -> int:
        """Number of scans started with start_scan() that are still running."""
        return len(self._tasks)

    def build_config(
        self,
        max_depth: int | None = None,
        include_hidden: bool | None = None,
        follow_symlinks: bool | None = None,
        progress_interval_ms: int | None = None,
    ) -> ScanConfig:
        """Build a ScanConfig, filling unset options from the defaults."""
        defaults = self.config
        return ScanConfig(
            max_depth=max_depth if max_depth is not None else defaults.default_max_depth,
            include_hidden=(
                include_hidden
                if include_hidden is not None
                else defaults.include_hidden_default
            ),
            follow_symlinks=(
                follow_symlinks
                if follow_symlinks is not None
                else defaults.follow_symlinks_default
            ),
            progress_interval_ms=(
                progress_interval_ms
                if progress_interval_ms is not None
                else defaults.progress_emit_interval_ms
            ),
        )

    def create_session(self, root_path: str) -> ScanSession:
        """Create and register a session for a new scan."""
        session = ScanSession(root_path)
        self.registry.add(session)
        return session

    def _scanner(
        self, session: ScanSession, config: ScanConfig | None
    ) -> DirectoryScanner:
        return DirectoryScanner(
            session,
            config or self.build_config(),
            self.observer,
            relay_interval_ms=self.config.relay_interval_ms,
            channel_capacity=self.config.channel_capacity,
        )

    async def run_scan(
        self,
        root_path: str,
        config: ScanConfig | None = None,
        session: ScanSession | None = None,
    ) -> ScanResult:
        """Run a scan and wait for its result.

        The session is always deregistered when the scan ends.

        Args:
            root_path: Directory to scan.
            config: Walk options. Defaults to build_config().
            session: Pre-registered session, e.g. when the caller needs
                the id before the scan starts.

        Raises:
            InvalidPathError, ScanCancelledError, ScanFailedError.
        """
        if session is None:
            session = self.create_session(root_path)
        try:
            return await self._scanner(session, config).scan()
        finally:
            self.registry.deregister(session.id)

    def start_scan(self, root_path: str, config: ScanConfig | None = None) -> str:
        """Start a scan in the background.

        Must be called from a running event loop. The outcome is reported
        only through observer events.

        Returns:
            The new scan's id.
        """
        session = self.create_session(root_path)
        task = asyncio.create_task(
            self._run_background(session, config),
            name=f"velox-scan-{session.id[:8]}",
        )
        self._tasks[session.id] = task
        task.add_done_callback(lambda _t: self._tasks.pop(session.id, None))
        logger.info("Background scan %s queued for %s", session.id, root_path)
        return session.id

    async def _run_background(
        self, session: ScanSession, config: ScanConfig | None
    ) -> None:
        try:
            await self.run_scan(session.root_path, config, session=session)
        except VeloxError as e:
            # Already reported to the observer as scan:error
            logger.info("Background scan %s ended: %s", session.id, e.code)

    def cancel_scan(self, scan_id: str) -> bool:
        """Request cancellation. Returns False if the id is unknown."""
        return self.registry.cancel(scan_id)

    def get_scan_status(self, scan_id: str) -> ScanStatus:
        """Return a live scan's status.

        Raises:
            ScanNotFoundError: If the id is unknown or already finished.
        """
        return self.registry.get_status(scan_id)

    def heartbeat(self) -> HeartbeatResponse:
        return HeartbeatResponse(
            status="healthy",
            uptime_ms=self.uptime_ms,
            active_scans=self.registry.active_count(),
            timestamp=utc_now_iso(),
            version=__version__,
        )

    def system_info(self) -> SystemInfo:
        return get_system_info()

    async def shutdown(self, timeout: float = 30.0) -> int:
        """Cancel every scan and wait for background scans to finish.

        Args:
            timeout: Seconds to wait before abandoning background tasks.

        Returns:
            Number of background scans still running after the timeout.
        """
        flagged = self.registry.cancel_all()
        tasks = list(self._tasks.values())
        if flagged:
            logger.info("Cancelling %d scan(s) for shutdown", flagged)
        if not tasks:
            return 0

        _, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning(
                "%d scan(s) did not stop within %.1fs", len(pending), timeout
            )
        return len(pending)
