"""Scan orchestration: runs the walker and streams its progress.

DirectoryScanner drives one session end to end. The synchronous walker runs
in a worker thread via ``asyncio.to_thread`` while a ProgressRelay task on
the event loop forwards snapshots to the observer. The scan's outcome is
reported only after the relay has drained, so observers always see the
terminal snapshot before the caller sees the result or error.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from pathlib import Path

from velox.core.datetime_utils import utc_now_iso
from velox.core.formatting import format_file_size
from velox.logging import scan_context, scan_extra
from velox.scanner.channel import DEFAULT_CAPACITY, ProgressChannel
from velox.scanner.exceptions import (
    InvalidPathError,
    ScanCancelledError,
    ScanFailedError,
    VeloxError,
)
from velox.scanner.models import (
    ScanConfig,
    ScanProgress,
    ScanResult,
    ScanStatus,
    ScanTotals,
)
from velox.scanner.observers import (
    EVENT_COMPLETE,
    EVENT_ERROR,
    NullObserver,
    ScanObserver,
)
from velox.scanner.relay import DEFAULT_RELAY_INTERVAL_MS, ProgressRelay
from velox.scanner.session import ScanSession
from velox.scanner.walker import DirectoryWalker, to_display_text

logger = logging.getLogger(__name__)

# Seconds the walker waits for channel space when sending a terminal snapshot
TERMINAL_SEND_TIMEOUT = 5.0


def validate_root(root_path: str) -> str:
    """Check that a scan root exists and is a directory.

    Args:
        root_path: Path as supplied by the caller. ``~`` is expanded.

    Returns:
        Absolute path to walk.

    Raises:
        InvalidPathError: If the path is empty, missing, or not a directory.
    """
    if not root_path or not root_path.strip():
        raise InvalidPathError(root_path, "Path is empty")
    path = Path(root_path).expanduser()
    if not path.exists():
        raise InvalidPathError(root_path, "Path does not exist")
    if not path.is_dir():
        raise InvalidPathError(root_path, "Path is not a directory")
    return os.path.abspath(path)


class DirectoryScanner:
    """Runs one scan session and reports its progress and outcome.

    Example:
        session = ScanSession("/data")
        scanner = DirectoryScanner(session, ScanConfig(max_depth=5), observer)
        result = await scanner.scan()
    """

    def __init__(
        self,
        session: ScanSession,
        config: ScanConfig | None = None,
        observer: ScanObserver | None = None,
        *,
        relay_interval_ms: int = DEFAULT_RELAY_INTERVAL_MS,
        channel_capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        """Initialize the scanner.

        Args:
            session: Session supplying root path, identity and cancellation.
            config: Walk options. Defaults to ScanConfig().
            observer: Event sink. Defaults to NullObserver.
            relay_interval_ms: Minimum spacing of forwarded progress events.
            channel_capacity: Snapshots buffered between walker and relay.
        """
        self.session = session
        self.config = config or ScanConfig()
        self.observer: ScanObserver = observer or NullObserver()
        self.relay_interval_ms = relay_interval_ms
        self.channel_capacity = channel_capacity

    async def scan(self) -> ScanResult:
        """Run the scan to completion.

        Returns:
            ScanResult for a completed walk.

        Raises:
            InvalidPathError: Root missing or not a directory.
            ScanCancelledError: Cancellation was requested mid-walk.
            ScanFailedError: The walk failed unexpectedly.
            ScanStateError: The session was already started.
        """
        session = self.session
        session.transition(ScanStatus.SCANNING)

        with scan_context(session.id, session.root_path):
            try:
                root = validate_root(session.root_path)
            except InvalidPathError as e:
                session.transition(ScanStatus.ERROR)
                logger.warning(
                    "Scan rejected: %s", e.message, extra=scan_extra("rejected")
                )
                self._emit_error(e)
                raise

            logger.info(
                "Scan started: %s",
                root,
                extra=scan_extra(
                    "started",
                    max_depth=self.config.max_depth,
                    include_hidden=self.config.include_hidden,
                    follow_symlinks=self.config.follow_symlinks,
                ),
            )

            channel = ProgressChannel(
                asyncio.get_running_loop(), capacity=self.channel_capacity
            )
            relay = ProgressRelay(channel, self.observer, self.relay_interval_ms)
            relay_task = asyncio.create_task(
                relay.run(), name=f"velox-relay-{session.id[:8]}"
            )

            try:
                # to_thread copies contextvars, so walker logs carry the scan id
                result = await asyncio.to_thread(self._execute_scan, root, channel)
            except asyncio.CancelledError:
                # Stop the worker thread; it notices between nodes
                session.cancel()
                channel.close()
                relay_task.cancel()
                raise
            except VeloxError as e:
                channel.close()
                await relay_task
                self._emit_error(e)
                raise

            channel.close()
            await relay_task

            logger.info(
                "Scan completed: %s in %dms",
                result.total_size_formatted,
                result.duration_ms,
                extra=scan_extra(
                    "completed",
                    files=result.total_files,
                    directories=result.total_directories,
                    bytes=result.total_size,
                    duration_ms=result.duration_ms,
                ),
            )
            self._emit(EVENT_COMPLETE, result.to_dict())
            return result

    def _execute_scan(self, root: str, channel: ProgressChannel) -> ScanResult:
        """Walk the tree. Runs in a worker thread."""
        session = self.session
        totals = ScanTotals()
        interval = self.config.progress_interval_ms / 1000
        start = time.monotonic()
        last_emit = start

        try:
            walker = DirectoryWalker(root, self.config).walk()
            try:
                while True:
                    if session.is_cancelled:
                        self._cancel(totals, channel, start)
                    try:
                        entry = next(walker)
                    except StopIteration:
                        break

                    totals.add(entry)

                    now = time.monotonic()
                    if now - last_emit >= interval:
                        channel.try_send(
                            self._snapshot(
                                totals,
                                entry.path,
                                self._elapsed_ms(start),
                                ScanStatus.SCANNING,
                            )
                        )
                        last_emit = now
            finally:
                walker.close()
        except VeloxError:
            raise
        except Exception as e:
            logger.exception(
                "Scan failed",
                extra=scan_extra(
                    "failed", files=totals.files, directories=totals.directories
                ),
            )
            session.transition(ScanStatus.ERROR)
            channel.send(
                self._snapshot(totals, "", self._elapsed_ms(start), ScanStatus.ERROR),
                timeout=TERMINAL_SEND_TIMEOUT,
            )
            raise ScanFailedError(session.id, str(e)) from e

        duration_ms = self._elapsed_ms(start)
        completed_at = utc_now_iso()
        session.transition(ScanStatus.COMPLETED)
        channel.send(
            self._snapshot(
                totals,
                "",
                duration_ms,
                ScanStatus.COMPLETED,
                percent_complete=100.0,
                estimated_total=totals.files + totals.directories,
            ),
            timeout=TERMINAL_SEND_TIMEOUT,
        )

        return ScanResult(
            scan_id=session.id,
            root_path=to_display_text(session.root_path),
            total_files=totals.files,
            total_directories=totals.directories,
            total_size=totals.bytes,
            total_size_formatted=format_file_size(totals.bytes),
            entries=tuple(totals.entries),
            duration_ms=duration_ms,
            completed_at=completed_at,
        )

    def _cancel(
        self, totals: ScanTotals, channel: ProgressChannel, start: float
    ) -> None:
        """Report cancellation and abort the walk. Entries are discarded."""
        session = self.session
        session.transition(ScanStatus.CANCELLED)
        channel.send(
            self._snapshot(totals, "", self._elapsed_ms(start), ScanStatus.CANCELLED),
            timeout=TERMINAL_SEND_TIMEOUT,
        )
        logger.info(
            "Scan cancelled after %dms",
            self._elapsed_ms(start),
            extra=scan_extra(
                "cancelled", files=totals.files, directories=totals.directories
            ),
        )
        raise ScanCancelledError(session.id)

    def _snapshot(
        self,
        totals: ScanTotals,
        current_path: str,
        elapsed: int,
        status: ScanStatus,
        percent_complete: float = 0.0,
        estimated_total: int | None = None,
    ) -> ScanProgress:
        return ScanProgress(
            scan_id=self.session.id,
            current_path=current_path,
            files_scanned=totals.files,
            directories_scanned=totals.directories,
            bytes_scanned=totals.bytes,
            bytes_formatted=totals.bytes_formatted,
            elapsed_ms=elapsed,
            percent_complete=percent_complete,
            status=status,
            estimated_total=estimated_total,
        )

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.monotonic() - start) * 1000)

    def _emit_error(self, error: VeloxError) -> None:
        self._emit(
            EVENT_ERROR,
            {"scan_id": self.session.id, "code": error.code, "error": error.message},
        )

    def _emit(self, event: str, payload: dict) -> None:
        try:
            self.observer.emit(event, payload)
        except Exception:
            logger.exception(
                "Observer failed handling %s for scan %s", event, self.session.id
            )
