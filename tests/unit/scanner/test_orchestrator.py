"""Tests for DirectoryScanner end-to-end behaviour."""

from __future__ import annotations

import asyncio
import logging
import threading
from pathlib import Path

import pytest

from velox.scanner import walker as walker_module
from velox.scanner.exceptions import (
    INVALID_PATH,
    SCAN_CANCELLED,
    InvalidPathError,
    ScanCancelledError,
    ScanFailedError,
    ScanStateError,
)
from velox.scanner.models import ScanConfig, ScanStatus
from velox.scanner.observers import (
    EVENT_COMPLETE,
    EVENT_ERROR,
    EVENT_PROGRESS,
    RecordingObserver,
)
from velox.scanner.orchestrator import DirectoryScanner, validate_root
from velox.scanner.session import ScanSession

# Emit and forward every snapshot so event sequences are complete
EAGER = ScanConfig(progress_interval_ms=0)


def make_scanner(root, config=EAGER, **kwargs):
    session = ScanSession(str(root))
    observer = RecordingObserver()
    scanner = DirectoryScanner(
        session, config, observer, relay_interval_ms=0, **kwargs
    )
    return scanner, session, observer


def cancel_after(monkeypatch, session: ScanSession, calls: int) -> None:
    """Request cancellation once the walker has read ``calls`` entries."""
    real_read = walker_module.read_metadata
    seen = 0

    def counting_read(path, *, follow_symlinks):
        nonlocal seen
        seen += 1
        if seen == calls:
            session.cancel()
        return real_read(path, follow_symlinks=follow_symlinks)

    monkeypatch.setattr(walker_module, "read_metadata", counting_read)


class TestValidateRoot:
    """Tests for validate_root."""

    def test_returns_absolute_path(self, sample_tree: Path, monkeypatch):
        monkeypatch.chdir(sample_tree.parent)
        assert validate_root("root") == str(sample_tree)

    @pytest.mark.parametrize("path", ["", "   "])
    def test_empty(self, path):
        with pytest.raises(InvalidPathError, match="Path is empty"):
            validate_root(path)

    def test_missing(self, tmp_path: Path):
        with pytest.raises(InvalidPathError, match="Path does not exist"):
            validate_root(str(tmp_path / "nope"))

    def test_file(self, sample_tree: Path):
        with pytest.raises(InvalidPathError, match="Path is not a directory"):
            validate_root(str(sample_tree / "a.txt"))


class TestScanCompletion:
    """Tests for successful scans."""

    @pytest.mark.asyncio
    async def test_sample_tree_totals(self, sample_tree: Path):
        """Three files plus a subdirectory file, root counted as a directory."""
        scanner, session, _ = make_scanner(sample_tree)
        result = await scanner.scan()

        assert result.total_files == 4
        assert result.total_size == 65
        assert result.total_directories == 2
        assert len(result.entries) == 6
        assert result.status is ScanStatus.COMPLETED
        assert result.scan_id == session.id
        assert session.status is ScanStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_empty_directory(self, tmp_path: Path):
        scanner, _, _ = make_scanner(tmp_path)
        result = await scanner.scan()

        assert result.total_files == 0
        assert result.total_directories == 1
        assert len(result.entries) == 1
        assert result.total_size_formatted == "0 B"

    @pytest.mark.asyncio
    async def test_max_depth_zero(self, sample_tree: Path):
        scanner, _, _ = make_scanner(
            sample_tree, ScanConfig(max_depth=0, progress_interval_ms=0)
        )
        result = await scanner.scan()
        assert [entry.depth for entry in result.entries] == [0]

    @pytest.mark.asyncio
    async def test_progress_monotonic(self, wide_tree: Path):
        scanner, _, observer = make_scanner(wide_tree)
        await scanner.scan()

        progress = observer.named(EVENT_PROGRESS)
        assert len(progress) > 1
        for key in ("files_scanned", "directories_scanned", "bytes_scanned"):
            values = [payload[key] for payload in progress]
            assert values == sorted(values)

    @pytest.mark.asyncio
    async def test_terminal_snapshot_precedes_complete(self, sample_tree: Path):
        scanner, _, observer = make_scanner(sample_tree)
        result = await scanner.scan()

        assert observer.names[-1] == EVENT_COMPLETE
        final = observer.named(EVENT_PROGRESS)[-1]
        assert final["status"] == "completed"
        assert final["percent_complete"] == 100.0
        assert final["estimated_total"] == 6
        assert final["current_path"] == ""
        assert final["files_scanned"] == result.total_files
        complete = observer.named(EVENT_COMPLETE)[0]
        assert complete["total_size"] == 65

    @pytest.mark.asyncio
    async def test_mid_scan_percent_is_zero(self, wide_tree: Path):
        scanner, _, observer = make_scanner(wide_tree)
        await scanner.scan()

        scanning = [
            p for p in observer.named(EVENT_PROGRESS) if p["status"] == "scanning"
        ]
        assert scanning
        assert all(p["percent_complete"] == 0.0 for p in scanning)

    @pytest.mark.asyncio
    async def test_session_cannot_be_reused(self, sample_tree: Path):
        scanner, session, _ = make_scanner(sample_tree)
        await scanner.scan()
        with pytest.raises(ScanStateError):
            await DirectoryScanner(session, EAGER).scan()

    @pytest.mark.asyncio
    async def test_tiny_channel_still_completes(self, wide_tree: Path):
        """Dropped snapshots never stall the walk or lose the terminal one."""
        scanner, _, observer = make_scanner(wide_tree, channel_capacity=1)
        result = await scanner.scan()

        assert result.total_files == 200
        assert observer.named(EVENT_PROGRESS)[-1]["status"] == "completed"


class TestScanFailure:
    """Tests for rejected and failed scans."""

    @pytest.mark.asyncio
    async def test_missing_root(self, tmp_path: Path):
        scanner, session, observer = make_scanner(tmp_path / "missing")

        with pytest.raises(InvalidPathError):
            await scanner.scan()

        assert session.status is ScanStatus.ERROR
        assert observer.names == [EVENT_ERROR]
        assert observer.named(EVENT_ERROR)[0]["code"] == INVALID_PATH

    @pytest.mark.asyncio
    async def test_unexpected_error_wrapped(self, sample_tree: Path, monkeypatch):
        def broken_open(path):
            raise RuntimeError("listing exploded")

        monkeypatch.setattr(walker_module, "open_directory", broken_open)
        scanner, session, observer = make_scanner(sample_tree)

        with pytest.raises(ScanFailedError) as exc_info:
            await scanner.scan()

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert session.status is ScanStatus.ERROR
        assert observer.named(EVENT_PROGRESS)[-1]["status"] == "error"
        assert observer.names[-1] == EVENT_ERROR

    @pytest.mark.asyncio
    async def test_unreadable_entry_does_not_fail(
        self, sample_tree: Path, monkeypatch
    ):
        real_read = walker_module.read_metadata

        def failing_read(path, *, follow_symlinks):
            if path.endswith("c"):
                raise PermissionError(13, "Permission denied", path)
            return real_read(path, follow_symlinks=follow_symlinks)

        monkeypatch.setattr(walker_module, "read_metadata", failing_read)
        scanner, _, _ = make_scanner(sample_tree)
        result = await scanner.scan()

        assert result.status is ScanStatus.COMPLETED
        assert result.total_size == 35
        assert len(result.entries) == 6


class TestCancellation:
    """Tests for cooperative cancellation."""

    @pytest.mark.asyncio
    async def test_cancel_mid_walk(self, wide_tree: Path, monkeypatch):
        scanner, session, observer = make_scanner(wide_tree)
        cancel_after(monkeypatch, session, calls=25)

        with pytest.raises(ScanCancelledError):
            await scanner.scan()

        assert session.status is ScanStatus.CANCELLED
        assert EVENT_COMPLETE not in observer.names
        final = observer.named(EVENT_PROGRESS)[-1]
        assert final["status"] == "cancelled"
        # Stops at the next entry boundary
        assert final["files_scanned"] + final["directories_scanned"] == 25
        assert observer.named(EVENT_ERROR)[0]["code"] == SCAN_CANCELLED

    @pytest.mark.asyncio
    async def test_cancel_before_start(self, sample_tree: Path):
        scanner, session, observer = make_scanner(sample_tree)
        session.cancel()

        with pytest.raises(ScanCancelledError):
            await scanner.scan()

        final = observer.named(EVENT_PROGRESS)[-1]
        assert final["files_scanned"] == 0
        assert final["directories_scanned"] == 0

    @pytest.mark.asyncio
    async def test_task_cancellation_stops_walker(
        self, sample_tree: Path, monkeypatch
    ):
        """Cancelling the awaiting task also stops the worker thread."""
        entered = threading.Event()
        release = threading.Event()
        real_read = walker_module.read_metadata

        def blocking_read(path, *, follow_symlinks):
            entered.set()
            release.wait(5)
            return real_read(path, follow_symlinks=follow_symlinks)

        monkeypatch.setattr(walker_module, "read_metadata", blocking_read)
        scanner, session, _ = make_scanner(sample_tree)

        task = asyncio.create_task(scanner.scan())
        await asyncio.to_thread(entered.wait, 5)
        task.cancel()
        release.set()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert session.is_cancelled
        for _ in range(200):
            if session.status is ScanStatus.CANCELLED:
                break
            await asyncio.sleep(0.01)
        assert session.status is ScanStatus.CANCELLED


class TestLifecycleLogging:
    """Scan lifecycle records carry an event name and counters."""

    @staticmethod
    def _events(caplog) -> dict[str, logging.LogRecord]:
        return {
            record.scan_event: record
            for record in caplog.records
            if getattr(record, "scan_event", None)
        }

    @pytest.mark.asyncio
    async def test_started_and_completed(self, sample_tree: Path, caplog):
        scanner, _, _ = make_scanner(sample_tree)
        with caplog.at_level(logging.INFO, logger="velox.scanner"):
            await scanner.scan()

        events = self._events(caplog)
        assert set(events) == {"started", "completed"}
        assert events["started"].scan_stats["max_depth"] == EAGER.max_depth
        stats = events["completed"].scan_stats
        assert (stats["files"], stats["directories"], stats["bytes"]) == (4, 2, 65)
        assert stats["duration_ms"] >= 0

    @pytest.mark.asyncio
    async def test_cancelled(self, wide_tree: Path, monkeypatch, caplog):
        scanner, session, _ = make_scanner(wide_tree)
        cancel_after(monkeypatch, session, calls=10)

        with caplog.at_level(logging.INFO, logger="velox.scanner"):
            with pytest.raises(ScanCancelledError):
                await scanner.scan()

        stats = self._events(caplog)["cancelled"].scan_stats
        assert stats["files"] + stats["directories"] == 10

    @pytest.mark.asyncio
    async def test_rejected(self, tmp_path: Path, caplog):
        scanner, _, _ = make_scanner(tmp_path / "missing")
        with caplog.at_level(logging.INFO, logger="velox.scanner"):
            with pytest.raises(InvalidPathError):
                await scanner.scan()

        assert set(self._events(caplog)) == {"rejected"}
