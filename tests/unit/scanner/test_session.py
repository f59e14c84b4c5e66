"""Tests for ScanSession and SessionRegistry."""

import logging
import threading

import pytest

from velox.scanner.exceptions import ScanNotFoundError, ScanStateError
from velox.scanner.models import ScanStatus
from velox.scanner.session import ScanSession, SessionRegistry


class TestScanSession:
    """Tests for ScanSession."""

    def test_starts_idle_with_uuid(self):
        session = ScanSession("/data")
        assert session.status is ScanStatus.IDLE
        assert len(session.id) == 36
        assert not session.is_cancelled

    def test_ids_are_unique(self):
        assert ScanSession("/a").id != ScanSession("/a").id

    def test_cancel_is_idempotent(self):
        session = ScanSession("/data")
        session.cancel()
        session.cancel()
        assert session.is_cancelled

    def test_cancel_visible_across_threads(self):
        session = ScanSession("/data")
        thread = threading.Thread(target=session.cancel)
        thread.start()
        thread.join()
        assert session.is_cancelled

    @pytest.mark.parametrize(
        "terminal",
        [ScanStatus.COMPLETED, ScanStatus.CANCELLED, ScanStatus.ERROR],
    )
    def test_legal_transitions(self, terminal):
        session = ScanSession("/data")
        session.transition(ScanStatus.SCANNING)
        session.transition(terminal)
        assert session.status is terminal

    def test_idle_cannot_complete(self):
        session = ScanSession("/data")
        with pytest.raises(ScanStateError):
            session.transition(ScanStatus.COMPLETED)

    def test_terminal_is_final(self):
        session = ScanSession("/data")
        session.transition(ScanStatus.SCANNING)
        session.transition(ScanStatus.CANCELLED)
        with pytest.raises(ScanStateError):
            session.transition(ScanStatus.SCANNING)
        assert session.status is ScanStatus.CANCELLED

    def test_cannot_start_twice(self):
        session = ScanSession("/data")
        session.transition(ScanStatus.SCANNING)
        with pytest.raises(ScanStateError):
            session.transition(ScanStatus.SCANNING)


class TestSessionRegistry:
    """Tests for SessionRegistry."""

    def test_register_and_lookup(self):
        registry = SessionRegistry()
        scan_id = registry.register("/data")
        session = registry.lookup(scan_id)
        assert session is not None
        assert session.root_path == "/data"
        assert len(registry) == 1

    def test_lookup_unknown(self):
        assert SessionRegistry().lookup("missing") is None

    def test_cancel_sets_flag(self):
        registry = SessionRegistry()
        scan_id = registry.register("/data")
        assert registry.cancel(scan_id) is True
        assert registry.lookup(scan_id).is_cancelled

    def test_cancel_unknown_returns_false(self):
        assert SessionRegistry().cancel("missing") is False

    def test_cancel_all(self):
        registry = SessionRegistry()
        ids = [registry.register(f"/d{i}") for i in range(3)]
        assert registry.cancel_all() == 3
        assert all(registry.lookup(i).is_cancelled for i in ids)

    def test_deregister(self):
        registry = SessionRegistry()
        scan_id = registry.register("/data")
        registry.deregister(scan_id)
        registry.deregister(scan_id)
        assert registry.lookup(scan_id) is None
        assert len(registry) == 0

    def test_active_count_only_scanning(self):
        registry = SessionRegistry()
        idle = ScanSession("/a")
        running = ScanSession("/b")
        running.transition(ScanStatus.SCANNING)
        registry.add(idle)
        registry.add(running)
        assert registry.active_count() == 1

    def test_get_status(self):
        registry = SessionRegistry()
        scan_id = registry.register("/data")
        assert registry.get_status(scan_id) is ScanStatus.IDLE
        with pytest.raises(ScanNotFoundError):
            registry.get_status("missing")

    def test_limit_is_advisory(self, caplog):
        registry = SessionRegistry(max_concurrent_scans=1)
        with caplog.at_level(logging.WARNING):
            registry.register("/a")
            registry.register("/b")
        assert len(registry) == 2
        assert "above the advisory limit" in caplog.text

    def test_concurrent_register(self):
        registry = SessionRegistry(max_concurrent_scans=1000)
        ids: list[str] = []
        lock = threading.Lock()

        def worker():
            for _ in range(50):
                scan_id = registry.register("/x")
                with lock:
                    ids.append(scan_id)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(registry) == 200
        assert len(set(ids)) == 200
