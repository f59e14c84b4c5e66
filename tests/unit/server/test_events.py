"""Unit tests for the SSE event broadcaster."""

from __future__ import annotations

import json

from velox.scanner.observers import EVENT_COMPLETE, EVENT_PROGRESS
from velox.server.api import events
from velox.server.api.events import EventBroadcaster, format_sse_event


class TestEventBroadcaster:
    """Tests for EventBroadcaster."""

    def test_fans_out_to_all_subscribers(self):
        broadcaster = EventBroadcaster()
        first = broadcaster.subscribe()
        second = broadcaster.subscribe()

        broadcaster.emit(EVENT_PROGRESS, {"scan_id": "a"})

        assert first.queue.get_nowait() == (EVENT_PROGRESS, {"scan_id": "a"})
        assert second.queue.get_nowait() == (EVENT_PROGRESS, {"scan_id": "a"})

    def test_scan_filter(self):
        broadcaster = EventBroadcaster()
        only_b = broadcaster.subscribe(scan_id="b")

        broadcaster.emit(EVENT_PROGRESS, {"scan_id": "a"})
        broadcaster.emit(EVENT_COMPLETE, {"scan_id": "b"})

        assert only_b.queue.qsize() == 1
        assert only_b.queue.get_nowait()[0] == EVENT_COMPLETE

    def test_slow_subscriber_drops(self, monkeypatch):
        monkeypatch.setattr(events, "SSE_QUEUE_SIZE", 2)
        broadcaster = EventBroadcaster()
        subscription = broadcaster.subscribe()

        for i in range(5):
            broadcaster.emit(EVENT_PROGRESS, {"scan_id": "a", "n": i})

        assert subscription.queue.qsize() == 2
        assert subscription.dropped == 3

    def test_unsubscribe(self):
        broadcaster = EventBroadcaster()
        subscription = broadcaster.subscribe()
        broadcaster.unsubscribe(subscription)
        broadcaster.emit(EVENT_PROGRESS, {"scan_id": "a"})

        assert broadcaster.subscriber_count == 0
        assert subscription.queue.empty()

    def test_is_full(self):
        broadcaster = EventBroadcaster(max_subscribers=1)
        assert not broadcaster.is_full
        broadcaster.subscribe()
        assert broadcaster.is_full

    def test_close_sends_end_marker(self, monkeypatch):
        monkeypatch.setattr(events, "SSE_QUEUE_SIZE", 1)
        broadcaster = EventBroadcaster()
        subscription = broadcaster.subscribe()
        broadcaster.emit(EVENT_PROGRESS, {"scan_id": "a"})

        broadcaster.close()
        broadcaster.close()

        assert subscription.queue.get_nowait() is None

    def test_subscribe_after_close_ends_immediately(self):
        broadcaster = EventBroadcaster()
        broadcaster.close()
        assert broadcaster.subscribe().queue.get_nowait() is None


class TestFormatSseEvent:
    """Tests for format_sse_event."""

    def test_format(self):
        text = format_sse_event("scan:progress", {"files_scanned": 3})
        lines = text.split("\n")
        assert lines[0] == "event: scan:progress"
        assert json.loads(lines[1][len("data: ") :]) == {"files_scanned": 3}
        assert text.endswith("\n\n")
