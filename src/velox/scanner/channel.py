"""Bounded progress channel between the walker thread and the event loop.

The walker runs in a worker thread and must never stall on a slow consumer,
so regular snapshots go through ``try_send`` and are dropped when the
channel is full. Terminal snapshots use the blocking ``send`` so the
consumer always sees how a scan ended.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import AsyncIterator

from velox.scanner.models import ScanProgress

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100

_CLOSED = object()


class ProgressChannel:
    """Single-producer, single-consumer channel of ScanProgress snapshots.

    Capacity is enforced with a semaphore held by the producer per item and
    released by the consumer on receipt. Items are handed to the loop with
    ``call_soon_threadsafe`` so FIFO order is preserved.

    Attributes:
        sent: Snapshots accepted by the channel.
        dropped: Snapshots rejected because the channel was full or closed.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        """Initialize the channel.

        Args:
            loop: Event loop the consumer runs on.
            capacity: Maximum snapshots in flight.
        """
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self.sent = 0
        self.dropped = 0
        self._loop = loop
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._slots = threading.BoundedSemaphore(capacity)
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def try_send(self, snapshot: ScanProgress) -> bool:
        """Send without blocking.

        Returns:
            True if queued, False if dropped.
        """
        if self._closed or not self._slots.acquire(blocking=False):
            self._record_drop()
            return False
        return self._enqueue(snapshot)

    def send(self, snapshot: ScanProgress, timeout: float = 5.0) -> bool:
        """Send, waiting up to ``timeout`` seconds for space.

        Must not be called from the loop thread, since only the loop can
        free space.

        Returns:
            True if queued, False if the channel is closed or stayed full.
        """
        if self._closed or not self._slots.acquire(timeout=timeout):
            self._record_drop()
            logger.warning(
                "Terminal %s snapshot for scan %s could not be delivered",
                snapshot.status.value,
                snapshot.scan_id,
            )
            return False
        return self._enqueue(snapshot)

    def close(self) -> None:
        """Close the channel. Idempotent.

        Items sent before close are still delivered; the receive loop ends
        after them.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            try:
                self._loop.call_soon_threadsafe(self._queue.put_nowait, _CLOSED)
            except RuntimeError:
                # Loop already closed, nobody is receiving
                pass
        if self.dropped:
            logger.debug(
                "Progress channel closed: %d sent, %d dropped",
                self.sent,
                self.dropped,
            )

    async def receive(self) -> ScanProgress | None:
        """Wait for the next snapshot.

        Returns:
            The next snapshot, or None once the channel is closed and drained.
        """
        item = await self._queue.get()
        if item is _CLOSED:
            # Keep returning None on repeated calls
            self._queue.put_nowait(_CLOSED)
            return None
        self._slots.release()
        return item  # type: ignore[return-value]

    async def __aiter__(self) -> AsyncIterator[ScanProgress]:
        while True:
            snapshot = await self.receive()
            if snapshot is None:
                return
            yield snapshot

    def _enqueue(self, snapshot: ScanProgress) -> bool:
        with self._lock:
            if self._closed:
                self._slots.release()
                self.dropped += 1
                return False
            try:
                self._loop.call_soon_threadsafe(self._queue.put_nowait, snapshot)
            except RuntimeError:
                self._slots.release()
                self.dropped += 1
                return False
            self.sent += 1
            return True

    def _record_drop(self) -> None:
        with self._lock:
            self.dropped += 1
