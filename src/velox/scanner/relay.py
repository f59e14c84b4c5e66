"""Progress relay: drains the channel and forwards snapshots to an observer.

The relay throttles forwarding independently of the walker. A Scanning
snapshot is forwarded only if ``interval_ms`` has passed since the last
forward; snapshots with any other status are always forwarded.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from velox.scanner.channel import ProgressChannel
from velox.scanner.models import ScanStatus
from velox.scanner.observers import EVENT_PROGRESS, ScanObserver

logger = logging.getLogger(__name__)

DEFAULT_RELAY_INTERVAL_MS = 50


class ProgressRelay:
    """Forwards snapshots from a ProgressChannel to a ScanObserver.

    Attributes:
        forwarded: Number of snapshots delivered to the observer.
        skipped: Number of Scanning snapshots held back by throttling.
    """

    def __init__(
        self,
        channel: ProgressChannel,
        observer: ScanObserver,
        interval_ms: int = DEFAULT_RELAY_INTERVAL_MS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the relay.

        Args:
            channel: Channel to drain.
            observer: Destination for forwarded snapshots.
            interval_ms: Minimum spacing between forwarded Scanning snapshots.
            clock: Monotonic clock in seconds, injectable for tests.
        """
        self.channel = channel
        self.observer = observer
        self.interval_ms = interval_ms
        self.forwarded = 0
        self.skipped = 0
        self._clock = clock

    async def run(self) -> int:
        """Drain the channel until it is closed.

        Returns:
            Number of snapshots forwarded.
        """
        interval = self.interval_ms / 1000
        last_forward = self._clock()

        async for snapshot in self.channel:
            now = self._clock()
            is_terminal = snapshot.status is not ScanStatus.SCANNING
            if not is_terminal and now - last_forward < interval:
                self.skipped += 1
                continue

            try:
                self.observer.emit(EVENT_PROGRESS, snapshot.to_dict())
            except Exception:
                logger.exception(
                    "Progress observer failed for scan %s", snapshot.scan_id
                )
            self.forwarded += 1
            last_forward = now

        logger.debug(
            "Progress relay finished: %d forwarded, %d skipped",
            self.forwarded,
            self.skipped,
        )
        return self.forwarded
