"""Tests for the bounded progress channel."""

from __future__ import annotations

import asyncio
import threading

import pytest

from velox.scanner.channel import ProgressChannel
from velox.scanner.models import ScanProgress, ScanStatus


def make_snapshot(
    files: int = 0, status: ScanStatus = ScanStatus.SCANNING
) -> ScanProgress:
    return ScanProgress(
        scan_id="scan",
        current_path=f"/r/{files}",
        files_scanned=files,
        directories_scanned=1,
        bytes_scanned=files * 10,
        bytes_formatted=f"{files * 10} B",
        elapsed_ms=files,
        percent_complete=0.0,
        status=status,
    )


class TestProgressChannel:
    """Tests for ProgressChannel."""

    def test_rejects_zero_capacity(self):
        loop = asyncio.new_event_loop()
        try:
            with pytest.raises(ValueError):
                ProgressChannel(loop, capacity=0)
        finally:
            loop.close()

    @pytest.mark.asyncio
    async def test_delivers_in_order(self):
        channel = ProgressChannel(asyncio.get_running_loop(), capacity=10)
        for i in range(3):
            assert channel.try_send(make_snapshot(i))
        channel.close()

        received = [snapshot.files_scanned async for snapshot in channel]
        assert received == [0, 1, 2]
        assert channel.sent == 3

    @pytest.mark.asyncio
    async def test_try_send_drops_when_full(self):
        """A full channel rejects without blocking and counts the drop."""
        channel = ProgressChannel(asyncio.get_running_loop(), capacity=2)
        assert channel.try_send(make_snapshot(1))
        assert channel.try_send(make_snapshot(2))
        assert not channel.try_send(make_snapshot(3))
        assert channel.dropped == 1

        await channel.receive()
        assert channel.try_send(make_snapshot(4))

    @pytest.mark.asyncio
    async def test_closed_channel_rejects(self):
        channel = ProgressChannel(asyncio.get_running_loop())
        channel.close()
        channel.close()
        assert channel.closed
        assert not channel.try_send(make_snapshot())
        assert await channel.receive() is None
        assert await channel.receive() is None

    @pytest.mark.asyncio
    async def test_send_waits_for_space(self):
        """Blocking send from a worker thread completes once space frees."""
        channel = ProgressChannel(asyncio.get_running_loop(), capacity=1)
        assert channel.try_send(make_snapshot(1))

        result: list[bool] = []
        thread = threading.Thread(
            target=lambda: result.append(
                channel.send(make_snapshot(2, ScanStatus.COMPLETED), timeout=2.0)
            )
        )
        thread.start()

        first = await channel.receive()
        second = await channel.receive()
        await asyncio.to_thread(thread.join)

        assert first.files_scanned == 1
        assert second.status is ScanStatus.COMPLETED
        assert result == [True]

    @pytest.mark.asyncio
    async def test_send_times_out_when_full(self):
        channel = ProgressChannel(asyncio.get_running_loop(), capacity=1)
        channel.try_send(make_snapshot(1))

        delivered = await asyncio.to_thread(
            channel.send, make_snapshot(2, ScanStatus.ERROR), 0.05
        )

        assert delivered is False
        assert channel.dropped == 1
