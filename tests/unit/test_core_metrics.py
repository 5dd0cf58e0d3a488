"""Unit tests for aioprims.core.metrics module."""

from __future__ import annotations

import asyncio
import time

import pytest

from aioprims.core.metrics import LatencyStats, QueueMetrics, Timer
from aioprims.queue.events import SettledResult
from aioprims.queue.task_queue import TaskQueue


class TestLatencyStats:
    """Tests for LatencyStats."""

    def test_empty(self) -> None:
        """Empty stats report zeros."""
        stats = LatencyStats()
        assert stats.avg_ms == 0.0
        assert stats.p50_ms == 0.0
        assert stats.to_dict()["min_ms"] == 0.0

    def test_record(self) -> None:
        """Recording updates count, min, max and average."""
        stats = LatencyStats()
        for value in (10.0, 20.0, 30.0):
            stats.record(value)

        assert stats.count == 3
        assert stats.min_ms == 10.0
        assert stats.max_ms == 30.0
        assert stats.avg_ms == 20.0

    def test_percentiles(self) -> None:
        """Percentiles pick from the sorted values."""
        stats = LatencyStats()
        for value in range(1, 101):
            stats.record(float(value))

        assert stats.p50_ms == 51.0
        assert stats.p95_ms == 96.0
        assert stats.percentile(1.0) == 100.0

    def test_reset(self) -> None:
        """reset() clears all measurements."""
        stats = LatencyStats()
        stats.record(5.0)
        stats.reset()
        assert stats.count == 0
        assert stats.values == []
        assert stats.min_ms == float("inf")


class TestQueueMetrics:
    """Tests for QueueMetrics."""

    def test_counts_from_events(self) -> None:
        """Event handlers update the counters."""
        metrics = QueueMetrics()
        metrics._on_submitted()
        metrics._on_active()
        metrics._on_settled(SettledResult.fulfilled(1, duration_ms=5.0))
        metrics._on_submitted()
        metrics._on_active()
        metrics._on_settled(SettledResult.rejected(ValueError("x"), duration_ms=7.0))

        assert metrics.submitted == 2
        assert metrics.started == 2
        assert metrics.fulfilled == 1
        assert metrics.rejected == 1
        assert metrics.settled == 2
        assert metrics.latency.count == 2
        assert metrics.latency.values == [5.0, 7.0]

    def test_result_without_duration_is_not_timed(self) -> None:
        """Results settled outside a queue do not add latency samples."""
        metrics = QueueMetrics()
        metrics._on_settled(SettledResult.fulfilled(1))

        assert metrics.fulfilled == 1
        assert metrics.latency.count == 0

    def test_summary(self) -> None:
        """get_summary() groups task counters and latency."""
        metrics = QueueMetrics()
        metrics._on_active()
        metrics._on_settled(SettledResult.fulfilled(None, duration_ms=3.0))

        summary = metrics.get_summary()
        assert summary["tasks"]["fulfilled"] == 1
        assert summary["tasks"]["success_rate"] == 1.0
        assert summary["latency"]["count"] == 1

    def test_success_rate_without_tasks(self) -> None:
        """An unused collector reports a zero success rate."""
        assert QueueMetrics().get_summary()["tasks"]["success_rate"] == 0.0

    def test_reset(self) -> None:
        """reset() zeroes every counter."""
        metrics = QueueMetrics()
        metrics._on_submitted()
        metrics._on_active()
        metrics.reset()

        assert metrics.submitted == 0
        assert metrics.started == 0
        assert metrics.latency.count == 0

    @pytest.mark.asyncio
    async def test_attach_to_new_queue_detaches_old(self) -> None:
        """Attaching to another queue stops observing the first."""
        first = TaskQueue()
        second = TaskQueue()
        metrics = QueueMetrics(first)
        metrics.attach(second)

        await first.submit(lambda: 1)
        await second.submit(lambda: 2)

        assert metrics.submitted == 1
        assert metrics.fulfilled == 1

    @pytest.mark.asyncio
    async def test_latency_measured_per_task(self) -> None:
        """Each task's latency comes from its own run, not its start order."""
        queue = TaskQueue()
        metrics = QueueMetrics(queue)

        async def slow() -> None:
            await asyncio.sleep(0.1)

        queue.submit(slow)
        queue.submit(lambda: None)
        await queue.on_idle()

        fast_ms, slow_ms = metrics.latency.values
        assert fast_ms < 50
        assert slow_ms >= 90


class TestTimer:
    """Tests for Timer."""

    def test_measures_duration(self) -> None:
        """Timer measures elapsed wall time."""
        with Timer() as timer:
            time.sleep(0.01)

        assert timer.duration_seconds >= 0.009
        assert timer.duration_ms == pytest.approx(timer.duration_seconds * 1000)

    def test_not_started(self) -> None:
        """A timer that was never entered reports zero."""
        timer = Timer()
        assert not timer.running
        assert timer.duration_ms == 0.0

    def test_reads_elapsed_while_running(self) -> None:
        """duration_ms inside the block is the time elapsed so far."""
        now = [10.0]
        timer = Timer(clock=lambda: now[0])

        with timer:
            now[0] = 10.5
            assert timer.running
            assert timer.duration_seconds == 0.5
            now[0] = 12.0

        now[0] = 99.0
        assert not timer.running
        assert timer.duration_seconds == 2.0
        assert timer.duration_ms == 2000.0
