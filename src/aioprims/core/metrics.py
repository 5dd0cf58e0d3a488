"""Metrics collection for task queues.

Tracks:
- Submitted, started, fulfilled and rejected task counts
- Task run latency (from start to settle)
- Peak in-flight count
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from aioprims.queue.events import SettledResult
    from aioprims.queue.task_queue import TaskQueue


@dataclass
class LatencyStats:
    """Statistics for latency measurements."""

    count: int = 0
    total_ms: float = 0.0
    min_ms: float = float("inf")
    max_ms: float = 0.0
    values: list[float] = field(default_factory=list)

    def record(self, duration_ms: float) -> None:
        """Record a latency measurement.

        Args:
            duration_ms: Duration in milliseconds
        """
        self.count += 1
        self.total_ms += duration_ms
        self.min_ms = min(self.min_ms, duration_ms)
        self.max_ms = max(self.max_ms, duration_ms)
        self.values.append(duration_ms)

    @property
    def avg_ms(self) -> float:
        """Average latency in milliseconds."""
        return self.total_ms / self.count if self.count > 0 else 0.0

    def percentile(self, fraction: float) -> float:
        """Latency at the given fraction (0.5 for the median)."""
        if not self.values:
            return 0.0
        sorted_values = sorted(self.values)
        idx = int(len(sorted_values) * fraction)
        return sorted_values[min(idx, len(sorted_values) - 1)]

    @property
    def p50_ms(self) -> float:
        """50th percentile (median) latency."""
        return self.percentile(0.5)

    @property
    def p95_ms(self) -> float:
        """95th percentile latency."""
        return self.percentile(0.95)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "count": self.count,
            "total_ms": round(self.total_ms, 2),
            "avg_ms": round(self.avg_ms, 2),
            "min_ms": round(self.min_ms, 2) if self.min_ms != float("inf") else 0.0,
            "max_ms": round(self.max_ms, 2),
            "p50_ms": round(self.p50_ms, 2),
            "p95_ms": round(self.p95_ms, 2),
        }

    def reset(self) -> None:
        """Reset all statistics."""
        self.count = 0
        self.total_ms = 0.0
        self.min_ms = float("inf")
        self.max_ms = 0.0
        self.values.clear()


class QueueMetrics:
    """Collects lifecycle metrics from a :class:`TaskQueue`.

    Subscribes to the queue's events; call :meth:`detach` to stop.
    Run latency is taken from the duration each settled result carries.
    """

    def __init__(self, queue: TaskQueue | None = None) -> None:
        """Initialize metrics collector.

        Args:
            queue: Queue to observe immediately (optional)
        """
        self.submitted = 0
        self.started = 0
        self.fulfilled = 0
        self.rejected = 0
        self.peak_pending = 0
        self.latency = LatencyStats()
        self._queue: TaskQueue | None = None
        if queue is not None:
            self.attach(queue)

    def attach(self, queue: TaskQueue) -> None:
        """Start observing ``queue``."""
        from aioprims.queue.events import QueueEvent

        self.detach()
        self._queue = queue
        queue.on(QueueEvent.SUBMITTED, self._on_submitted)
        queue.on(QueueEvent.ACTIVE, self._on_active)
        queue.on(QueueEvent.SETTLED, self._on_settled)

    def detach(self) -> None:
        """Stop observing the current queue, if any."""
        from aioprims.queue.events import QueueEvent

        if self._queue is None:
            return
        self._queue.off(QueueEvent.SUBMITTED, self._on_submitted)
        self._queue.off(QueueEvent.ACTIVE, self._on_active)
        self._queue.off(QueueEvent.SETTLED, self._on_settled)
        self._queue = None

    def _on_submitted(self) -> None:
        self.submitted += 1

    def _on_active(self) -> None:
        self.started += 1
        if self._queue is not None:
            self.peak_pending = max(self.peak_pending, self._queue.pending)

    def _on_settled(self, result: SettledResult[Any]) -> None:
        if result.ok:
            self.fulfilled += 1
        else:
            self.rejected += 1
        if result.duration_ms is not None:
            self.latency.record(result.duration_ms)

    @property
    def settled(self) -> int:
        """Number of tasks that finished, successfully or not."""
        return self.fulfilled + self.rejected

    def get_summary(self) -> dict[str, Any]:
        """Get metrics summary.

        Returns:
            Dictionary with aggregated metrics
        """
        return {
            "tasks": {
                "submitted": self.submitted,
                "started": self.started,
                "fulfilled": self.fulfilled,
                "rejected": self.rejected,
                "success_rate": (
                    round(self.fulfilled / self.settled, 4) if self.settled else 0.0
                ),
                "peak_pending": self.peak_pending,
            },
            "latency": self.latency.to_dict(),
        }

    def reset(self) -> None:
        """Reset all metrics."""
        self.submitted = 0
        self.started = 0
        self.fulfilled = 0
        self.rejected = 0
        self.peak_pending = 0
        self.latency.reset()


class Timer:
    """Measures the run time of one queued task.

    Reading ``duration_ms`` inside the block gives the time elapsed so far;
    after the block it is fixed.

    Example:
        with Timer() as timer:
            result = await work()
        metrics.latency.record(timer.duration_ms)
    """

    def __init__(self, clock: Callable[[], float] = time.perf_counter) -> None:
        self._clock = clock
        self.start_time: float | None = None
        self.end_time: float | None = None

    def __enter__(self) -> Timer:
        self.start_time = self._clock()
        self.end_time = None
        return self

    def __exit__(self, *args: Any) -> None:
        self.end_time = self._clock()

    @property
    def running(self) -> bool:
        return self.start_time is not None and self.end_time is None

    @property
    def duration_seconds(self) -> float:
        """Elapsed seconds; 0 before the timer was entered."""
        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time is not None else self._clock()
        return end - self.start_time

    @property
    def duration_ms(self) -> float:
        return self.duration_seconds * 1000
