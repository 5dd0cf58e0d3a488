"""Rich rendering of task queue status.

Builds a snapshot panel of a queue's counters and, optionally, the metrics
collected from it.
"""

from __future__ import annotations

import math

from rich.console import Console, Group
from rich.panel import Panel
from rich.style import Style
from rich.table import Table
from rich.text import Text

from aioprims.core.metrics import QueueMetrics
from aioprims.queue.task_queue import TaskQueue

STATE_STYLES: dict[str, Style] = {
    "idle": Style(color="green"),
    "running": Style(color="blue", bold=True),
    "paused": Style(color="yellow"),
    "saturated": Style(color="red", bold=True),
}


def queue_state(queue: TaskQueue) -> str:
    """Summarise a queue as one of ``idle``, ``running``, ``paused``, ``saturated``."""
    if queue.is_paused:
        return "paused"
    if queue.size == 0 and queue.pending == 0:
        return "idle"
    if queue.pending >= queue.concurrency and queue.size > 0:
        return "saturated"
    return "running"


def _format_limit(value: float | None) -> str:
    if value is None:
        return "-"
    if value == math.inf:
        return "unbounded"
    return str(value)


def build_status_table(queue: TaskQueue) -> Table:
    """Table of the queue's live counters."""
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("field", style="dim")
    table.add_column("value")

    state = queue_state(queue)
    table.add_row("state", Text(state, style=STATE_STYLES[state]))
    table.add_row("waiting", str(queue.size))
    table.add_row("in flight", str(queue.pending))
    table.add_row("concurrency", _format_limit(queue.concurrency))
    timeout = f"{queue.timeout}s" if queue.timeout is not None else "-"
    table.add_row("timeout", timeout)
    return table


def build_metrics_table(metrics: QueueMetrics) -> Table:
    """Table of counters and latency collected by :class:`QueueMetrics`."""
    summary = metrics.get_summary()
    tasks = summary["tasks"]
    latency = summary["latency"]

    table = Table(title="Metrics", title_justify="left", show_header=True)
    table.add_column("submitted", justify="right")
    table.add_column("fulfilled", justify="right", style="green")
    table.add_column("rejected", justify="right", style="red")
    table.add_column("peak", justify="right")
    table.add_column("avg ms", justify="right")
    table.add_column("p95 ms", justify="right")
    table.add_row(
        str(tasks["submitted"]),
        str(tasks["fulfilled"]),
        str(tasks["rejected"]),
        str(tasks["peak_pending"]),
        f"{latency['avg_ms']:.1f}",
        f"{latency['p95_ms']:.1f}",
    )
    return table


def render_queue_status(
    queue: TaskQueue,
    metrics: QueueMetrics | None = None,
    title: str = "Task queue",
) -> Panel:
    """Build a panel describing ``queue`` (and ``metrics`` if given)."""
    body: Table | Group = build_status_table(queue)
    if metrics is not None:
        body = Group(body, build_metrics_table(metrics))
    return Panel(body, title=title, expand=False)


def print_queue_status(
    queue: TaskQueue,
    metrics: QueueMetrics | None = None,
    console: Console | None = None,
) -> None:
    """Print a status panel for ``queue`` to ``console``."""
    (console or Console()).print(render_queue_status(queue, metrics))
