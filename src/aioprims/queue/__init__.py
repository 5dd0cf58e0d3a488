"""Priority task queue.

This module provides:
- Ordered priority list (descending priority, FIFO among equals)
- Concurrency-limited task queue with pause/resume and wait helpers
- Lifecycle events and settlement records
- Rich status rendering
"""

from aioprims.queue.display import (
    STATE_STYLES,
    build_metrics_table,
    build_status_table,
    print_queue_status,
    queue_state,
    render_queue_status,
)
from aioprims.queue.events import (
    EventEmitter,
    QueueEvent,
    SettledResult,
    SettleStatus,
)
from aioprims.queue.priority import (
    PriorityList,
    QueueEntry,
)
from aioprims.queue.task_queue import (
    UNBOUNDED,
    QueueOptions,
    TaskQueue,
    validate_concurrency,
)

__all__ = [
    # Priority list
    "PriorityList",
    "QueueEntry",
    # Events
    "EventEmitter",
    "QueueEvent",
    "SettledResult",
    "SettleStatus",
    # Queue
    "TaskQueue",
    "QueueOptions",
    "UNBOUNDED",
    "validate_concurrency",
    # Display
    "STATE_STYLES",
    "build_metrics_table",
    "build_status_table",
    "print_queue_status",
    "queue_state",
    "render_queue_status",
]
