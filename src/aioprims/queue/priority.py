"""Ordered priority list backing the task queue.

Entries are kept sorted by descending priority. Entries with equal priority
keep their insertion order, so the head is always the highest-priority,
oldest entry.
"""

from __future__ import annotations

import asyncio
from bisect import bisect_right
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from aioprims.cancellation import CancelListener, SignalLike
from aioprims.core.awaitables import Runnable

T = TypeVar("T")


@dataclass(eq=False)
class QueueEntry(Generic[T]):
    """A unit of work waiting in the queue.

    Attributes:
        runnable: The work to execute
        priority: Higher runs sooner
        future: Handle given to the submitter
        signal: Optional cancellation signal
        timeout: Per-entry timeout override in seconds
        started: Whether the entry has been dequeued
        abort_listener: Listener registered on ``signal`` while waiting
        task: Execution task once started
    """

    runnable: Runnable[T]
    priority: int = 0
    future: asyncio.Future[T] | None = None
    signal: SignalLike | None = None
    timeout: float | None = None
    started: bool = False
    abort_listener: CancelListener | None = field(default=None, repr=False)
    task: asyncio.Future[Any] | None = field(default=None, repr=False)


def _sort_key(entry: QueueEntry[Any]) -> int:
    return -entry.priority


class PriorityList:
    """Sequence of :class:`QueueEntry` ordered by descending priority."""

    def __init__(self) -> None:
        self._entries: list[QueueEntry[Any]] = []

    def insert(self, entry: QueueEntry[Any]) -> int:
        """Insert ``entry`` after every entry of greater or equal priority.

        Returns:
            Index the entry was placed at
        """
        # FIFO-dominated workloads almost always append
        if not self._entries or self._entries[-1].priority >= entry.priority:
            self._entries.append(entry)
            return len(self._entries) - 1

        index = bisect_right(self._entries, _sort_key(entry), key=_sort_key)
        self._entries.insert(index, entry)
        return index

    def pop_first(self) -> QueueEntry[Any] | None:
        """Remove and return the head entry, or None if empty."""
        if not self._entries:
            return None
        return self._entries.pop(0)

    def peek(self) -> QueueEntry[Any] | None:
        """Get the head entry without removing it."""
        return self._entries[0] if self._entries else None

    def remove(self, entry: QueueEntry[Any]) -> bool:
        """Remove a specific entry.

        Returns:
            True if the entry was present
        """
        for i, candidate in enumerate(self._entries):
            if candidate is entry:
                del self._entries[i]
                return True
        return False

    def clear(self) -> int:
        """Discard all entries without running or notifying them.

        Returns:
            Number of entries discarded
        """
        count = len(self._entries)
        self._entries = []
        return count

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __iter__(self) -> Iterator[QueueEntry[Any]]:
        return iter(list(self._entries))
