"""Unit tests for aioprims.queue.priority module."""

from __future__ import annotations

import pytest

from aioprims.queue.priority import PriorityList, QueueEntry


def _entry(priority: int, name: str = "") -> QueueEntry[str]:
    return QueueEntry(runnable=lambda: name, priority=priority)


@pytest.fixture
def entries() -> PriorityList:
    """Create an empty priority list."""
    return PriorityList()


class TestQueueEntry:
    """Tests for QueueEntry dataclass."""

    def test_defaults(self) -> None:
        """Entry starts unstarted with priority 0."""
        entry = QueueEntry(runnable=lambda: None)
        assert entry.priority == 0
        assert entry.started is False
        assert entry.future is None
        assert entry.signal is None
        assert entry.timeout is None

    def test_identity_equality(self) -> None:
        """Entries compare by identity, not by field values."""
        func = lambda: None  # noqa: E731
        assert QueueEntry(runnable=func) != QueueEntry(runnable=func)


class TestPriorityListInsert:
    """Tests for ordered insertion."""

    def test_empty_list(self, entries: PriorityList) -> None:
        """New list is empty."""
        assert len(entries) == 0
        assert not entries
        assert entries.peek() is None
        assert entries.pop_first() is None

    def test_higher_priority_first(self, entries: PriorityList) -> None:
        """Higher priorities are placed ahead of lower ones."""
        low = _entry(1)
        high = _entry(5)
        entries.insert(low)
        index = entries.insert(high)

        assert index == 0
        assert entries.peek() is high

    def test_equal_priority_fifo(self, entries: PriorityList) -> None:
        """Equal priorities keep insertion order."""
        first, second, third = _entry(3), _entry(3), _entry(3)
        for entry in (first, second, third):
            entries.insert(entry)

        assert list(entries) == [first, second, third]

    def test_inserts_after_equal_priorities(self, entries: PriorityList) -> None:
        """A new entry goes after existing entries of equal priority."""
        a, b, c = _entry(10), _entry(0), _entry(10)
        entries.insert(a)
        entries.insert(b)
        index = entries.insert(c)

        assert index == 1
        assert list(entries) == [a, c, b]

    def test_mixed_priorities(self, entries: PriorityList) -> None:
        """Mixed priorities are ordered descending, FIFO within a level."""
        items = [_entry(p, str(i)) for i, p in enumerate([10, 10, -1, 0, 5])]
        for item in items:
            entries.insert(item)

        assert [e.priority for e in entries] == [10, 10, 5, 0, -1]
        assert list(entries)[:2] == items[:2]

    def test_append_fast_path_returns_last_index(self, entries: PriorityList) -> None:
        """Non-increasing priorities append at the end."""
        assert entries.insert(_entry(5)) == 0
        assert entries.insert(_entry(5)) == 1
        assert entries.insert(_entry(-3)) == 2


class TestPriorityListRemoval:
    """Tests for pop, remove and clear."""

    def test_pop_first_returns_head(self, entries: PriorityList) -> None:
        """pop_first removes the head entry."""
        low, high = _entry(0), _entry(1)
        entries.insert(low)
        entries.insert(high)

        assert entries.pop_first() is high
        assert entries.pop_first() is low
        assert entries.pop_first() is None

    def test_peek_does_not_remove(self, entries: PriorityList) -> None:
        """peek leaves the entry in place."""
        entry = _entry(0)
        entries.insert(entry)

        assert entries.peek() is entry
        assert len(entries) == 1

    def test_remove_specific_entry(self, entries: PriorityList) -> None:
        """remove deletes the given entry only."""
        a, b, c = _entry(0), _entry(0), _entry(0)
        for entry in (a, b, c):
            entries.insert(entry)

        assert entries.remove(b) is True
        assert list(entries) == [a, c]

    def test_remove_missing_entry(self, entries: PriorityList) -> None:
        """remove returns False for an unknown entry."""
        entries.insert(_entry(0))
        assert entries.remove(_entry(0)) is False
        assert len(entries) == 1

    def test_clear_returns_count(self, entries: PriorityList) -> None:
        """clear discards everything and reports how much."""
        for priority in (1, 2, 3):
            entries.insert(_entry(priority))

        assert entries.clear() == 3
        assert len(entries) == 0

    def test_iteration_is_snapshot(self, entries: PriorityList) -> None:
        """Iterating while removing does not skip entries."""
        items = [_entry(0) for _ in range(3)]
        for item in items:
            entries.insert(item)

        seen = []
        for entry in entries:
            seen.append(entry)
            entries.remove(entry)

        assert seen == items
        assert len(entries) == 0
