"""Priority task queue with a concurrency ceiling.

Tasks run on the running asyncio loop. Entries wait in a priority list
(higher priority first, FIFO among equals) and are started whenever the
queue is not paused and fewer than ``concurrency`` tasks are in flight.
All bookkeeping happens synchronously around the tasks' suspension points,
so counts observed right after a call are exact.
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from functools import partial
from typing import Any, TypeVar

from aioprims.cancellation import SignalLike, with_signal
from aioprims.core.awaitables import (
    Runnable,
    close_unstarted,
    is_runnable,
    to_awaitable,
)
from aioprims.core.error_handling import GracefulErrorHandler
from aioprims.core.logging import LogLevel, StructuredLogger, get_logger
from aioprims.core.metrics import Timer
from aioprims.exceptions import CancellationError, ConfigurationError
from aioprims.queue.events import (
    EventEmitter,
    Listener,
    QueueEvent,
    SettledResult,
)
from aioprims.queue.priority import PriorityList, QueueEntry
from aioprims.timeout import validate_timeout, with_timeout

T = TypeVar("T")

UNBOUNDED = math.inf


def validate_concurrency(value: Any) -> int | float:
    """Validate a concurrency limit.

    Returns:
        The limit as an int, or ``math.inf`` for unbounded

    Raises:
        ConfigurationError: If the value is not a positive whole number.
    """
    if value == UNBOUNDED and not isinstance(value, bool):
        return UNBOUNDED
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigurationError(
            f"concurrency must be a positive integer or math.inf, got {value!r}",
            field="concurrency",
        )
    return value


@dataclass
class QueueOptions:
    """Construction options for :class:`TaskQueue`.

    Attributes:
        concurrency: Maximum in-flight tasks (``math.inf`` for unbounded)
        auto_start: Start dequeuing immediately; False creates a paused queue
        timeout: Default per-task timeout in seconds (None for no timeout)
    """

    concurrency: int | float = UNBOUNDED
    auto_start: bool = True
    timeout: float | None = None

    def __post_init__(self) -> None:
        self.concurrency = validate_concurrency(self.concurrency)
        self.timeout = validate_timeout(self.timeout)


@dataclass(eq=False)
class _Waiter:
    predicate: Callable[[], bool]
    future: asyncio.Future[None]


class TaskQueue:
    """Priority-ordered, concurrency-limited queue of asynchronous tasks.

    Example:
        queue = TaskQueue(concurrency=2)
        result = await queue.submit(fetch_page, priority=5)
        await queue.on_idle()
    """

    def __init__(
        self,
        concurrency: int | float = UNBOUNDED,
        auto_start: bool = True,
        timeout: float | None = None,
        *,
        logger: StructuredLogger | None = None,
        error_handler: GracefulErrorHandler | None = None,
    ) -> None:
        """Initialize the queue.

        Args:
            concurrency: Maximum in-flight tasks
            auto_start: False creates the queue paused
            timeout: Default per-task timeout in seconds
            logger: Structured logger (defaults to the ``queue`` logger)
            error_handler: Handler for listener exceptions

        Raises:
            ConfigurationError: If an option is invalid.
        """
        self._concurrency = validate_concurrency(concurrency)
        self._timeout = validate_timeout(timeout)
        self._paused = not auto_start
        self._pending = 0
        self._entries = PriorityList()
        self._emitter = EventEmitter("queue", error_handler)
        self._waiters: list[_Waiter] = []
        self._running: set[asyncio.Future[Any]] = set()
        self._processing = False
        self._reprocess = False
        self._logger = logger or get_logger("queue")

    @classmethod
    def from_options(cls, options: QueueOptions, **kwargs: Any) -> TaskQueue:
        """Create a queue from a :class:`QueueOptions`."""
        return cls(
            concurrency=options.concurrency,
            auto_start=options.auto_start,
            timeout=options.timeout,
            **kwargs,
        )

    # Properties

    @property
    def concurrency(self) -> int | float:
        """Maximum number of in-flight tasks."""
        return self._concurrency

    @concurrency.setter
    def concurrency(self, value: int | float) -> None:
        self._concurrency = validate_concurrency(value)
        self._process_queue()

    @property
    def timeout(self) -> float | None:
        """Default per-task timeout in seconds."""
        return self._timeout

    @timeout.setter
    def timeout(self, value: float | None) -> None:
        self._timeout = validate_timeout(value)

    @property
    def size(self) -> int:
        """Number of tasks waiting to start."""
        return len(self._entries)

    @property
    def pending(self) -> int:
        """Number of tasks in flight."""
        return self._pending

    @property
    def is_paused(self) -> bool:
        return self._paused

    # Subscriptions

    def on(self, event: QueueEvent, listener: Listener) -> None:
        """Subscribe to a lifecycle event."""
        self._emitter.on(event, listener)

    def once(self, event: QueueEvent, listener: Listener) -> None:
        """Subscribe to the next occurrence of a lifecycle event."""
        self._emitter.once(event, listener)

    def off(self, event: QueueEvent, listener: Listener) -> None:
        """Unsubscribe from a lifecycle event."""
        self._emitter.off(event, listener)

    # Submission

    def submit(
        self,
        runnable: Runnable[T],
        *,
        priority: int = 0,
        signal: SignalLike | None = None,
        timeout: float | None = None,
    ) -> asyncio.Future[T]:
        """Add a task to the queue.

        Must be called with a running event loop. If the queue has free
        capacity the task is started before this call returns: it counts as
        in flight immediately, and its body runs once the loop next yields.

        Args:
            runnable: Zero-argument callable (or awaitable) to run
            priority: Higher runs sooner; equal priorities run FIFO
            signal: Cancellation signal; firing it rejects the future with
                the signal's reason
            timeout: Per-task timeout in seconds, overriding the queue default

        Returns:
            Future resolving with the task's result or rejecting with its error

        Raises:
            ConfigurationError: If an argument is invalid.
        """
        self._validate_submission(runnable, priority)
        timeout = validate_timeout(timeout)

        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        entry: QueueEntry[T] = QueueEntry(
            runnable=runnable,
            priority=priority,
            future=future,
            signal=signal,
            timeout=timeout,
        )
        self._entries.insert(entry)
        future.add_done_callback(partial(self._on_future_done, entry))

        self._notify(QueueEvent.SUBMITTED)

        if signal is not None:
            if signal.cancelled:
                self._abort_waiting(entry, signal.reason)
            else:
                entry.abort_listener = partial(self._abort_waiting, entry)
                signal.add_listener(entry.abort_listener)

        self._process_queue()
        return future

    def submit_all(
        self,
        runnables: Iterable[Runnable[T]],
        *,
        priority: int = 0,
        signal: SignalLike | None = None,
        timeout: float | None = None,
        fail_fast: bool = False,
    ) -> asyncio.Future[list[Any]]:
        """Submit several tasks with the same options.

        Aggregation mode is explicit:

        - ``fail_fast=False`` (default): the future resolves to one
          :class:`SettledResult` per task, in submission order, once every
          task has settled. It never rejects, so completed work is never lost
          to a sibling's failure.
        - ``fail_fast=True``: the future resolves to the list of values, or
          rejects with the first error as soon as any task fails.

        Raises:
            ConfigurationError: If any runnable or option is invalid. Nothing
                is submitted in that case.
        """
        runnables = list(runnables)
        for runnable in runnables:
            self._validate_submission(runnable, priority)
        validate_timeout(timeout)

        futures = [
            self.submit(runnable, priority=priority, signal=signal, timeout=timeout)
            for runnable in runnables
        ]
        if fail_fast:
            return asyncio.gather(*futures)
        return asyncio.ensure_future(_settle_all(futures))

    def _validate_submission(self, runnable: Any, priority: Any) -> None:
        if not is_runnable(runnable):
            raise ConfigurationError(
                f"runnable must be callable or awaitable, got {type(runnable).__name__}",
                field="runnable",
            )
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise ConfigurationError(
                f"priority must be an integer, got {priority!r}",
                field="priority",
            )

    # Control

    def start(self) -> TaskQueue:
        """Resume dequeuing. No-op if the queue is not paused."""
        if not self._paused:
            return self
        self._paused = False
        self._process_queue()
        return self

    def pause(self) -> None:
        """Stop starting new tasks. In-flight tasks keep running."""
        self._paused = True

    def clear(self) -> int:
        """Discard every task that has not started.

        Discarded tasks never run and their futures never settle.
        In-flight tasks are not affected.

        Returns:
            Number of discarded tasks
        """
        for entry in self._entries:
            self._detach_signal(entry)
            close_unstarted(entry.runnable)
        count = self._entries.clear()
        self._check_waiters()
        return count

    # Waiting

    async def on_empty(self) -> None:
        """Wait until no task is waiting to start."""
        await self._wait_for(lambda: self.size == 0)

    async def on_size_below(self, limit: int) -> None:
        """Wait until fewer than ``limit`` tasks are waiting to start."""
        await self._wait_for(lambda: self.size < limit)

    async def on_idle(self) -> None:
        """Wait until nothing is waiting and nothing is in flight."""
        await self._wait_for(lambda: self.size == 0 and self._pending == 0)

    def _wait_for(self, predicate: Callable[[], bool]) -> Awaitable[None]:
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        if predicate():
            future.set_result(None)
        else:
            self._waiters.append(_Waiter(predicate=predicate, future=future))
        return future

    def _check_waiters(self) -> None:
        if not self._waiters:
            return
        remaining: list[_Waiter] = []
        for waiter in self._waiters:
            if waiter.future.done():
                continue
            if waiter.predicate():
                waiter.future.set_result(None)
            else:
                remaining.append(waiter)
        self._waiters = remaining

    # Scheduling

    def _notify(self, event: QueueEvent, *args: Any) -> None:
        if self._logger.is_enabled_for(LogLevel.DEBUG):
            self._logger.log_queue_event(event.value, self.size, self._pending)
        self._emitter.emit(event, *args)
        self._check_waiters()

    def _process_queue(self) -> None:
        # Listeners may re-enter (e.g. submit from an IDLE listener); the
        # outer pass picks their work up instead of nesting the loop.
        if self._processing:
            self._reprocess = True
            return
        self._processing = True
        try:
            while True:
                self._reprocess = False
                self._drain()
                if not self._reprocess:
                    break
        finally:
            self._processing = False

    def _drain(self) -> None:
        while True:
            if not self._entries:
                self._notify(QueueEvent.DRAINED)
                if not self._entries and self._pending == 0:
                    self._notify(QueueEvent.IDLE)
                return
            if self._paused or self._pending >= self._concurrency:
                return

            entry = self._entries.pop_first()
            if entry is None:
                return
            if entry.future is not None and entry.future.done():
                # Cancelled by the caller; its done-callback has not run yet
                self._detach_signal(entry)
                close_unstarted(entry.runnable)
                continue
            self._start(entry)

    def _start(self, entry: QueueEntry[Any]) -> None:
        entry.started = True
        self._detach_signal(entry)
        self._pending += 1
        self._notify(QueueEvent.ACTIVE)

        task = asyncio.ensure_future(self._execute(entry))
        entry.task = task
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def _execute(self, entry: QueueEntry[T]) -> None:
        future = entry.future
        assert future is not None
        timer = Timer()
        try:
            with timer:
                result = await self._run_entry(entry)
        except asyncio.CancelledError as cancelled:
            if not future.done():
                future.cancel()
            self._notify(
                QueueEvent.SETTLED,
                SettledResult.rejected(cancelled, duration_ms=timer.duration_ms),
            )
            raise
        except Exception as error:
            if not future.done():
                future.set_exception(error)
            self._notify(
                QueueEvent.SETTLED,
                SettledResult.rejected(error, duration_ms=timer.duration_ms),
            )
        else:
            if not future.done():
                future.set_result(result)
            self._notify(
                QueueEvent.SETTLED,
                SettledResult.fulfilled(result, duration_ms=timer.duration_ms),
            )
        finally:
            self._next()

    def _run_entry(self, entry: QueueEntry[T]) -> Awaitable[T]:
        operation: Runnable[T] = entry.runnable
        if entry.signal is not None:
            operation = with_signal(operation, entry.signal)
        timeout = entry.timeout if entry.timeout is not None else self._timeout
        if timeout is not None:
            operation = with_timeout(operation, timeout)
        return to_awaitable(operation)

    def _next(self) -> None:
        self._pending -= 1
        self._notify(QueueEvent.NEXT)
        self._process_queue()

    # Cancellation of waiting entries

    def _abort_waiting(
        self,
        entry: QueueEntry[Any],
        reason: BaseException | None,
    ) -> None:
        if entry.started:
            return
        if self._withdraw(entry) and entry.future is not None:
            if not entry.future.done():
                entry.future.set_exception(reason or CancellationError())
            self._process_queue()

    def _on_future_done(self, entry: QueueEntry[Any], future: asyncio.Future[Any]) -> None:
        if not future.cancelled():
            return
        if not entry.started:
            if self._withdraw(entry):
                self._process_queue()
        elif entry.task is not None and not entry.task.done():
            entry.task.cancel()

    def _withdraw(self, entry: QueueEntry[Any]) -> bool:
        self._detach_signal(entry)
        if not self._entries.remove(entry):
            return False
        close_unstarted(entry.runnable)
        self._check_waiters()
        return True

    @staticmethod
    def _detach_signal(entry: QueueEntry[Any]) -> None:
        if entry.signal is not None and entry.abort_listener is not None:
            entry.signal.remove_listener(entry.abort_listener)
            entry.abort_listener = None


async def _settle_all(futures: list[asyncio.Future[Any]]) -> list[SettledResult[Any]]:
    if futures:
        await asyncio.wait(futures)
    results: list[SettledResult[Any]] = []
    for future in futures:
        if future.cancelled():
            results.append(SettledResult.rejected(asyncio.CancelledError()))
        elif future.exception() is not None:
            results.append(SettledResult.rejected(future.exception()))
        else:
            results.append(SettledResult.fulfilled(future.result()))
    return results
