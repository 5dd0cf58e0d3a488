"""Retry controller with exponential backoff.

A controller drives one logical operation through bounded attempts. The
operation reports each outcome back through :meth:`RetryController.retry`;
the controller decides whether another attempt follows and schedules it on
the running event loop.

Default backoff (seconds): 1, 2, 4, 8, ... capped at ``max_interval``.
"""

from __future__ import annotations

import asyncio
import inspect
import math
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from aioprims.core.awaitables import abandon
from aioprims.core.error_handling import (
    ErrorContext,
    ErrorSeverity,
    GracefulErrorHandler,
    get_error_handler,
)
from aioprims.core.logging import StructuredLogger, get_logger
from aioprims.exceptions import ConfigurationError, RetryTimeoutError

# Default retry configuration
DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_MIN_INTERVAL_SECONDS = 1.0
DEFAULT_BACKOFF_FACTOR = 2.0

# Intervals are computed at millisecond resolution
INTERVAL_RESOLUTION_SECONDS = 0.001

ErrorCallback = Callable[[BaseException, int, float], None]
IntervalFunction = Callable[[int], float | None]
Operation = Callable[[int], Any]


def _ignore_error(error: BaseException, attempt: int, interval: float) -> None:
    pass


class RetryState(Enum):
    """Lifecycle of a retry session."""

    PENDING = "pending"  # No attempt made yet
    ATTEMPT_IN_FLIGHT = "attempt_in_flight"
    WAITING = "waiting"  # Backoff timer scheduled
    TERMINAL = "terminal"  # Succeeded, exhausted or stopped


@dataclass
class RetryOptions:
    """Configuration for a :class:`RetryController`.

    Attributes:
        max_attempts: Attempts allowed before giving up (``math.inf`` for no limit)
        min_interval: First backoff interval in seconds
        max_interval: Upper bound for any interval in seconds
        max_elapsed_time: Overall deadline in seconds, measured from the first attempt
        backoff_factor: Multiplier applied per attempt (>= 1)
        randomize: Multiply the base interval by a random factor in [1, 2)
        on_error: Called with (error, attempt, next_interval) for every recorded error
        interval_fn: Replaces the backoff formula; returning None stops retrying
    """

    max_attempts: int | float = DEFAULT_MAX_ATTEMPTS
    min_interval: float = DEFAULT_MIN_INTERVAL_SECONDS
    max_interval: float = math.inf
    max_elapsed_time: float = math.inf
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR
    randomize: bool = False
    on_error: ErrorCallback = _ignore_error
    interval_fn: IntervalFunction | None = None

    def __post_init__(self) -> None:
        if self.min_interval < 0:
            raise ConfigurationError(
                "min_interval must be greater than or equal to 0",
                field="min_interval",
            )
        if self.max_interval < 0:
            raise ConfigurationError(
                "max_interval must be greater than or equal to 0",
                field="max_interval",
            )
        if self.max_elapsed_time < 0:
            raise ConfigurationError(
                "max_elapsed_time must be greater than or equal to 0",
                field="max_elapsed_time",
            )
        if self.backoff_factor < 1:
            raise ConfigurationError(
                "backoff_factor must be greater than or equal to 1",
                field="backoff_factor",
            )
        if self.max_attempts <= 0:
            raise ConfigurationError(
                "max_attempts must be greater than 0",
                field="max_attempts",
            )

        if self.min_interval > self.max_interval:
            self.max_interval = self.min_interval


def build_options(options: RetryOptions | None = None, **overrides: Any) -> RetryOptions:
    """Combine base options with keyword overrides (validated)."""
    if options is None:
        return RetryOptions(**overrides)
    if overrides:
        return replace(options, **overrides)
    return options


def calculate_interval(
    attempt: int,
    min_interval: float = DEFAULT_MIN_INTERVAL_SECONDS,
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
    max_interval: float = math.inf,
    randomize: bool = False,
    rng: Callable[[], float] = random.random,
) -> float:
    """Calculate the delay after a failed attempt.

    ``min(round(R * max(min_interval, 1ms)) * backoff_factor ** attempt, max_interval)``
    with ``R`` in [1, 2) when randomized, else 1.

    Args:
        attempt: The failed attempt index (0-indexed).
        min_interval: Base interval in seconds.
        backoff_factor: Multiplier per attempt.
        max_interval: Cap in seconds.
        randomize: Whether to apply jitter.
        rng: Source of uniform numbers in [0, 1).

    Returns:
        Delay in seconds.
    """
    multiplier = rng() + 1 if randomize else 1
    base = round(multiplier * max(min_interval, INTERVAL_RESOLUTION_SECONDS), 3)
    try:
        interval = base * backoff_factor**attempt
    except OverflowError:
        return max_interval
    return min(interval, max_interval)


class RetryController:
    """Drives one operation through retry attempts.

    Example:
        controller = RetryController(min_interval=0.5, max_attempts=5)

        async def call(attempt: int) -> None:
            try:
                result = await fetch()
            except Exception as e:
                if not controller.retry(e):
                    fail(controller.main_error)
            else:
                controller.retry(None)
                done(result)

        controller.attempt(call)
    """

    def __init__(
        self,
        options: RetryOptions | None = None,
        *,
        logger: StructuredLogger | None = None,
        error_handler: GracefulErrorHandler | None = None,
        clock: Callable[[], float] = time.monotonic,
        **overrides: Any,
    ) -> None:
        """Initialize the controller.

        Args:
            options: Retry options (defaults used when omitted)
            logger: Structured logger (defaults to the ``retry`` logger)
            error_handler: Reports failures of awaitable attempts that
                escape without calling :meth:`retry`
            clock: Monotonic clock in seconds
            **overrides: Individual :class:`RetryOptions` fields

        Raises:
            ConfigurationError: If an option is invalid.
        """
        self._options = build_options(options, **overrides)
        self._logger = logger or get_logger("retry")
        self._error_handler = error_handler
        self._clock = clock

        self._state = RetryState.PENDING
        self._operation: Operation | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._attempt_tasks: set[asyncio.Future[Any]] = set()
        self._errors: list[BaseException] = []
        self._start_time = 0.0
        self._attempt_count = 0
        self._cached_main_error: BaseException | None = None
        self._main_error_stale = True

    # Properties

    @property
    def options(self) -> RetryOptions:
        return self._options

    @property
    def state(self) -> RetryState:
        return self._state

    @property
    def attempt_count(self) -> int:
        """Index of the current attempt (number of retries performed)."""
        return self._attempt_count

    @property
    def errors(self) -> list[BaseException]:
        """Errors recorded in this session, oldest first."""
        return list(self._errors)

    @property
    def elapsed(self) -> float:
        """Seconds since the session's first attempt."""
        return self._clock() - self._start_time

    @property
    def main_error(self) -> BaseException | None:
        """The most frequently recorded error.

        Errors are grouped by message. On equal counts the error that
        reached the count last wins. Cached until a new error is recorded
        or the controller is stopped.
        """
        if not self._main_error_stale:
            return self._cached_main_error

        leader: BaseException | None = None
        leader_count = 0
        counts: dict[str, int] = {}
        for error in self._errors:
            message = str(error)
            count = counts.get(message, 0) + 1
            counts[message] = count
            if count >= leader_count:
                leader = error
                leader_count = count

        self._cached_main_error = leader
        self._main_error_stale = False
        return leader

    # Session control

    def attempt(self, operation: Operation) -> None:
        """Start the session: store ``operation`` and call it immediately.

        ``operation`` receives the attempt index. If it returns an
        awaitable, the awaitable is scheduled as a task.
        """
        self._operation = operation
        self._start_time = self._clock()
        self._invoke()

    def retry(self, error: BaseException | None) -> bool:
        """Report the outcome of the current attempt.

        Args:
            error: The attempt's error, or None on success

        Returns:
            True if another attempt has been scheduled
        """
        self._cancel_timer()

        if error is None:
            self._set_state(RetryState.TERMINAL, "succeeded")
            return False

        if self._operation is None:
            # Stopped or never started: nothing to record or schedule
            self._set_state(RetryState.TERMINAL, "stopped")
            return False

        attempt = self._attempt_count
        if self.elapsed >= self._options.max_elapsed_time:
            self._record(error, attempt, 0)
            self._errors = []
            self._record(RetryTimeoutError(attempts=attempt + 1), attempt, 0)
            self._give_up("deadline exceeded")
            return False

        interval = self.next_interval(attempt)
        self._record(error, attempt, interval if interval is not None else 0)

        if interval is None:
            self._give_up("attempts exhausted")
            return False

        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(interval, self._fire)
        self._logger.log_retry_scheduled(attempt, interval, error)
        self._set_state(RetryState.WAITING, "backoff scheduled")
        return True

    def next_interval(self, attempt: int) -> float | None:
        """Interval to wait after ``attempt`` failed, or None to stop."""
        if attempt >= self._options.max_attempts:
            return None
        if self._options.interval_fn is not None:
            return self._options.interval_fn(attempt)
        return calculate_interval(
            attempt,
            min_interval=self._options.min_interval,
            backoff_factor=self._options.backoff_factor,
            max_interval=self._options.max_interval,
            randomize=self._options.randomize,
        )

    def reset(self) -> None:
        """Stop and zero the attempt count, ready for a new :meth:`attempt`."""
        self.stop()
        self._attempt_count = 0
        self._set_state(RetryState.PENDING, "reset")

    def stop(self) -> None:
        """Cancel any scheduled attempt and clear the error history.

        Idempotent. A timer that already fired cannot start a new attempt
        afterwards because the stored operation is released.
        """
        self._cancel_timer()
        self._operation = None
        self._errors = []
        self._cached_main_error = None
        self._main_error_stale = True
        self._set_state(RetryState.TERMINAL, "stopped")

    def cancel_inflight(self) -> None:
        """Abandon attempt tasks that are still running."""
        for task in list(self._attempt_tasks):
            abandon(task)
        self._attempt_tasks.clear()

    # Internals

    def _invoke(self) -> None:
        operation = self._operation
        if operation is None:
            return
        self._set_state(RetryState.ATTEMPT_IN_FLIGHT, f"attempt {self._attempt_count}")
        result = operation(self._attempt_count)
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._attempt_tasks.add(task)
            task.add_done_callback(self._on_attempt_done)

    def _on_attempt_done(self, task: asyncio.Future[Any]) -> None:
        self._attempt_tasks.discard(task)
        if task.cancelled() or task.exception() is None:
            return
        error = task.exception()
        handler = self._error_handler or get_error_handler()
        handler.handle_error(
            error,
            ErrorContext(
                operation="attempt",
                component="retry",
                additional_info={"attempt": self._attempt_count},
            ),
            ErrorSeverity.ERROR,
        )

    def _fire(self) -> None:
        self._timer = None
        if self._operation is None or self._state is not RetryState.WAITING:
            return
        self._attempt_count += 1
        self._invoke()

    def _record(self, error: BaseException, attempt: int, interval: float) -> None:
        self._options.on_error(error, attempt, interval)
        self._errors.append(error)
        self._main_error_stale = True

    def _give_up(self, reason: str) -> None:
        self._set_state(RetryState.TERMINAL, reason)
        self._logger.log_retry_exhausted(
            attempts=self._attempt_count + 1,
            main_error=self.main_error,
            duration_ms=round(self.elapsed * 1000, 2),
        )

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _set_state(self, state: RetryState, reason: str = "") -> None:
        if state is self._state:
            return
        self._logger.log_state_transition(self._state.value, state.value, reason)
        self._state = state
