"""Debounce calls to a function on the running event loop."""

from __future__ import annotations

import asyncio
import math
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from aioprims.core.awaitables import ensure_task
from aioprims.core.logging import get_logger
from aioprims.exceptions import ConfigurationError

T = TypeVar("T")


def debounce(
    func: Callable[..., Awaitable[T] | T],
    seconds: float,
) -> Callable[..., asyncio.Future[T]]:
    """Delay ``func`` until calls stop arriving for ``seconds``.

    Every call restarts the timer and replaces the arguments. When the
    timer fires, ``func`` runs once with the arguments of the last call and
    every caller since the previous run receives the same outcome.

    Args:
        func: Sync or async function to debounce
        seconds: Quiet period in seconds (>= 0)

    Returns:
        A function returning a future for the shared outcome

    Raises:
        ConfigurationError: If ``seconds`` is negative or not a number.
    """
    if (
        isinstance(seconds, bool)
        or not isinstance(seconds, (int, float))
        or math.isnan(seconds)
        or seconds < 0
    ):
        raise ConfigurationError(
            f"Expected seconds to be a number >= 0, got {seconds!r}",
            field="seconds",
        )

    logger = get_logger("debounce")
    waiters: list[asyncio.Future[T]] = []
    timer: asyncio.TimerHandle | None = None
    last_call: tuple[tuple[Any, ...], dict[str, Any]] = ((), {})

    def settle(outcome: asyncio.Future[T], batch: list[asyncio.Future[T]]) -> None:
        for waiter in batch:
            if waiter.done():
                continue
            if outcome.cancelled():
                waiter.cancel()
            elif outcome.exception() is not None:
                waiter.set_exception(outcome.exception())
            else:
                waiter.set_result(outcome.result())

    def fire() -> None:
        nonlocal timer
        timer = None
        batch = waiters[:]
        waiters.clear()
        args, kwargs = last_call
        logger.debug(
            "Debounced call fired",
            event_type="debounce_fired",
            callers=len(batch),
        )
        outcome = ensure_task(lambda: func(*args, **kwargs))
        outcome.add_done_callback(lambda done: settle(done, batch))

    def call(*args: Any, **kwargs: Any) -> asyncio.Future[T]:
        nonlocal timer, last_call
        loop = asyncio.get_running_loop()
        if timer is not None:
            timer.cancel()
        last_call = (args, kwargs)
        waiter: asyncio.Future[T] = loop.create_future()
        waiters.append(waiter)
        timer = loop.call_later(seconds, fire)
        return waiter

    return call
