"""Timeout wrapper for a single asynchronous operation."""

from __future__ import annotations

import asyncio
import inspect
import math
from collections.abc import Awaitable, Callable
from typing import TypeVar

from aioprims.core.awaitables import Runnable, abandon, ensure_task
from aioprims.exceptions import ConfigurationError, TaskTimeoutError

T = TypeVar("T")

DEFAULT_TIMEOUT_MESSAGE = "Operation timed out"


def validate_timeout(timeout: float | None, field: str = "timeout") -> float | None:
    """Validate a timeout in seconds.

    ``None`` means no timeout.

    Raises:
        ConfigurationError: If the timeout is not a positive finite number.
    """
    if timeout is None:
        return None
    if (
        isinstance(timeout, bool)
        or not isinstance(timeout, int | float)
        or not math.isfinite(timeout)
        or timeout <= 0
    ):
        raise ConfigurationError(
            f"{field} must be a positive number of seconds, got {timeout!r}",
            field=field,
        )
    return float(timeout)


async def with_timeout(
    runnable: Runnable[T],
    timeout: float,
    *,
    message: str | None = None,
    fallback: Callable[[], T | Awaitable[T]] | None = None,
) -> T:
    """Run ``runnable``, giving up after ``timeout`` seconds.

    On expiry the work is abandoned. If ``fallback`` is given its result is
    returned instead of raising.

    Example:
        value = await with_timeout(fetch, 2.0, fallback=lambda: cached)

    Raises:
        ConfigurationError: If ``timeout`` is invalid.
        TaskTimeoutError: If the operation did not settle in time and no
            fallback was given.
    """
    validate_timeout(timeout)

    work = ensure_task(runnable)
    try:
        done, _ = await asyncio.wait({work}, timeout=timeout)
    except asyncio.CancelledError:
        abandon(work)
        raise

    if work in done:
        return work.result()

    abandon(work)
    if fallback is not None:
        value = fallback()
        if inspect.isawaitable(value):
            return await value
        return value
    raise TaskTimeoutError(message or DEFAULT_TIMEOUT_MESSAGE, timeout=timeout)
