"""Helpers for turning runnables into awaitables and abandoning tasks."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

T = TypeVar("T")

# A unit of work: an awaitable, or a zero-argument callable returning an
# awaitable or a plain value.
Runnable = Awaitable[T] | Callable[[], Awaitable[T] | T]


def is_runnable(obj: object) -> bool:
    """Check whether ``obj`` can be accepted as a unit of work."""
    return inspect.isawaitable(obj) or callable(obj)


async def _value(value: T) -> T:
    return value


def to_awaitable(runnable: Runnable[T]) -> Awaitable[T]:
    """Start ``runnable`` and return an awaitable of its outcome.

    Callables are invoked immediately. A synchronous exception from the call
    propagates to the caller; a plain return value is wrapped.
    """
    if inspect.isawaitable(runnable):
        return runnable
    result = runnable()
    if inspect.isawaitable(result):
        return result
    return _value(result)


def ensure_task(runnable: Runnable[T]) -> asyncio.Future[T]:
    """Start ``runnable`` as a task on the running loop.

    A synchronous exception from a callable is delivered through the
    returned future rather than raised.
    """
    try:
        awaitable = to_awaitable(runnable)
    except Exception as e:
        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        future.set_exception(e)
        return future
    return asyncio.ensure_future(awaitable)


def _consume_outcome(future: asyncio.Future[Any]) -> None:
    if not future.cancelled():
        future.exception()


def abandon(future: asyncio.Future[Any]) -> None:
    """Stop waiting on ``future``.

    Requests cancellation and marks its eventual outcome as retrieved, so a
    late failure of abandoned work is not reported as never retrieved.
    """
    future.cancel()
    future.add_done_callback(_consume_outcome)


def close_unstarted(runnable: object) -> None:
    """Close ``runnable`` if it is a coroutine that will never be awaited."""
    if asyncio.iscoroutine(runnable):
        runnable.close()
