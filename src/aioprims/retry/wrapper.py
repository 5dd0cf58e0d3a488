"""Retry wrapper for async (or sync) callables."""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Awaitable, Callable
from typing import Any, ParamSpec, TypeVar

from aioprims.cancellation import SignalLike
from aioprims.core.awaitables import to_awaitable
from aioprims.exceptions import CancellationError, RetryExhaustedError
from aioprims.retry.controller import RetryController, RetryOptions, build_options

P = ParamSpec("P")
R = TypeVar("R")


def exhausted_error(controller: RetryController) -> RetryExhaustedError:
    """Build the error reported when ``controller`` gave up.

    The synthesized deadline error is returned as-is; otherwise the dominant
    error becomes the cause of a new :class:`RetryExhaustedError`.
    """
    main_error = controller.main_error
    errors = controller.errors
    if isinstance(main_error, RetryExhaustedError):
        return main_error

    attempts = controller.attempt_count + 1
    error = RetryExhaustedError(
        f"Operation failed after {attempts} attempts: {main_error}",
        attempts=attempts,
        main_error=main_error,
        errors=errors,
    )
    error.__cause__ = main_error
    return error


async def run_with_retry(
    func: Callable[[], Awaitable[R] | R],
    options: RetryOptions | None = None,
    *,
    signal: SignalLike | None = None,
) -> R:
    """Call ``func`` until it succeeds or the retry policy gives up.

    Args:
        func: Zero-argument callable, sync or async
        options: Retry policy
        signal: Cancellation signal; firing it stops retrying and raises
            the signal's reason

    Returns:
        The first successful result

    Raises:
        RetryExhaustedError: When attempts or the deadline are used up.
        CancellationError: (or the signal's reason) when aborted.
    """
    if signal is not None and signal.cancelled:
        raise signal.reason or CancellationError()

    controller = RetryController(options)
    outcome: asyncio.Future[R] = asyncio.get_running_loop().create_future()

    def abort(reason: BaseException) -> None:
        controller.stop()
        if not outcome.done():
            outcome.set_exception(reason)

    def fail(error: BaseException) -> None:
        if controller.retry(error):
            return
        if not outcome.done():
            outcome.set_exception(exhausted_error(controller))
        controller.stop()

    async def run_attempt(attempt: int) -> None:
        if outcome.done():
            return
        try:
            result = await to_awaitable(func)
        except Exception as error:
            fail(error)
        else:
            controller.retry(None)
            if not outcome.done():
                outcome.set_result(result)

    if signal is not None:
        signal.add_listener(abort)
    try:
        controller.attempt(run_attempt)
        return await outcome
    except asyncio.CancelledError:
        controller.cancel_inflight()
        raise
    finally:
        if signal is not None:
            signal.remove_listener(abort)
        controller.stop()


def retryable(
    func: Callable[P, Awaitable[R] | R] | None = None,
    options: RetryOptions | None = None,
    *,
    signal: SignalLike | None = None,
    **overrides: Any,
) -> Any:
    """Make a function retry with backoff on failure.

    Each call runs through a fresh :class:`RetryController`. Usable
    directly or as a decorator:

        fetch_with_retry = retryable(fetch, RetryOptions(max_attempts=3))

        @retryable(min_interval=0.2, max_attempts=5)
        async def fetch(url: str) -> bytes: ...

    Options are validated when the wrapper is created.

    Raises:
        ConfigurationError: If the retry options are invalid.
    """
    resolved = build_options(options, **overrides)

    def decorate(target: Callable[P, Awaitable[R] | R]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(target)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            return await run_with_retry(
                functools.partial(target, *args, **kwargs),
                resolved,
                signal=signal,
            )

        return wrapper

    if func is None:
        return decorate
    return decorate(func)
