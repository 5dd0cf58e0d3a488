"""Cancellation signals and the signal-aware operation wrapper.

A :class:`CancellationSignal` fires at most once. Consumers query
``cancelled``, read ``reason`` and register one-shot listeners; the queue and
the retry wrapper only consume signals, they never fire them.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Protocol, TypeVar, runtime_checkable

from aioprims.core.awaitables import (
    Runnable,
    abandon,
    close_unstarted,
    ensure_task,
)
from aioprims.core.error_handling import ErrorContext, get_error_handler
from aioprims.exceptions import CancellationError

T = TypeVar("T")

CancelListener = Callable[[BaseException], None]


@runtime_checkable
class SignalLike(Protocol):
    """The cancellation interface consumed by the primitives."""

    @property
    def cancelled(self) -> bool: ...

    @property
    def reason(self) -> BaseException | None: ...

    def add_listener(self, listener: CancelListener) -> None: ...

    def remove_listener(self, listener: CancelListener) -> None: ...


class CancellationSignal:
    """One-shot cancellation notification.

    Example:
        signal = CancellationSignal()
        future = queue.submit(fetch, signal=signal)
        signal.cancel("user navigated away")
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._reason: BaseException | None = None
        self._listeners: list[CancelListener] = []

    @property
    def cancelled(self) -> bool:
        """Whether the signal has fired."""
        return self._cancelled

    @property
    def reason(self) -> BaseException | None:
        """The exception waiting operations are rejected with."""
        return self._reason

    def cancel(self, reason: BaseException | str | None = None) -> None:
        """Fire the signal. Later calls are ignored.

        Args:
            reason: Exception (or message for a CancellationError) to reject
                waiting operations with
        """
        if self._cancelled:
            return
        if reason is None:
            reason = CancellationError()
        elif isinstance(reason, str):
            reason = CancellationError(reason)
        self._cancelled = True
        self._reason = reason

        listeners, self._listeners = self._listeners, []
        handler = get_error_handler()
        for listener in listeners:
            handler.call(
                listener,
                reason,
                context=ErrorContext(
                    operation="cancel_listener",
                    component="cancellation",
                ),
            )

    def add_listener(self, listener: CancelListener) -> None:
        """Register a listener invoked once when the signal fires.

        Listeners added after the signal fired are never called; check
        ``cancelled`` first.
        """
        if not self._cancelled:
            self._listeners.append(listener)

    def remove_listener(self, listener: CancelListener) -> None:
        """Unregister a listener. Unknown listeners are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def raise_if_cancelled(self) -> None:
        """Raise the cancellation reason if the signal fired."""
        if self._cancelled and self._reason is not None:
            raise self._reason


async def with_signal(runnable: Runnable[T], signal: SignalLike) -> T:
    """Run ``runnable`` until it settles or ``signal`` fires.

    Rejects immediately, without starting the work, if the signal already
    fired. When the signal fires mid-flight the work is abandoned (its task
    receives a cancellation request) and the signal's reason is raised.
    The listener is always removed afterwards.
    """
    if signal.cancelled:
        close_unstarted(runnable)
        raise signal.reason or CancellationError()

    loop = asyncio.get_running_loop()
    aborted: asyncio.Future[T] = loop.create_future()

    def on_cancel(reason: BaseException) -> None:
        if not aborted.done():
            aborted.set_exception(reason)

    signal.add_listener(on_cancel)
    work = ensure_task(runnable)
    try:
        await asyncio.wait({work, aborted}, return_when=asyncio.FIRST_COMPLETED)
        if work.done():
            return work.result()
        abandon(work)
        return aborted.result()
    except asyncio.CancelledError:
        abandon(work)
        raise
    finally:
        signal.remove_listener(on_cancel)
        if not aborted.done():
            aborted.cancel()
        elif not aborted.cancelled():
            aborted.exception()
