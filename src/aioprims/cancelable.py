"""Awaitable tasks that can be cancelled with a reason.

The operation receives an explicit :class:`CancelState` it can use to
register cleanup handlers and to decide whether cancellation rejects the
task or lets the eventual result through.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Generator
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Any, Generic, TypeVar

from aioprims.core.awaitables import Runnable, to_awaitable
from aioprims.exceptions import CancellationError, InvalidStateError

T = TypeVar("T")

DEFAULT_CANCEL_MESSAGE = "Task was cancelled"


class CancelableState(Enum):
    """Lifecycle of a cancelable task."""

    PENDING = "pending"
    CANCELLED = "cancelled"
    RESOLVED = "resolved"
    REJECTED = "rejected"


@dataclass
class CancelState:
    """Session state shared between a task and its operation.

    Attributes:
        reject_on_cancel: Reject with CancellationError when cancelled;
            if False the task still settles with the operation's outcome
        handlers: Callbacks run when the task is cancelled
        status: Current task state (maintained by the task)
    """

    reject_on_cancel: bool = True
    handlers: list[Callable[[], None]] = field(default_factory=list)
    status: CancelableState = CancelableState.PENDING

    def on_cancel(self, handler: Callable[[], None]) -> None:
        """Register a cleanup handler.

        Raises:
            InvalidStateError: If the task already settled or was cancelled.
        """
        if self.status is not CancelableState.PENDING:
            raise InvalidStateError(
                f"Cannot add a cancel handler after the task was {self.status.value}"
            )
        self.handlers.append(handler)

    @property
    def cancelled(self) -> bool:
        return self.status is CancelableState.CANCELLED


class CancelableTask(Generic[T]):
    """An awaitable task with :meth:`cancel`.

    Must be created with a running event loop; the operation starts
    immediately.

    Example:
        async def download(state: CancelState) -> bytes:
            stream = await open_stream()
            state.on_cancel(stream.close)
            return await stream.read()

        task = CancelableTask(download)
        task.cancel("no longer needed")
        await task  # raises CancellationError
    """

    def __init__(self, operation: Callable[[CancelState], Awaitable[T] | T]) -> None:
        self._session = CancelState()
        self._future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        self._work: asyncio.Future[T] | None = None

        try:
            awaitable = to_awaitable(partial(operation, self._session))
        except Exception as e:
            self._reject(e)
            return
        self._work = asyncio.ensure_future(awaitable)
        self._work.add_done_callback(self._on_work_done)

    @property
    def state(self) -> CancelableState:
        return self._session.status

    @property
    def is_cancelled(self) -> bool:
        return self._session.cancelled

    @property
    def reject_on_cancel(self) -> bool:
        return self._session.reject_on_cancel

    def add_cancel_handler(self, handler: Callable[[], None]) -> None:
        """Register a handler run on :meth:`cancel`.

        Raises:
            InvalidStateError: If the task is no longer pending.
        """
        self._session.on_cancel(handler)

    def cancel(self, reason: str | None = None) -> None:
        """Cancel the task. No-op once it settled or was cancelled."""
        if self._session.status is not CancelableState.PENDING:
            return
        self._session.status = CancelableState.CANCELLED

        if self._session.reject_on_cancel and not self._future.done():
            self._future.set_exception(CancellationError(reason or DEFAULT_CANCEL_MESSAGE))

        for handler in list(self._session.handlers):
            handler()

    def done(self) -> bool:
        return self._future.done()

    def result(self) -> T:
        """Result of a settled task (see :meth:`asyncio.Future.result`)."""
        return self._future.result()

    def __await__(self) -> Generator[Any, None, T]:
        return self._future.__await__()

    def _on_work_done(self, work: asyncio.Future[T]) -> None:
        if work.cancelled():
            self._reject(asyncio.CancelledError())
        elif work.exception() is not None:
            self._reject(work.exception())
        else:
            self._resolve(work.result())

    def _settles_after_cancel(self) -> bool:
        return not (self._session.cancelled and self._session.reject_on_cancel)

    def _resolve(self, value: T) -> None:
        if not self._settles_after_cancel():
            return
        if not self._future.done():
            self._future.set_result(value)
        self._set_state(CancelableState.RESOLVED)

    def _reject(self, error: BaseException) -> None:
        if not self._settles_after_cancel():
            return
        if not self._future.done():
            self._future.set_exception(error)
        self._set_state(CancelableState.REJECTED)

    def _set_state(self, state: CancelableState) -> None:
        if self._session.status is CancelableState.PENDING:
            self._session.status = state


def be_cancelable(
    runnable: Runnable[T],
    cancel_handler: Callable[[], None] | None = None,
    reject_on_cancel: bool = True,
) -> CancelableTask[T]:
    """Wrap ``runnable`` in a :class:`CancelableTask`.

    Args:
        runnable: Work to run
        cancel_handler: Optional handler run on cancellation
        reject_on_cancel: Whether cancellation rejects the task
    """

    def operation(state: CancelState) -> Awaitable[T]:
        if cancel_handler is not None:
            state.on_cancel(cancel_handler)
        state.reject_on_cancel = reject_on_cancel
        return to_awaitable(runnable)

    return CancelableTask(operation)
