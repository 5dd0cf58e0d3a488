"""Queue lifecycle events and settlement records."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from aioprims.core.error_handling import (
    ErrorContext,
    GracefulErrorHandler,
    get_error_handler,
)

T = TypeVar("T")

Listener = Callable[..., Any]


class QueueEvent(Enum):
    """Notifications emitted by a task queue."""

    SUBMITTED = "submitted"  # A task was added
    ACTIVE = "active"  # A task began running
    SETTLED = "settled"  # A task finished; payload is a SettledResult
    NEXT = "next"  # In-flight count was decremented
    DRAINED = "drained"  # No task is waiting to start
    IDLE = "idle"  # Nothing waiting and nothing in flight


class SettleStatus(Enum):
    """Outcome of a settled task."""

    FULFILLED = "fulfilled"
    REJECTED = "rejected"


@dataclass(frozen=True)
class SettledResult(Generic[T]):
    """Outcome of one task: a value or an error.

    ``duration_ms`` is the run time of a task settled by a queue; it is
    ignored when comparing results.
    """

    status: SettleStatus
    value: T | None = None
    error: BaseException | None = None
    duration_ms: float | None = field(default=None, compare=False)

    @classmethod
    def fulfilled(cls, value: T, duration_ms: float | None = None) -> SettledResult[T]:
        return cls(status=SettleStatus.FULFILLED, value=value, duration_ms=duration_ms)

    @classmethod
    def rejected(
        cls, error: BaseException, duration_ms: float | None = None
    ) -> SettledResult[T]:
        return cls(status=SettleStatus.REJECTED, error=error, duration_ms=duration_ms)

    @property
    def ok(self) -> bool:
        """Whether the task succeeded."""
        return self.status is SettleStatus.FULFILLED

    def unwrap(self) -> T:
        """Return the value, or raise the error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


class EventEmitter:
    """Minimal publish/subscribe registry keyed by :class:`QueueEvent`.

    Listener exceptions are reported through the error handler and never
    reach the emitter.
    """

    def __init__(
        self,
        component: str = "queue",
        error_handler: GracefulErrorHandler | None = None,
    ) -> None:
        self._component = component
        self._error_handler = error_handler
        self._listeners: dict[QueueEvent, list[tuple[Listener, bool]]] = {}

    def on(self, event: QueueEvent, listener: Listener) -> None:
        """Subscribe ``listener`` to ``event``."""
        self._listeners.setdefault(event, []).append((listener, False))

    def once(self, event: QueueEvent, listener: Listener) -> None:
        """Subscribe ``listener`` to the next ``event`` only."""
        self._listeners.setdefault(event, []).append((listener, True))

    def off(self, event: QueueEvent, listener: Listener) -> None:
        """Unsubscribe ``listener`` from ``event``."""
        registered = self._listeners.get(event)
        if not registered:
            return
        for i, (candidate, _) in enumerate(registered):
            if candidate == listener:
                del registered[i]
                return

    def listener_count(self, event: QueueEvent) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: QueueEvent, *args: Any) -> None:
        """Call every listener of ``event`` with ``args``."""
        registered = self._listeners.get(event)
        if not registered:
            return
        snapshot = list(registered)
        self._listeners[event] = [item for item in registered if not item[1]]

        handler = self._error_handler or get_error_handler()
        for listener, _ in snapshot:
            handler.call(
                listener,
                *args,
                context=ErrorContext(
                    operation="emit",
                    component=self._component,
                    event=event.value,
                ),
            )
