"""Centralized handling of errors raised by user callbacks.

Queue listeners and similar hooks run inside the primitives' own
bookkeeping. An exception escaping from one of them must not corrupt the
in-flight count or leave a waiter unresolved, so it is routed here: logged
with context and reported to an optional callback.
"""

from __future__ import annotations

import contextlib
import traceback
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from aioprims.core.logging import StructuredLogger


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    WARNING = "warning"  # Callback failed, primitive keeps running
    ERROR = "error"  # Operation-level failure
    CRITICAL = "critical"  # Primitive can no longer make progress


@dataclass
class ErrorContext:
    """Context information for error handling."""

    operation: str  # What was being attempted
    component: str  # Which primitive was running it (queue, retry, debounce)
    event: str | None = None  # Lifecycle event being dispatched, if any
    additional_info: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {
            "operation": self.operation,
            "component": self.component,
        }
        if self.event is not None:
            result["event"] = self.event
        if self.additional_info:
            result["additional_info"] = self.additional_info
        return result


class GracefulErrorHandler:
    """Handles callback errors without breaking the caller.

    Ensures:
    - Errors are logged with full context
    - An optional notification hook sees every error
    - The primitive that invoked the callback stays consistent
    """

    def __init__(
        self,
        logger: StructuredLogger | None = None,
        on_error: Callable[[ErrorContext, Exception], None] | None = None,
    ) -> None:
        """Initialize error handler.

        Args:
            logger: Structured logger instance
            on_error: Callback for error notifications
        """
        self._logger = logger
        self._on_error = on_error

    def handle_error(
        self,
        error: Exception,
        context: ErrorContext,
        severity: ErrorSeverity = ErrorSeverity.WARNING,
    ) -> None:
        """Handle an error gracefully.

        Args:
            error: The exception that occurred
            context: Error context information
            severity: How severe the error is
        """
        self._log_error(error, context, severity)

        # A failing notification hook must not mask the original error
        if self._on_error:
            with contextlib.suppress(Exception):
                self._on_error(context, error)

    def _log_error(
        self,
        error: Exception,
        context: ErrorContext,
        severity: ErrorSeverity,
    ) -> None:
        """Log error with full context."""
        if self._logger is None:
            return

        log_data = {
            "error_type": type(error).__name__,
            "error_message": str(error),
            "severity": severity.value,
            **context.to_dict(),
            "traceback": "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            ),
        }

        if severity == ErrorSeverity.CRITICAL:
            self._logger.critical("Critical error occurred", **log_data)
        elif severity == ErrorSeverity.ERROR:
            self._logger.error("Error occurred", **log_data)
        else:
            self._logger.warning("Callback raised an exception", **log_data)

    def call(
        self,
        callback: Callable[..., Any],
        *args: Any,
        context: ErrorContext,
    ) -> bool:
        """Invoke a callback, routing any exception to :meth:`handle_error`.

        Args:
            callback: The callable to invoke
            *args: Positional arguments for the callback
            context: Error context for logging

        Returns:
            True if the callback returned normally
        """
        try:
            callback(*args)
        except Exception as e:
            self.handle_error(e, context)
            return False
        return True


def create_error_handler(
    logger: StructuredLogger | None = None,
    on_error: Callable[[ErrorContext, Exception], None] | None = None,
) -> GracefulErrorHandler:
    """Create a graceful error handler.

    Args:
        logger: Structured logger instance
        on_error: Error callback

    Returns:
        Configured error handler
    """
    return GracefulErrorHandler(logger=logger, on_error=on_error)


# Global error handler
_error_handler: GracefulErrorHandler | None = None


def get_error_handler() -> GracefulErrorHandler:
    """Get the global error handler.

    Created on first use with the ``callbacks`` component logger.

    Returns:
        GracefulErrorHandler instance
    """
    global _error_handler
    if _error_handler is None:
        from aioprims.core.logging import get_logger

        _error_handler = GracefulErrorHandler(logger=get_logger("callbacks"))
    return _error_handler


def set_error_handler(handler: GracefulErrorHandler) -> None:
    """Set the global error handler.

    Args:
        handler: Error handler to use
    """
    global _error_handler
    _error_handler = handler


def reset_error_handler() -> None:
    """Reset the global error handler. Useful for testing."""
    global _error_handler
    _error_handler = None
