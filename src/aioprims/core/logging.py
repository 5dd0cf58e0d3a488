"""Structured logging for aioprims.

Provides:
- JSON-formatted log output
- Context-aware logging
- Log level management
- Queue lifecycle and retry decision logging
"""

from __future__ import annotations

import json
import sys
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, TextIO


class LogLevel(Enum):
    """Log levels."""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


@dataclass
class LogEntry:
    """A structured log entry."""

    timestamp: str
    level: str
    message: str
    component: str
    event_type: str | None = None
    attempt: int | None = None
    duration_ms: float | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        """Convert to JSON string."""
        data = {k: v for k, v in asdict(self).items() if v is not None}
        if "extra" in data and not data["extra"]:
            del data["extra"]
        return json.dumps(data, default=str)

    def to_human_readable(self) -> str:
        """Convert to human-readable format."""
        parts = [f"[{self.timestamp}]", f"[{self.level}]", f"[{self.component}]"]
        if self.event_type:
            parts.append(f"[{self.event_type}]")
        parts.append(self.message)
        return " ".join(parts)


class StructuredLogger:
    """Structured logger for the primitives.

    Logs events in JSON format with consistent structure.
    Supports:
    - Retry controller state transitions
    - Queue lifecycle events
    - Retry scheduling and exhaustion
    """

    def __init__(
        self,
        component: str,
        level: LogLevel = LogLevel.INFO,
        output: TextIO | None = None,
        json_format: bool = True,
    ) -> None:
        """Initialize logger.

        Args:
            component: Component name (queue, retry, debounce)
            level: Minimum log level
            output: Output stream (defaults to stderr)
            json_format: Whether to use JSON format
        """
        self.component = component
        self.level = level
        self.output = output or sys.stderr
        self.json_format = json_format
        self._context: dict[str, Any] = {}

    def set_context(self, **kwargs: Any) -> None:
        """Set persistent context for all log entries."""
        self._context.update(kwargs)

    def clear_context(self) -> None:
        """Clear persistent context."""
        self._context.clear()

    def with_context(self, **kwargs: Any) -> StructuredLogger:
        """Create a new logger with additional context.

        Args:
            **kwargs: Context key-value pairs

        Returns:
            New logger instance with merged context
        """
        new_logger = StructuredLogger(
            component=self.component,
            level=self.level,
            output=self.output,
            json_format=self.json_format,
        )
        new_logger._context = {**self._context, **kwargs}
        return new_logger

    def is_enabled_for(self, level: LogLevel) -> bool:
        """Check whether messages at ``level`` would be written."""
        return level.value >= self.level.value

    def _log(
        self,
        level: LogLevel,
        message: str,
        event_type: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Internal log method."""
        if not self.is_enabled_for(level):
            return

        attempt = kwargs.pop("attempt", None)
        duration_ms = kwargs.pop("duration_ms", None)

        extra = {**self._context, **kwargs}

        entry = LogEntry(
            timestamp=datetime.now(UTC).isoformat(),
            level=level.name,
            message=message,
            component=self.component,
            event_type=event_type,
            attempt=attempt,
            duration_ms=duration_ms,
            extra=extra,
        )

        if self.json_format:
            self.output.write(entry.to_json() + "\n")
        else:
            self.output.write(entry.to_human_readable() + "\n")
        self.output.flush()

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        self._log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error message."""
        self._log(LogLevel.ERROR, message, **kwargs)

    def critical(self, message: str, **kwargs: Any) -> None:
        """Log critical message."""
        self._log(LogLevel.CRITICAL, message, **kwargs)

    # Specialized logging methods

    def log_state_transition(
        self,
        from_state: str,
        to_state: str,
        reason: str = "",
    ) -> None:
        """Log a state transition.

        Args:
            from_state: Previous state
            to_state: New state
            reason: Reason for transition
        """
        self._log(
            LogLevel.DEBUG,
            f"State transition: {from_state} -> {to_state}",
            event_type="state_transition",
            from_state=from_state,
            to_state=to_state,
            reason=reason,
        )

    def log_queue_event(
        self,
        event: str,
        size: int,
        pending: int,
    ) -> None:
        """Log a queue lifecycle event.

        Args:
            event: Event name (submitted, active, settled, ...)
            size: Number of entries waiting to start
            pending: Number of in-flight operations
        """
        self._log(
            LogLevel.DEBUG,
            f"Queue event: {event}",
            event_type="queue_event",
            queue_event=event,
            size=size,
            pending=pending,
        )

    def log_retry_scheduled(
        self,
        attempt: int,
        interval: float,
        error: BaseException,
    ) -> None:
        """Log a scheduled retry.

        Args:
            attempt: Attempt index that just failed (0-indexed)
            interval: Delay before the next attempt, in seconds
            error: The error that triggered the retry
        """
        self._log(
            LogLevel.DEBUG,
            f"Retry scheduled in {interval:.3f}s after attempt {attempt}",
            event_type="retry_scheduled",
            attempt=attempt,
            interval=interval,
            error_type=type(error).__name__,
            error_message=str(error)[:200],
        )

    def log_retry_exhausted(
        self,
        attempts: int,
        main_error: BaseException | None,
        duration_ms: float | None = None,
    ) -> None:
        """Log the end of a retry session without success.

        Args:
            attempts: Number of attempts made
            main_error: Dominant error of the session
            duration_ms: Session duration in milliseconds
        """
        self._log(
            LogLevel.WARNING,
            f"Retry exhausted after {attempts} attempts",
            event_type="retry_exhausted",
            attempt=attempts,
            duration_ms=duration_ms,
            main_error=repr(main_error) if main_error is not None else None,
        )


def create_logger(
    component: str,
    level: LogLevel = LogLevel.INFO,
    json_format: bool = True,
    output: TextIO | None = None,
) -> StructuredLogger:
    """Create a structured logger.

    Args:
        component: Component name
        level: Minimum log level
        json_format: Whether to use JSON format
        output: Output stream (defaults to stderr)

    Returns:
        Configured logger
    """
    return StructuredLogger(
        component=component,
        level=level,
        json_format=json_format,
        output=output,
    )


# Global loggers for each component
_loggers: dict[str, StructuredLogger] = {}

# Settings applied to loggers created after configure_logging()
_defaults: dict[str, Any] = {}


def get_logger(component: str) -> StructuredLogger:
    """Get or create a logger for a component.

    Args:
        component: Component name

    Returns:
        Logger instance
    """
    if component not in _loggers:
        _loggers[component] = create_logger(component, **_defaults)
    return _loggers[component]


def reset_loggers() -> None:
    """Reset all global loggers. Useful for testing."""
    _loggers.clear()
    _defaults.clear()


def configure_logging(
    level: LogLevel = LogLevel.INFO,
    json_format: bool = True,
    output: TextIO | None = None,
) -> None:
    """Configure global logging settings.

    Applies to existing loggers and to loggers created afterwards.

    Args:
        level: Minimum log level for all loggers
        json_format: Whether to use JSON format
        output: Output stream
    """
    _defaults["level"] = level
    _defaults["json_format"] = json_format
    if output is not None:
        _defaults["output"] = output
    for logger in _loggers.values():
        logger.level = level
        logger.json_format = json_format
        if output is not None:
            logger.output = output
