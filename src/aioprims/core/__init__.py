"""Core infrastructure for aioprims.

Provides:
- Structured logging
- Callback error handling with graceful degradation
- Queue metrics collection
- Awaitable helpers
"""

from aioprims.core.awaitables import (
    Runnable,
    abandon,
    ensure_task,
    is_runnable,
    to_awaitable,
)
from aioprims.core.error_handling import (
    ErrorContext,
    ErrorSeverity,
    GracefulErrorHandler,
    create_error_handler,
    get_error_handler,
    reset_error_handler,
    set_error_handler,
)
from aioprims.core.logging import (
    LogEntry,
    LogLevel,
    StructuredLogger,
    configure_logging,
    create_logger,
    get_logger,
    reset_loggers,
)
from aioprims.core.metrics import (
    LatencyStats,
    QueueMetrics,
    Timer,
)

__all__ = [
    # Logging
    "LogLevel",
    "LogEntry",
    "StructuredLogger",
    "create_logger",
    "get_logger",
    "reset_loggers",
    "configure_logging",
    # Metrics
    "LatencyStats",
    "QueueMetrics",
    "Timer",
    # Error handling
    "ErrorSeverity",
    "ErrorContext",
    "GracefulErrorHandler",
    "create_error_handler",
    "get_error_handler",
    "set_error_handler",
    "reset_error_handler",
    # Awaitables
    "Runnable",
    "abandon",
    "ensure_task",
    "is_runnable",
    "to_awaitable",
]
