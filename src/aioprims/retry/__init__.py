"""Retry controller and retry wrapper.

This module provides:
- RetryController: backoff state machine for one retry session
- RetryOptions: validated retry policy
- retryable / run_with_retry: drive a callable through a controller
"""

from aioprims.retry.controller import (
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MIN_INTERVAL_SECONDS,
    RetryController,
    RetryOptions,
    RetryState,
    build_options,
    calculate_interval,
)
from aioprims.retry.wrapper import (
    exhausted_error,
    retryable,
    run_with_retry,
)

__all__ = [
    # Controller
    "RetryController",
    "RetryOptions",
    "RetryState",
    "build_options",
    "calculate_interval",
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_MIN_INTERVAL_SECONDS",
    "DEFAULT_BACKOFF_FACTOR",
    # Wrapper
    "retryable",
    "run_with_retry",
    "exhausted_error",
]
