"""Unit tests for aioprims.timeout module."""

from __future__ import annotations

import asyncio
import math
from typing import Any

import pytest

from aioprims.exceptions import ConfigurationError, TaskTimeoutError
from aioprims.timeout import DEFAULT_TIMEOUT_MESSAGE, validate_timeout, with_timeout


async def _sleep(seconds: float, value: Any = None) -> Any:
    await asyncio.sleep(seconds)
    return value


class TestValidateTimeout:
    """Tests for validate_timeout()."""

    def test_none_means_no_timeout(self) -> None:
        """None passes through."""
        assert validate_timeout(None) is None

    def test_positive_numbers(self) -> None:
        """Positive numbers are returned as floats."""
        assert validate_timeout(2) == 2.0
        assert isinstance(validate_timeout(2), float)

    @pytest.mark.parametrize("value", [0, -1, math.inf, math.nan, "1", True])
    def test_rejects_invalid(self, value: Any) -> None:
        """Non-positive, infinite and non-numeric values are rejected."""
        with pytest.raises(ConfigurationError):
            validate_timeout(value)

    def test_field_name_in_error(self) -> None:
        """The error names the offending field."""
        with pytest.raises(ConfigurationError) as exc_info:
            validate_timeout(-1, field="queue.timeout")
        assert exc_info.value.field == "queue.timeout"


class TestWithTimeout:
    """Tests for with_timeout()."""

    @pytest.mark.asyncio
    async def test_result_in_time(self) -> None:
        """Work finishing in time returns its result."""
        assert await with_timeout(lambda: _sleep(0, "fast"), 1) == "fast"

    @pytest.mark.asyncio
    async def test_times_out(self) -> None:
        """Slow work raises TaskTimeoutError with the default message."""
        with pytest.raises(TaskTimeoutError) as exc_info:
            await with_timeout(lambda: _sleep(1), 0.01)
        assert str(exc_info.value) == DEFAULT_TIMEOUT_MESSAGE
        assert exc_info.value.timeout == 0.01

    @pytest.mark.asyncio
    async def test_is_builtin_timeout_error(self) -> None:
        """TaskTimeoutError is also a TimeoutError."""
        with pytest.raises(TimeoutError):
            await with_timeout(_sleep(1), 0.01)

    @pytest.mark.asyncio
    async def test_custom_message(self) -> None:
        """A custom message is used."""
        with pytest.raises(TaskTimeoutError, match="too slow"):
            await with_timeout(_sleep(1), 0.01, message="too slow")

    @pytest.mark.asyncio
    async def test_fallback_value(self) -> None:
        """A fallback replaces the timeout error."""
        assert await with_timeout(_sleep(1), 0.01, fallback=lambda: "cached") == "cached"

    @pytest.mark.asyncio
    async def test_async_fallback(self) -> None:
        """Fallbacks may be async."""

        async def fallback() -> str:
            return "async cached"

        assert await with_timeout(_sleep(1), 0.01, fallback=fallback) == "async cached"

    @pytest.mark.asyncio
    async def test_work_error_propagates(self) -> None:
        """Errors from the work are not masked."""

        async def broken() -> None:
            raise KeyError("k")

        with pytest.raises(KeyError):
            await with_timeout(broken, 1)

    @pytest.mark.asyncio
    async def test_abandons_work(self) -> None:
        """Timed-out work receives a cancellation request."""
        cancelled = asyncio.Event()

        async def work() -> None:
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        with pytest.raises(TaskTimeoutError):
            await with_timeout(work, 0.01)
        await asyncio.wait_for(cancelled.wait(), 1)

    @pytest.mark.asyncio
    async def test_invalid_timeout(self) -> None:
        """Invalid timeouts are rejected before running the work."""
        with pytest.raises(ConfigurationError):
            await with_timeout(lambda: None, 0)
