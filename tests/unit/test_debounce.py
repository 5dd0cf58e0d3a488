"""Unit tests for aioprims.debounce module."""

from __future__ import annotations

import asyncio
import math
from typing import Any
from unittest.mock import MagicMock

import pytest

from aioprims.debounce import debounce
from aioprims.exceptions import ConfigurationError


class TestDebounceValidation:
    """Tests for argument validation."""

    @pytest.mark.parametrize("seconds", [-1, -0.001, math.nan, "1", None, True])
    def test_invalid_seconds(self, seconds: Any) -> None:
        """Negative or non-numeric delays are rejected."""
        with pytest.raises(ConfigurationError) as exc_info:
            debounce(lambda: None, seconds)
        assert exc_info.value.field == "seconds"

    def test_zero_is_valid(self) -> None:
        """A zero delay is allowed."""
        debounce(lambda: None, 0)


class TestDebounce:
    """Tests for debounced calls."""

    @pytest.mark.asyncio
    async def test_burst_collapses_to_last_call(self) -> None:
        """A burst of calls runs once with the last arguments."""
        func = MagicMock(side_effect=lambda x: x * 10)
        debounced = debounce(func, 0.02)

        futures = [debounced(1), debounced(2), debounced(3)]

        assert await asyncio.gather(*futures) == [30, 30, 30]
        func.assert_called_once_with(3)

    @pytest.mark.asyncio
    async def test_keyword_arguments(self) -> None:
        """Keyword arguments of the last call are used."""
        func = MagicMock(return_value="ok")
        debounced = debounce(func, 0)

        await debounced(1, flag=True)

        func.assert_called_once_with(1, flag=True)

    @pytest.mark.asyncio
    async def test_async_function(self) -> None:
        """Async functions are awaited."""

        async def func(value: str) -> str:
            await asyncio.sleep(0)
            return value.upper()

        debounced = debounce(func, 0.01)
        assert await debounced("abc") == "ABC"

    @pytest.mark.asyncio
    async def test_separate_bursts_run_separately(self) -> None:
        """Calls after the quiet period start a new run."""
        func = MagicMock(side_effect=lambda x: x)
        debounced = debounce(func, 0.01)

        assert await debounced("a") == "a"
        assert await debounced("b") == "b"
        assert func.call_count == 2

    @pytest.mark.asyncio
    async def test_each_call_restarts_timer(self) -> None:
        """A new call postpones the pending run."""
        func = MagicMock(return_value=None)
        debounced = debounce(func, 0.05)

        debounced(1)
        await asyncio.sleep(0.03)
        last = debounced(2)
        await asyncio.sleep(0.03)

        func.assert_not_called()
        await last
        func.assert_called_once_with(2)

    @pytest.mark.asyncio
    async def test_error_shared_by_all_callers(self) -> None:
        """Every caller of the batch receives the same error."""
        error = RuntimeError("failed")
        debounced = debounce(MagicMock(side_effect=error), 0.01)

        first = debounced()
        second = debounced()

        results = await asyncio.gather(first, second, return_exceptions=True)
        assert results == [error, error]

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_affect_others(self) -> None:
        """A caller cancelling its future leaves the others intact."""
        debounced = debounce(lambda: "value", 0.01)

        first = debounced()
        second = debounced()
        first.cancel()

        assert await second == "value"
