"""
Tests for the redis reconnect policy.
"""

import asyncio
import copy
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from kvbridge.infrastructure.adapters.redis.retry import (
    CappedLinearBackoff,
    ReconnectPolicy,
    reconnect_delay,
)


class TestReconnectDelay:

    @pytest.mark.parametrize("attempt,delay", [(0, 0), (1, 1.0), (3, 3.0), (5, 5.0), (6, 5.0), (100, 5.0)])
    def test_capped_linear(self, attempt, delay) -> None:
        assert reconnect_delay(attempt) == delay

    def test_custom_step(self) -> None:
        assert reconnect_delay(3, step=0.5, ceiling=1.0) == 1.0

    def test_backoff_sequence(self) -> None:
        backoff = CappedLinearBackoff("main")
        assert [backoff.compute(n) for n in range(1, 8)] == [1.0, 2.0, 3.0, 4.0, 5.0, 5.0, 5.0]

    def test_backoff_logs_warning(self, caplog) -> None:
        backoff = CappedLinearBackoff("main")
        with caplog.at_level("WARNING", logger="kvbridge"):
            assert backoff.compute(2) == 2.0
        assert 'Reconnecting to store "main" (attempt 2)' in caplog.text


class TestReconnectPolicy:
    """Test single-shot initial connect and unbounded reconnects."""

    def test_deepcopy_shares_policy(self) -> None:
        policy = ReconnectPolicy("main")
        assert copy.deepcopy(policy) is policy

    async def test_unarmed_attempts_once(self) -> None:
        policy = ReconnectPolicy("main")
        error = RedisConnectionError("refused")
        do = AsyncMock(side_effect=error)
        fail = AsyncMock()

        with pytest.raises(RedisConnectionError):
            await policy.call_with_retry(do, fail)

        do.assert_awaited_once()
        fail.assert_awaited_once_with(error)

    async def test_unarmed_passes_result(self) -> None:
        policy = ReconnectPolicy("main")
        assert await policy.call_with_retry(AsyncMock(return_value="PONG"), AsyncMock()) == "PONG"

    async def test_unarmed_other_errors_untouched(self) -> None:
        policy = ReconnectPolicy("main")
        fail = AsyncMock()

        with pytest.raises(KeyError):
            await policy.call_with_retry(AsyncMock(side_effect=KeyError("x")), fail)
        fail.assert_not_awaited()

    async def test_armed_retries_until_success(self) -> None:
        policy = ReconnectPolicy("main", step=0.0)
        policy.arm()
        error = RedisConnectionError("connection lost")
        do = AsyncMock(side_effect=[error] * 7 + ["OK"])

        result = await policy.call_with_retry(do, AsyncMock())

        assert result == "OK"
        assert do.await_count == 8

    def test_disarm(self) -> None:
        policy = ReconnectPolicy("main")
        policy.arm()
        policy.disarm()
        assert policy.armed is False

    async def test_unarmed_passes_failure_count(self) -> None:
        policy = ReconnectPolicy("main")
        error = RedisConnectionError("refused")
        fail = AsyncMock()

        with pytest.raises(RedisConnectionError):
            await policy.call_with_retry(AsyncMock(side_effect=error), fail, with_failure_count=True)

        fail.assert_awaited_once_with(error, 1)

    async def test_disarm_stops_running_loop(self) -> None:
        policy = ReconnectPolicy("main", step=0.0)
        policy.arm()
        calls = 0

        async def do():
            nonlocal calls
            calls += 1
            if calls == 3:
                policy.disarm()
            raise RedisConnectionError("connection lost")

        task = asyncio.create_task(policy.call_with_retry(do, AsyncMock()))
        with pytest.raises(RedisConnectionError):
            await asyncio.wait_for(task, timeout=1.0)

        assert task.done()
        assert calls == 3

    def test_retry_budget_follows_arming(self) -> None:
        policy = ReconnectPolicy("main")
        assert policy.get_retries() == 0
        policy.arm()
        assert policy.get_retries() == -1
        policy.disarm()
        assert policy.get_retries() == 0
