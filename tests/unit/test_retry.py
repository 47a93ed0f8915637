"""
Tests for backend retry with exponential backoff.

Sleep and clock are injected so nothing actually waits.
"""

import httpx
import pytest

from src.core.backend.retry import BackendTimeoutError, fetch_with_retry
from src.core.config import RetryPolicy


class FakeTime:
    """Recording sleep plus a clock that advances with it."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds

    def clock(self):
        return self.now


def scripted(*outcomes):
    """send() returning the given statuses or raising the given errors in order."""
    remaining = list(outcomes)
    calls = []

    async def send():
        calls.append(1)
        outcome = remaining.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return httpx.Response(outcome, json={"status": outcome})

    send.calls = calls
    return send


class TestRetryPolicy:

    def test_delay_schedule(self):
        policy = RetryPolicy()

        assert [policy.delay_for(a) for a in range(7)] == [2, 4, 8, 16, 32, 32, 32]


class TestFetchWithRetry:

    @pytest.mark.asyncio
    async def test_succeeds_after_hibernation(self):
        fake = FakeTime()
        send = scripted(503, 503, 503, 200)

        response = await fetch_with_retry(send, policy=RetryPolicy(), sleep=fake.sleep, clock=fake.clock)

        assert response.status_code == 200
        assert fake.sleeps == [2, 4, 8]

    @pytest.mark.asyncio
    async def test_502_is_retried(self):
        fake = FakeTime()

        response = await fetch_with_retry(
            scripted(502, 201), policy=RetryPolicy(), sleep=fake.sleep, clock=fake.clock
        )

        assert response.status_code == 201
        assert fake.sleeps == [2]

    @pytest.mark.asyncio
    async def test_all_attempts_hibernating_returns_last_response(self):
        fake = FakeTime()
        send = scripted(*([503] * 8))

        response = await fetch_with_retry(send, policy=RetryPolicy(), sleep=fake.sleep, clock=fake.clock)

        assert response.status_code == 503
        assert len(send.calls) == 8
        assert fake.sleeps == [2, 4, 8, 16, 32, 32, 32]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 401, 404, 500])
    async def test_business_errors_not_retried(self, status):
        fake = FakeTime()
        send = scripted(status)

        response = await fetch_with_retry(send, policy=RetryPolicy(), sleep=fake.sleep, clock=fake.clock)

        assert response.status_code == status
        assert len(send.calls) == 1
        assert fake.sleeps == []

    @pytest.mark.asyncio
    async def test_network_error_recovers(self):
        fake = FakeTime()
        send = scripted(httpx.ConnectError("refused"), 200)

        response = await fetch_with_retry(send, policy=RetryPolicy(), sleep=fake.sleep, clock=fake.clock)

        assert response.status_code == 200
        assert fake.sleeps == [2]

    @pytest.mark.asyncio
    async def test_network_error_exhaustion_reraises(self):
        fake = FakeTime()
        send = scripted(*[httpx.ConnectError(f"refused {i}") for i in range(8)])

        with pytest.raises(httpx.ConnectError, match="refused 7"):
            await fetch_with_retry(send, policy=RetryPolicy(), sleep=fake.sleep, clock=fake.clock)

        assert len(send.calls) == 8

    @pytest.mark.asyncio
    async def test_wall_clock_ceiling(self):
        fake = FakeTime()
        policy = RetryPolicy(max_total_wait=10)
        send = scripted(503, 503, 503, 200)

        with pytest.raises(BackendTimeoutError):
            await fetch_with_retry(send, policy=policy, sleep=fake.sleep, clock=fake.clock)

        # 2 + 4 = 6s elapsed before attempt 3, 14s before attempt 4
        assert len(send.calls) == 3

    @pytest.mark.asyncio
    async def test_per_attempt_cap(self):
        fake = FakeTime()
        policy = RetryPolicy(max_attempts=4, initial_delay=10, max_delay=15)

        await fetch_with_retry(
            scripted(503, 503, 503, 200), policy=policy, sleep=fake.sleep, clock=fake.clock
        )

        assert fake.sleeps == [10, 15, 15]
