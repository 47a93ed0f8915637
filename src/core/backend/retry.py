"""
Backend Retry

The backend hibernates when idle and answers 502/503 (or drops the
connection) while it wakes up. Calls are retried with exponential
backoff, bounded by an attempt count and a wall-clock ceiling.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

import httpx

from ..config import RetryPolicy
from ..observability.metrics import record_counter

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], float]


class BackendTimeoutError(Exception):
    """The wall-clock ceiling elapsed before the backend answered."""

    def __init__(self, label: str, elapsed: float, ceiling: float):
        self.label = label
        self.elapsed = elapsed
        self.ceiling = ceiling
        super().__init__(
            f"Request timeout: backend took too long for {label} "
            f"({elapsed:.0f}s > {ceiling:.0f}s)"
        )


async def fetch_with_retry(
    send: Callable[[], Awaitable[httpx.Response]],
    *,
    policy: RetryPolicy,
    label: str = "backend request",
    sleep: Sleep = asyncio.sleep,
    clock: Clock = time.monotonic,
) -> httpx.Response:
    """
    Call ``send`` until the backend stops reporting hibernation.

    Args:
        send: Coroutine factory issuing one attempt
        policy: Attempt limit, backoff schedule and wall-clock ceiling
        label: "METHOD path" used in logs
        sleep: Awaitable sleep, injectable for tests
        clock: Monotonic clock, injectable for tests

    Returns:
        The first response that is not retryable, or the last response
        when every attempt was retryable

    Raises:
        BackendTimeoutError: the ceiling elapsed before an attempt started
        httpx.HTTPError: the last network error once attempts are exhausted
    """
    started = clock()
    last_error: Optional[Exception] = None

    for attempt in range(policy.max_attempts):
        elapsed = clock() - started
        if elapsed > policy.max_total_wait:
            raise BackendTimeoutError(label, elapsed, policy.max_total_wait)

        is_last = attempt == policy.max_attempts - 1

        try:
            response = await send()
        except httpx.HTTPError as e:
            last_error = e

            if is_last:
                logger.error(f"All retries exhausted for {label}")
                raise

            delay = policy.delay_for(attempt)
            logger.warning(
                f"Request failed - retry {attempt + 1}/{policy.max_attempts} in {delay:g}s for {label}: {e}",
                extra={"attempt": attempt + 1, "delay_seconds": delay},
            )
            record_counter("proxy_retries_total", 1, {"reason": "network"})
            await sleep(delay)
            continue

        if response.status_code in policy.retry_statuses and not is_last:
            delay = policy.delay_for(attempt)
            logger.warning(
                f"Backend hibernating ({response.status_code}) - retry "
                f"{attempt + 1}/{policy.max_attempts} in {delay:g}s for {label}",
                extra={
                    "attempt": attempt + 1,
                    "delay_seconds": delay,
                    "status_code": response.status_code,
                },
            )
            record_counter("proxy_retries_total", 1, {"reason": str(response.status_code)})
            await response.aclose()
            await sleep(delay)
            continue

        if attempt > 0 and response.is_success:
            logger.info(f"Backend awake: {label} succeeded after {attempt + 1} attempts")

        return response

    # Only reachable when max_attempts < 1
    raise last_error or RuntimeError("Max retries exceeded")
