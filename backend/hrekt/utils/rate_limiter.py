"""
Rate Limiter

Provides:
  - ``TokenBucketRateLimiter``  – coroutine-safe token-bucket rate limiter
  - ``limiter_for_rate``        – limiter sized for job admission (no burst)
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Token-Bucket Rate Limiter
# ---------------------------------------------------------------------------

class TokenBucketRateLimiter:
    """
    Asyncio-compatible token-bucket rate limiter.

    Allows up to *capacity* tokens with a refill rate of *rate* tokens per
    second.  Callers ``await`` :meth:`admit` (or :meth:`acquire`) to consume a
    token; the coroutine suspends until enough tokens are available.

    Example::

        limiter = TokenBucketRateLimiter(rate=1000)  # 1000 jobs/s, no burst
        for host in hosts:
            await limiter.admit()
            ...
    """

    def __init__(self, rate: float, capacity: float = 1.0) -> None:
        """
        Args:
            rate: Token refill rate (tokens per second).
            capacity: Maximum number of tokens in the bucket.
        """
        if rate <= 0:
            raise ValueError("rate must be > 0")
        if capacity <= 0:
            raise ValueError("capacity must be > 0")

        self.rate = rate
        self.capacity = capacity
        self._tokens: float = capacity
        self._last_refill: float = time.monotonic()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        """Add tokens based on elapsed time since last refill (not thread-safe)."""
        now = time.monotonic()
        elapsed = now - self._last_refill
        self._tokens = min(self.capacity, self._tokens + elapsed * self.rate)
        self._last_refill = now

    async def acquire(self, tokens: float = 1.0) -> None:
        """
        Wait until *tokens* tokens are available, then consume them.

        Args:
            tokens: Number of tokens to consume (default: 1).
        """
        if tokens > self.capacity:
            raise ValueError("cannot acquire more tokens than the bucket holds")

        while True:
            async with self._lock:
                self._refill()
                if self._tokens >= tokens:
                    self._tokens -= tokens
                    return
                # Calculate how long to wait for enough tokens
                deficit = tokens - self._tokens
                wait_time = deficit / self.rate

            await asyncio.sleep(wait_time)

    async def admit(self) -> None:
        """Suspend until one more job may enter the pipeline."""
        await self.acquire(1.0)

    async def __aenter__(self) -> "TokenBucketRateLimiter":
        await self.admit()
        return self

    async def __aexit__(self, *args: Any) -> None:
        pass


def limiter_for_rate(rate: int) -> TokenBucketRateLimiter:
    """
    Return a limiter admitting at most *rate* jobs per second.

    The bucket holds a single token, so consecutive admissions are spaced at
    least ``1 / rate`` seconds apart.
    """
    logger.debug("Admission rate set to %d jobs/s", rate)
    return TokenBucketRateLimiter(rate=float(rate), capacity=1.0)
