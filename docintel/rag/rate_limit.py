"""Pacing for calls to the embedding provider.

The embedder awaits ``acquire()`` before every provider request; how long
that takes is entirely the limiter's policy.
"""
import asyncio
import time
from typing import Awaitable, Callable, Optional, Protocol, runtime_checkable

import structlog

logger = structlog.get_logger()

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


@runtime_checkable
class RateLimiter(Protocol):
    """Waits until the next provider request may be issued."""

    async def acquire(self) -> None:
        ...


class IntervalPacer:
    """Enforces a minimum delay between consecutive requests.

    The first request goes out immediately; later ones wait until
    ``min_interval`` seconds have passed since the previous one.
    """

    def __init__(
        self,
        min_interval: float,
        clock: Optional[Clock] = None,
        sleep: Optional[Sleep] = None,
    ):
        if min_interval < 0:
            raise ValueError(f"min_interval must not be negative, got {min_interval}")
        self.min_interval = min_interval
        self._clock = clock or time.monotonic
        self._sleep = sleep or asyncio.sleep
        self._last: Optional[float] = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        async with self._lock:
            if self._last is not None:
                wait = self._last + self.min_interval - self._clock()
                if wait > 0:
                    logger.debug("rate_limit_wait", seconds=round(wait, 4))
                    await self._sleep(wait)
            self._last = self._clock()


class TokenBucketLimiter:
    """Token bucket: ``rate`` tokens per second, bursts up to ``capacity``."""

    def __init__(
        self,
        rate: float,
        capacity: int = 1,
        clock: Optional[Clock] = None,
        sleep: Optional[Sleep] = None,
    ):
        if rate <= 0:
            raise ValueError(f"rate must be positive, got {rate}")
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self.rate = rate
        self.capacity = capacity
        self._clock = clock or time.monotonic
        self._sleep = sleep or asyncio.sleep
        self._tokens = float(capacity)
        self._updated = self._clock()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = self._clock()
        self._tokens = min(self.capacity, self._tokens + (now - self._updated) * self.rate)
        self._updated = now

    async def acquire(self) -> None:
        async with self._lock:
            self._refill()
            if self._tokens < 1:
                wait = (1 - self._tokens) / self.rate
                logger.debug("rate_limit_wait", seconds=round(wait, 4))
                await self._sleep(wait)
                self._refill()
                # The clock may not have advanced by the full wait (fake clocks)
                self._tokens = max(self._tokens, 1.0)
            self._tokens -= 1
