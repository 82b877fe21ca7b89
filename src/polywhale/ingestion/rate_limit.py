"""Token-bucket rate limiter for REST APIs (CLOB /book hydration)."""

from __future__ import annotations

import asyncio
import time


class TokenBucket:
    """Simple token bucket: refill rate per second, max burst."""

    def __init__(self, rate: float = 20.0, capacity: int | None = None) -> None:
        self.rate = rate
        self.capacity = capacity or max(1, int(rate))
        self.tokens = float(self.capacity)
        self.last = time.monotonic()

    def consume(self, n: int = 1) -> bool:
        """Consume n tokens. Return True if allowed, False if not enough."""
        now = time.monotonic()
        self.tokens = min(self.capacity, self.tokens + (now - self.last) * self.rate)
        self.last = now
        if self.tokens >= n:
            self.tokens -= n
            return True
        return False

    async def acquire(self, n: int = 1) -> None:
        """Wait until n tokens are available, without blocking the event loop."""
        n = min(n, self.capacity)
        while not self.consume(n):
            await asyncio.sleep(max((n - self.tokens) / self.rate, 0.01))
