"""Pacing for calls against the quota-limited YouTube Data API."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Optional

from vingest.config.settings import ServiceRateLimit


@dataclass(slots=True)
class RateLimiter:
    """Token bucket refilled at ``requests_per_minute``, holding at most ``burst`` tokens.

    Callers that find the bucket empty sleep until the next token is due, never less than an
    exponentially growing floor, so a burst of waiters does not spin.
    """

    requests_per_minute: int
    burst: int
    min_wait_seconds: float = 0.5
    max_wait_seconds: float = 5.0
    _tokens: float = field(init=False, repr=False)
    _updated_at: float = field(init=False, repr=False)
    _lock: asyncio.Lock = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._tokens = float(self.burst)
        self._updated_at = time.monotonic()
        self._lock = asyncio.Lock()

    @property
    def tokens_per_second(self) -> float:
        return max(self.requests_per_minute, 0) / 60.0

    @property
    def available_tokens(self) -> float:
        self._top_up()
        return self._tokens

    async def acquire(self) -> None:
        """Take one token, sleeping until it is available."""

        if self.tokens_per_second == 0:
            return

        async with self._lock:
            waits = 0
            while not self._try_take():
                due_in = (1.0 - self._tokens) / self.tokens_per_second
                floor = min(self.max_wait_seconds, self.min_wait_seconds * (2**waits))
                await asyncio.sleep(max(due_in, floor))
                waits += 1

    def _try_take(self) -> bool:
        self._top_up()
        if self._tokens < 1.0:
            return False
        self._tokens -= 1.0
        return True

    def _top_up(self) -> None:
        now = time.monotonic()
        elapsed = now - self._updated_at
        if elapsed > 0:
            self._tokens = min(float(self.burst), self._tokens + elapsed * self.tokens_per_second)
            self._updated_at = now


def limiter_from_config(config: Optional[ServiceRateLimit]) -> Optional[RateLimiter]:
    """Build a limiter from a ``rate_limits.yaml`` service entry; ``None`` leaves calls unpaced."""

    if config is None:
        return None
    requests_per_minute = config.requests_per_minute or 60
    return RateLimiter(requests_per_minute=requests_per_minute, burst=config.burst or requests_per_minute)


__all__ = ["RateLimiter", "limiter_from_config"]
