"""
Per-provider rate limiting.

Token bucket for the per-minute rate (with burst allowance) plus a daily
counter that resets at local midnight. One RateLimiter per provider name,
handed out by a RateLimiterRegistry constructed at startup.

The check-and-decrement in try_acquire() contains no await, so concurrent
coroutines on one event loop cannot interleave inside it.
"""

import time
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, Optional, Tuple

from loguru import logger


@dataclass
class RateLimitConfig:
    """Request budget for one provider."""

    requests_per_minute: int = 60
    requests_per_day: Optional[int] = None
    burst_size: int = 10


@dataclass
class RateLimitState:
    """Mutable bucket state for one provider."""

    tokens: float
    last_update: float
    day: date = field(default_factory=date.today)
    day_count: int = 0


class RateLimiter:
    """
    Token bucket + daily quota for a single provider.

    Usage:
        limiter = RateLimiter("isbndb", RateLimitConfig(100, 1000, 10))
        allowed, remaining, retry_after = limiter.try_acquire()
    """

    def __init__(
        self,
        name: str,
        config: RateLimitConfig,
        clock: Callable[[], float] = time.monotonic,
        today: Callable[[], date] = date.today,
    ):
        """
        Args:
            name: Provider name (for logging).
            config: Request budget.
            clock: Monotonic clock in seconds.
            today: Source of the current local date.
        """
        self.name = name
        self.config = config
        self._clock = clock
        self._today = today
        self._state = RateLimitState(
            tokens=self.max_tokens,
            last_update=clock(),
            day=today(),
        )

    @property
    def max_tokens(self) -> float:
        return float(min(self.config.burst_size, self.config.requests_per_minute))

    @property
    def refill_rate(self) -> float:
        """Tokens per second."""
        return self.config.requests_per_minute / 60.0

    def _refill(self) -> None:
        state = self._state
        now = self._clock()
        elapsed = now - state.last_update
        state.tokens = min(self.max_tokens, state.tokens + elapsed * self.refill_rate)
        state.last_update = now

        today = self._today()
        if today != state.day:
            state.day = today
            state.day_count = 0

    def try_acquire(self) -> Tuple[bool, int, float]:
        """
        Take one request slot if available.

        Returns:
            Tuple of (allowed, remaining_tokens, retry_after_seconds).
        """
        self._refill()
        state = self._state

        daily = self.config.requests_per_day
        if daily is not None and state.day_count >= daily:
            logger.warning(f"{self.name}: daily quota of {daily} requests exhausted")
            return False, 0, self._seconds_until_midnight()

        if state.tokens >= 1:
            state.tokens -= 1
            state.day_count += 1
            return True, int(state.tokens), 0.0

        retry_after = (1 - state.tokens) / self.refill_rate
        return False, 0, retry_after

    def remaining(self) -> Dict[str, Optional[int]]:
        """Remaining budget for the current minute and day."""
        self._refill()
        daily = self.config.requests_per_day
        return {
            "minute": int(self._state.tokens),
            "day": None if daily is None else max(0, daily - self._state.day_count),
        }

    @staticmethod
    def _seconds_until_midnight() -> float:
        now = time.localtime()
        return float(86400 - (now.tm_hour * 3600 + now.tm_min * 60 + now.tm_sec))


class RateLimiterRegistry:
    """Holds one RateLimiter per provider name."""

    def __init__(self, configs: Optional[Dict[str, RateLimitConfig]] = None):
        self._configs = dict(configs or {})
        self._limiters: Dict[str, RateLimiter] = {}

    def get(self, name: str) -> RateLimiter:
        if name not in self._limiters:
            config = self._configs.get(name, RateLimitConfig())
            self._limiters[name] = RateLimiter(name, config)
        return self._limiters[name]

    def status(self) -> Dict[str, Dict[str, Optional[int]]]:
        return {name: limiter.remaining() for name, limiter in self._limiters.items()}
