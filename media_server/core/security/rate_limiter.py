"""
Global token-bucket rate limiting.

Each named rule owns a single bucket shared by every caller: the media
server limits total upload throughput, not per-client throughput.
"""

import threading
import time
import logging
from dataclasses import dataclass
from typing import Callable, Dict

logger = logging.getLogger(__name__)


@dataclass
class RateLimitRule:
    """`limit` requests per `window_seconds`, refilled continuously."""
    name: str
    limit: int
    window_seconds: float

    @property
    def tokens_per_second(self) -> float:
        return self.limit / self.window_seconds


@dataclass
class TokenBucket:
    tokens: float
    max_tokens: int
    tokens_per_second: float
    last_update: float

    total_allowed: int = 0
    total_denied: int = 0

    def refill(self, now: float) -> None:
        elapsed = max(0.0, now - self.last_update)
        self.tokens = min(self.max_tokens, self.tokens + elapsed * self.tokens_per_second)
        self.last_update = now

    def consume(self, now: float, cost: int = 1) -> bool:
        self.refill(now)
        if self.tokens >= cost:
            self.tokens -= cost
            self.total_allowed += 1
            return True
        self.total_denied += 1
        return False

    def seconds_until_available(self, cost: int = 1) -> float:
        missing = cost - self.tokens
        if missing <= 0:
            return 0.0
        return missing / self.tokens_per_second


class RateLimiter:
    """
    Holds one bucket per rule.

    [USAGE]
        limiter = RateLimiter([RateLimitRule("upload", limit=20, window_seconds=60)])
        allowed, retry_after = limiter.check("upload")
    """

    def __init__(self, rules, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._rules: Dict[str, RateLimitRule] = {}
        self._buckets: Dict[str, TokenBucket] = {}
        for rule in rules:
            self.add_rule(rule)

    def add_rule(self, rule: RateLimitRule) -> None:
        with self._lock:
            self._rules[rule.name] = rule
            self._buckets[rule.name] = TokenBucket(
                tokens=float(rule.limit),
                max_tokens=rule.limit,
                tokens_per_second=rule.tokens_per_second,
                last_update=self._clock(),
            )

    def check(self, rule_name: str, cost: int = 1):
        """Returns (allowed, retry_after_seconds)."""
        with self._lock:
            bucket = self._buckets.get(rule_name)
            if bucket is None:
                raise KeyError(f"No rate limit rule named '{rule_name}'")

            if bucket.consume(self._clock(), cost):
                return True, 0.0

            retry_after = bucket.seconds_until_available(cost)
            logger.warning(f"Rate limit '{rule_name}' exceeded, retry in {retry_after:.1f}s")
            return False, retry_after

    def stats(self) -> Dict[str, Dict[str, int]]:
        with self._lock:
            return {
                name: {"allowed": b.total_allowed, "denied": b.total_denied}
                for name, b in self._buckets.items()
            }
