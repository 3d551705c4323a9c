"""
Fixed-window rate limiting shared by the gated endpoints.

Each ``(identity, endpoint class)`` pair owns one bucket. Admission check and
increment happen in a single critical section so concurrent requests from the
same identity cannot overshoot the limit.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable


class EndpointClass(str, Enum):
    VERIFICATION = "verification"
    DOWNLOAD = "download"


@dataclass(frozen=True)
class RateLimitRule:
    max_count: int
    window: float  # seconds


@dataclass
class RateLimitBucket:
    window_start: float
    count: int = 0


@dataclass(frozen=True)
class Admission:
    """Result of a rate limit check."""

    allowed: bool
    retry_after: float = 0.0


class RateLimiter:
    """Per-identity fixed-window counter, one window set per endpoint class."""

    def __init__(
        self,
        rules: dict[EndpointClass, RateLimitRule],
        clock: Callable[[], float] = time.time,
    ):
        self.rules = rules
        self.clock = clock
        self._buckets: dict[tuple[str, EndpointClass], RateLimitBucket] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()
        self._sweep_interval = max(rule.window for rule in rules.values())

    def admit(self, identity: str, endpoint_class: EndpointClass) -> Admission:
        """Count one request for ``identity`` and say whether it may proceed."""
        rule = self.rules[endpoint_class]
        now = self.clock()
        with self._lock:
            self._sweep(now)
            key = (identity, endpoint_class)
            bucket = self._buckets.get(key)
            if bucket is None or now - bucket.window_start >= rule.window:
                bucket = RateLimitBucket(window_start=now)
                self._buckets[key] = bucket

            if bucket.count >= rule.max_count:
                return Admission(
                    allowed=False,
                    retry_after=rule.window - (now - bucket.window_start),
                )
            bucket.count += 1
            return Admission(allowed=True)

    def reset(self) -> None:
        """Forget all buckets."""
        with self._lock:
            self._buckets.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)

    def _sweep(self, now: float) -> None:
        # Caller holds the lock
        if now - self._last_sweep < self._sweep_interval:
            return
        self._last_sweep = now
        expired = [
            key
            for key, bucket in self._buckets.items()
            if now - bucket.window_start >= self.rules[key[1]].window
        ]
        for key in expired:
            del self._buckets[key]
