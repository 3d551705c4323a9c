"""
Freshness and replay checking for download requests.
"""

from __future__ import annotations

import threading
import time
from enum import Enum
from typing import Callable


class FreshnessVerdict(str, Enum):
    FRESH = "fresh"
    STALE = "stale"
    REPLAYED = "replayed"


class FreshnessGuard:
    """Rejects requests with a drifted timestamp or a reused request id."""

    def __init__(self, skew_window: float, clock: Callable[[], float] = time.time):
        self.skew_window = skew_window
        self.clock = clock
        # request id -> instant after which its timestamp is stale anyway
        self._seen: dict[str, float] = {}
        self._lock = threading.Lock()

    def check(self, client_timestamp_ms: int, request_id: str) -> FreshnessVerdict:
        """Classify one request and remember its id when it is fresh."""
        now = self.clock()
        client_ts = client_timestamp_ms / 1000.0
        if abs(now - client_ts) > self.skew_window:
            return FreshnessVerdict.STALE

        with self._lock:
            self._evict(now)
            if request_id in self._seen:
                return FreshnessVerdict.REPLAYED
            self._seen[request_id] = client_ts + self.skew_window
        return FreshnessVerdict.FRESH

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)

    def _evict(self, now: float) -> None:
        expired = [rid for rid, until in self._seen.items() if until < now]
        for rid in expired:
            del self._seen[rid]
