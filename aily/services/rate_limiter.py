"""
Fixed-window rate limiting for teaching messages.

The limiter owns no global state: counters live in an injected store so the
in-memory default can be swapped for a shared backend when running several
workers.
"""

from typing import Callable, Dict, Optional
from dataclasses import dataclass
from datetime import datetime, timezone
import threading
import time
import logging

logger = logging.getLogger(__name__)


@dataclass
class RateLimitEntry:
    count: int
    reset_time: float  # epoch seconds when the window closes


class RateLimitStore:
    """Storage backend for rate limit counters."""

    def hit(self, identifier: str, window_seconds: int, now: float) -> RateLimitEntry:
        """Count one request and return the entry after counting."""
        raise NotImplementedError

    def peek(self, identifier: str, now: float) -> Optional[RateLimitEntry]:
        """Current live entry without counting, or None."""
        raise NotImplementedError


class InMemoryRateLimitStore(RateLimitStore):
    """
    Process-local store.

    Expired windows are dropped on access, and every ``purge_every`` hits the
    whole store is swept so identifiers that stop sending do not accumulate.
    """

    def __init__(self, purge_every: int = 1000):
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()
        self.purge_every = purge_every
        self._hits = 0

    def hit(self, identifier: str, window_seconds: int, now: float) -> RateLimitEntry:
        with self._lock:
            self._hits += 1
            if self._hits % self.purge_every == 0:
                self._drop_expired(now)

            entry = self._entries.get(identifier)
            if entry is None or now > entry.reset_time:
                entry = RateLimitEntry(count=1, reset_time=now + window_seconds)
                self._entries[identifier] = entry
            else:
                entry.count += 1
            return RateLimitEntry(entry.count, entry.reset_time)

    def peek(self, identifier: str, now: float) -> Optional[RateLimitEntry]:
        with self._lock:
            entry = self._entries.get(identifier)
            if entry is None:
                return None
            if now > entry.reset_time:
                del self._entries[identifier]
                return None
            return RateLimitEntry(entry.count, entry.reset_time)

    def purge_expired(self, now: float) -> int:
        with self._lock:
            return self._drop_expired(now)

    def _drop_expired(self, now: float) -> int:
        expired = [k for k, e in self._entries.items() if now > e.reset_time]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def size(self) -> int:
        with self._lock:
            return len(self._entries)


class RateLimiter:
    """Allows ``limit`` requests per identifier in each ``window_seconds`` window."""

    def __init__(
        self,
        store: RateLimitStore,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time
    ):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds
        self.clock = clock

    def check(self, identifier: str) -> bool:
        """Count a request; False once the window's allowance is used up."""
        entry = self.store.hit(identifier, self.window_seconds, self.clock())
        allowed = entry.count <= self.limit
        if not allowed:
            logger.warning(f"🚦 Rate limit exceeded for {identifier}")
        return allowed

    def info(self, identifier: str) -> dict:
        """Remaining requests and when the current window resets."""
        now = self.clock()
        entry = self.store.peek(identifier, now)
        if entry is None:
            return {"remaining": self.limit, "reset_time": None}
        return {
            "remaining": max(0, self.limit - entry.count),
            "reset_time": datetime.fromtimestamp(entry.reset_time, tz=timezone.utc),
        }

    def retry_after_seconds(self, identifier: str) -> int:
        entry = self.store.peek(identifier, self.clock())
        if entry is None or entry.count < self.limit:
            return 0
        return max(1, int(entry.reset_time - self.clock()))
