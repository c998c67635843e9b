# fs_app/services/ratelimit.py
from __future__ import annotations

import logging
import math
import threading
import time
from typing import Callable, Dict, Optional, Protocol, Tuple

import redis

from fs_app.errors import ErrorKind, McpError

logger = logging.getLogger(__name__)


class RateBackend(Protocol):
    def hit(self, key: str, window_sec: float) -> Tuple[int, float]:
        """Count one request for key; return (count in window, seconds until reset)."""

    def reset(self, key: Optional[str] = None) -> None:
        ...


class MemoryRateBackend:
    """
    Fixed-window counters kept in process memory. Expired windows are swept
    at most once per window length, from hit().
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: Dict[str, Tuple[int, float]] = {}  # key -> (count, reset_at)
        self._next_sweep = 0.0

    def hit(self, key: str, window_sec: float) -> Tuple[int, float]:
        now = self._clock()
        with self._lock:
            if now >= self._next_sweep:
                self._sweep(now)
                self._next_sweep = now + window_sec
            count, reset_at = self._windows.get(key, (0, 0.0))
            if now >= reset_at:
                count, reset_at = 0, now + window_sec
            count += 1
            self._windows[key] = (count, reset_at)
        return count, reset_at - now

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)

    def cleanup(self) -> int:
        """Drop expired windows; returns how many were removed."""
        with self._lock:
            return self._sweep(self._clock())

    def _sweep(self, now: float) -> int:
        expired = [k for k, (_, reset_at) in self._windows.items() if now >= reset_at]
        for k in expired:
            del self._windows[k]
        return len(expired)


class RedisRateBackend:
    """
    Redis-backed counters (INCR + EXPIRE) so several server processes share limits.
    """

    def __init__(self, url: str, prefix: str = "fsmcp:ratelimit:", client=None):
        self._client = client if client is not None else redis.from_url(url, decode_responses=True)
        self.prefix = prefix

    def hit(self, key: str, window_sec: float) -> Tuple[int, float]:
        rkey = self.prefix + key
        window_ms = max(1, int(window_sec * 1000))
        pipe = self._client.pipeline()
        pipe.incr(rkey)
        pipe.pttl(rkey)
        count, ttl_ms = pipe.execute()
        if ttl_ms is None or ttl_ms < 0:
            # first hit in this window (or key lost its expiry)
            self._client.pexpire(rkey, window_ms)
            ttl_ms = window_ms
        return int(count), ttl_ms / 1000.0

    def reset(self, key: Optional[str] = None) -> None:
        if key is not None:
            self._client.delete(self.prefix + key)
            return
        keys = list(self._client.scan_iter(match=self.prefix + "*"))
        if keys:
            self._client.delete(*keys)


class RateLimiter:
    """
    Gate in front of tool dispatch: at most max_requests per key per window.
    """

    def __init__(
        self,
        window_sec: float,
        max_requests: int,
        backend: Optional[RateBackend] = None,
        skip: bool = False,
    ):
        self.window_sec = window_sec
        self.max_requests = max_requests
        self.backend = backend or MemoryRateBackend()
        self.skip = skip

    def check(self, key: str) -> None:
        if self.skip:
            return
        count, remaining = self.backend.hit(key, self.window_sec)
        if count > self.max_requests:
            wait = max(1, math.ceil(remaining))
            logger.warning("rate limit exceeded for %s (%d/%d)", key, count, self.max_requests)
            raise McpError(
                ErrorKind.RATE_LIMITED,
                f"Rate limit exceeded. Please try again in {wait} seconds.",
                {"client": key, "wait_time_sec": wait, "limit": self.max_requests},
            )

    def reset(self, key: Optional[str] = None) -> None:
        self.backend.reset(key)
