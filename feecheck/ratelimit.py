"""Per-client request budget.

A fixed-window counter keyed by client identity. The counter store is an
explicit object handed to the RateLimiter (and the limiter to whoever
gates requests), so swapping the in-memory store for a shared one is a
constructor argument, not a global.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Protocol, runtime_checkable


@runtime_checkable
class RateLimitStore(Protocol):
    """Counter storage with per-key expiry."""

    def increment(self, key: str, window_seconds: float, now: float) -> tuple[int, float]:
        """
        Count one hit for `key`.

        Starts a fresh window (count 1) when the key is unknown or its
        window has expired.

        Returns:
            (count_in_window, window_reset_at)
        """
        ...

    def peek(self, key: str, now: float) -> tuple[int, float] | None:
        """Current (count, reset_at) for `key`, or None if absent/expired."""
        ...


@dataclass
class _Window:
    count: int
    reset_at: float


class InMemoryRateLimitStore:
    """
    Process-local RateLimitStore. Thread-safe.

    Expired windows are dropped at most once per window length, on the
    next increment, so the map stays bounded by the number of clients
    active in one window.
    """

    def __init__(self) -> None:
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._next_purge = 0.0

    def increment(self, key: str, window_seconds: float, now: float) -> tuple[int, float]:
        with self._lock:
            if now >= self._next_purge:
                self._drop_expired(now)
                self._next_purge = now + window_seconds
            window = self._windows.get(key)
            if window is None or now > window.reset_at:
                window = _Window(count=0, reset_at=now + window_seconds)
                self._windows[key] = window
            window.count += 1
            return window.count, window.reset_at

    def peek(self, key: str, now: float) -> tuple[int, float] | None:
        with self._lock:
            window = self._windows.get(key)
            if window is None or now > window.reset_at:
                return None
            return window.count, window.reset_at

    def purge_expired(self, now: float) -> int:
        """Drop expired windows. Returns how many were removed."""
        with self._lock:
            return self._drop_expired(now)

    def __len__(self) -> int:
        return len(self._windows)

    def _drop_expired(self, now: float) -> int:
        expired = [k for k, w in self._windows.items() if now > w.reset_at]
        for k in expired:
            del self._windows[k]
        return len(expired)


class RateLimiter:
    """Allow at most `max_requests` per `window_seconds` per client key."""

    def __init__(
        self,
        store: RateLimitStore,
        max_requests: int = 10,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests <= 0 or window_seconds <= 0:
            raise ValueError("max_requests and window_seconds must be positive")
        self._store = store
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._clock = clock

    def hit(self, key: str) -> bool:
        """Record one request for `key`. False if it is over budget."""
        count, _ = self._store.increment(key, self._window_seconds, self._clock())
        return count <= self._max_requests

    def retry_after(self, key: str) -> int:
        """Whole seconds until `key`'s window resets (0 if not limited)."""
        now = self._clock()
        state = self._store.peek(key, now)
        if state is None:
            return 0
        _, reset_at = state
        return max(0, math.ceil(reset_at - now))
