"""Fixed-window rate limiting for mutation requests."""

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float  # epoch seconds when the current window closes
    retry_after: int


class RateLimiter:
    """
    In-memory fixed-window counter keyed by an identifier such as ``ip:path``.

    Counts live in this process only; several workers each keep their own.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, dict[str, float]] = {}
        self._last_cleanup: Optional[float] = None
        self._lock = threading.Lock()

    def hit(self, identifier: str) -> RateLimitResult:
        """Count one request for ``identifier`` and report whether it is allowed."""
        with self._lock:
            now = self._clock()
            # Closed windows are swept at most once per window length
            if self._last_cleanup is None:
                self._last_cleanup = now
            elif now - self._last_cleanup >= self.window_seconds:
                self._purge(now)
                self._last_cleanup = now

            window = self._windows.get(identifier)
            if window is None or window["reset_at"] <= now:
                window = {"count": 0, "reset_at": now + self.window_seconds}
                self._windows[identifier] = window

            window["count"] += 1
            count = int(window["count"])

            return RateLimitResult(
                allowed=count <= self.max_requests,
                limit=self.max_requests,
                remaining=max(0, self.max_requests - count),
                reset_at=window["reset_at"],
                retry_after=max(1, math.ceil(window["reset_at"] - now)),
            )

    def reset(self, identifier: str) -> None:
        with self._lock:
            self._windows.pop(identifier, None)

    def reset_all(self) -> None:
        with self._lock:
            self._windows.clear()
            self._last_cleanup = None

    def cleanup_old_entries(self) -> None:
        """Drop windows that have already closed."""
        with self._lock:
            self._purge(self._clock())

    def _purge(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if window["reset_at"] <= now]
        for key in expired:
            del self._windows[key]

    def __len__(self) -> int:
        return len(self._windows)
