"""In-process TTL cache for poll listings and poll detail payloads."""

import random
import threading
import time
from typing import Any, Callable, Optional

from core.settings import settings


class TTLCache:
    """
    Small key/value cache where every entry expires ``ttl_seconds`` after it was stored.

    Stale entries are purged opportunistically: on roughly one in ten writes,
    everything older than twice the TTL is dropped.
    """

    def __init__(
        self,
        ttl_seconds: float,
        cleanup_probability: float = 0.1,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.cleanup_probability = cleanup_probability
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                return None
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            now = self._clock()
            self._entries[key] = (now, value)
            if random.random() < self.cleanup_probability:
                self._purge(now)

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_prefix(self, prefix: str) -> None:
        with self._lock:
            for key in [k for k in self._entries if k.startswith(prefix)]:
                del self._entries[key]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> None:
        with self._lock:
            self._purge(self._clock())

    def _purge(self, now: float) -> None:
        cutoff = now - self.ttl_seconds * 2
        for key in [k for k, (stored_at, _) in self._entries.items() if stored_at < cutoff]:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)


def user_polls_key(user_id) -> str:
    return f"user-polls-{user_id}"


def poll_key(poll_uuid) -> str:
    return f"poll-{poll_uuid}"


user_polls_cache = TTLCache(ttl_seconds=settings.USER_POLLS_CACHE_TTL)
poll_cache = TTLCache(ttl_seconds=settings.POLL_DETAIL_CACHE_TTL)
