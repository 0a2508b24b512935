"""Time-to-live memoization for availability checks and directory sizes."""

import logging
import threading
import time
from typing import Callable, NamedTuple, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")

AVAILABILITY_TTL = 300.0  # 5 minutes
SIZE_TTL = 120.0  # 2 minutes


class _Entry(NamedTuple):
    value: object
    stored_at: float


class TTLCache:
    """Lock-guarded cache with per-lookup time-to-live.

    One instance is created at startup and handed to every cache source.
    Values are computed outside the lock, so two concurrent misses for the
    same key may both compute; the last writer wins.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._availability: dict[str, _Entry] = {}
        self._sizes: dict[str, _Entry] = {}

    def get_availability(
        self,
        tool: str,
        check_fn: Callable[[], bool],
        ttl: float = AVAILABILITY_TTL,
    ) -> bool:
        """Return the cached availability of a tool, running check_fn on a miss."""
        return self._get(self._availability, tool, check_fn, ttl)

    def get_size(self, key: str, size_fn: Callable[[], T], ttl: float = SIZE_TTL) -> T:
        """Return a cached size value, running size_fn on a miss."""
        return self._get(self._sizes, key, size_fn, ttl)

    def invalidate_size(self, key: str) -> None:
        """Drop the cached size for a key (call after clearing)."""
        with self._lock:
            self._sizes.pop(key, None)

    def invalidate_size_prefix(self, prefix: str) -> None:
        """Drop every cached size whose key starts with prefix."""
        with self._lock:
            for key in [k for k in self._sizes if k.startswith(prefix)]:
                del self._sizes[key]

    def clear_all(self) -> None:
        """Forget everything."""
        with self._lock:
            self._availability.clear()
            self._sizes.clear()

    def stats(self) -> dict[str, int]:
        """Entry counts, for debugging."""
        with self._lock:
            return {
                "availability_cache_size": len(self._availability),
                "size_cache_size": len(self._sizes),
            }

    def _get(self, store: dict[str, _Entry], key: str, compute: Callable[[], T], ttl: float) -> T:
        now = self._clock()
        with self._lock:
            entry = store.get(key)
        if entry is not None and now - entry.stored_at < ttl:
            return entry.value  # type: ignore[return-value]

        value = compute()
        with self._lock:
            store[key] = _Entry(value, self._clock())
        log.debug("Cached %s (ttl %.0fs)", key, ttl)
        return value
