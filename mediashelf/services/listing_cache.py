"""
mediashelf - Listing Cache

Keyed in-memory store with time-to-live expiry.  An expired entry is evicted
when it is looked up, and ``set()`` sweeps out every expired entry at most
once per ``check_period`` so keys that are never read again do not pile up.
"""

import threading
import time
from typing import Any, Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

from loguru import logger

from mediashelf.config import DEFAULT_CACHE_TTL

V = TypeVar("V")


class TTLCache(Generic[V]):
    """
    Time-bounded cache.

    ``clock`` defaults to :func:`time.monotonic` and can be swapped for a fake
    in tests to step time forward deterministically.  ``check_period``
    defaults to the TTL.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
        check_period: Optional[float] = None,
    ):
        if ttl < 0:
            raise ValueError("ttl must be non-negative")
        self.ttl = ttl
        self.check_period = ttl if check_period is None else check_period
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, V]] = {}
        self._lock = threading.Lock()
        self._next_sweep = clock() + self.check_period

    def get(self, key: Hashable) -> Optional[V]:
        """Return the live value for *key*, or None if absent or expired."""
        with self._lock:
            item = self._entries.get(key)
            if item is None:
                return None
            expires_at, value = item
            if self._clock() >= expires_at:
                del self._entries[key]
                logger.debug("⌛ Cache entry expired: {!r}", key)
                return None
            return value

    def set(self, key: Hashable, value: V, ttl: Optional[float] = None) -> None:
        lifetime = self.ttl if ttl is None else ttl
        with self._lock:
            now = self._clock()
            if now >= self._next_sweep:
                self._sweep(now)
            self._entries[key] = (now + lifetime, value)

    def purge_expired(self) -> int:
        """Drop every expired entry now; returns how many were removed."""
        with self._lock:
            return self._sweep(self._clock())

    def _sweep(self, now: float) -> int:
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        self._next_sweep = now + self.check_period
        if expired:
            logger.debug("🧹 Swept {} expired cache entries", len(expired))
        return len(expired)

    @property
    def stored(self) -> int:
        """Number of stored entries, expired ones not yet swept included."""
        with self._lock:
            return len(self._entries)

    def invalidate(self, key: Hashable) -> bool:
        """Drop *key*; returns True if something was removed."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: Any) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        now = self._clock()
        with self._lock:
            return sum(1 for expires_at, _ in self._entries.values() if now < expires_at)
