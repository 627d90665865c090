"""
Bounded, time-boxed in-memory cache.

One implementation backs the chat response cache (bounded, oldest-inserted
eviction), the voice catalog cache and the generated audio cache (pure TTL,
with a release callback for the files behind each entry).
"""

import logging
import time
from collections import OrderedDict
from typing import Callable, Generic, Hashable, Optional, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class BoundedTTLCache(Generic[K, V]):
    """
    Insertion-ordered cache with per-entry TTL and optional capacity.

    Args:
        ttl_seconds: Lifetime of an entry from insertion
        max_entries: Capacity; None means unbounded (TTL only)
        on_evict: Called with (key, value) whenever an entry leaves the cache
            by expiry, eviction, replacement, delete or clear
        clock: Monotonic time source (injectable for tests)
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: Optional[int] = None,
        on_evict: Optional[Callable[[K, V], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries is not None and max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.on_evict = on_evict
        self.clock = clock
        self._entries: "OrderedDict[K, tuple[float, V]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: K) -> bool:
        return self.get(key) is not None

    def _release(self, key: K, value: V) -> None:
        if self.on_evict is None:
            return
        try:
            self.on_evict(key, value)
        except Exception as e:
            logger.error(f"Cache release callback failed for {key!r}: {e}", exc_info=True)

    def _is_expired(self, stored_at: float) -> bool:
        return self.clock() - stored_at > self.ttl_seconds

    def get(self, key: K) -> Optional[V]:
        """Return the live value for key, expiring it first if stale."""
        item = self._entries.get(key)
        if item is None:
            return None

        stored_at, value = item
        if self._is_expired(stored_at):
            del self._entries[key]
            self._release(key, value)
            return None

        return value

    def set(self, key: K, value: V) -> None:
        """Insert or replace an entry, evicting the oldest when full."""
        if key in self._entries:
            _, old_value = self._entries.pop(key)
            if old_value is not value:
                self._release(key, old_value)

        self.purge_expired()

        if self.max_entries is not None:
            while len(self._entries) >= self.max_entries:
                oldest_key, (_, oldest_value) = self._entries.popitem(last=False)
                self._release(oldest_key, oldest_value)

        self._entries[key] = (self.clock(), value)

    def delete(self, key: K) -> bool:
        """Remove an entry; returns True if it was present."""
        item = self._entries.pop(key, None)
        if item is None:
            return False
        self._release(key, item[1])
        return True

    def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        expired = [key for key, (stored_at, _) in self._entries.items() if self._is_expired(stored_at)]
        for key in expired:
            _, value = self._entries.pop(key)
            self._release(key, value)
        return len(expired)

    def clear(self) -> None:
        """Remove all entries, releasing each one."""
        while self._entries:
            key, (_, value) = self._entries.popitem(last=False)
            self._release(key, value)
