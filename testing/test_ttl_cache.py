"""Tests for the bounded TTL cache."""

import pytest

from companion_engine.utils.ttl_cache import BoundedTTLCache


class TestBoundedTTLCache:

    def setup_method(self):
        self.released = []

    def _cache(self, clock, ttl=10, max_entries=None):
        return BoundedTTLCache(
            ttl,
            max_entries=max_entries,
            on_evict=lambda key, value: self.released.append((key, value)),
            clock=clock,
        )

    def test_entry_expires_after_ttl(self, clock):
        cache = self._cache(clock)
        cache.set("a", 1)

        clock.advance(10)
        assert cache.get("a") == 1  # still live at exactly the TTL

        clock.advance(0.5)
        assert cache.get("a") is None
        assert self.released == [("a", 1)]
        assert len(cache) == 0

    def test_oldest_entry_evicted_at_capacity(self, clock):
        cache = self._cache(clock, max_entries=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)

        assert "a" not in cache
        assert cache.get("b") == 2
        assert cache.get("c") == 3
        assert self.released == [("a", 1)]

    def test_expired_entries_purged_before_eviction(self, clock):
        cache = self._cache(clock, max_entries=2)
        cache.set("a", 1)
        clock.advance(5)
        cache.set("b", 2)
        clock.advance(6)  # only "a" has expired
        cache.set("c", 3)

        assert cache.get("b") == 2
        assert self.released == [("a", 1)]

    def test_replacing_releases_old_value(self, clock):
        cache = self._cache(clock)
        cache.set("a", 1)
        cache.set("a", 2)
        assert cache.get("a") == 2
        assert self.released == [("a", 1)]

    def test_delete_and_clear(self, clock):
        cache = self._cache(clock)
        cache.set("a", 1)
        cache.set("b", 2)

        assert cache.delete("a") is True
        assert cache.delete("a") is False
        cache.clear()

        assert len(cache) == 0
        assert self.released == [("a", 1), ("b", 2)]

    def test_failing_release_callback_does_not_break_cache(self, clock):
        def explode(key, value):
            raise RuntimeError("disk gone")

        cache = BoundedTTLCache(10, on_evict=explode, clock=clock)
        cache.set("a", 1)
        cache.clear()
        assert len(cache) == 0

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            BoundedTTLCache(0)
        with pytest.raises(ValueError):
            BoundedTTLCache(10, max_entries=0)
