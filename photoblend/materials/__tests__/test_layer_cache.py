"""
Tests for the read-through layer cache
"""

import threading

import numpy as np
import pytest

from photoblend.materials.cache import LayerCache


class TestGetOrCompute:
    def test_factory_runs_once(self):
        cache = LayerCache(max_items=4)
        calls = []

        def factory():
            calls.append(1)
            return np.ones((4, 4), dtype=np.float32)

        first = cache.get_or_compute("k", factory)
        second = cache.get_or_compute("k", factory)

        assert first is second
        assert len(calls) == 1
        assert cache.hits == 1
        assert cache.misses == 1

    def test_values_are_read_only(self):
        cache = LayerCache()
        value = cache.get_or_compute("k", lambda: np.zeros((2, 2), dtype=np.uint8))
        assert not value.flags.writeable
        with pytest.raises(ValueError):
            value[0, 0] = 1

    def test_first_stored_entry_wins(self):
        cache = LayerCache()

        def slow_factory():
            # Another job stores the same key while this one is computing
            cache.get_or_compute("k", lambda: np.full(3, 1))
            return np.full(3, 2)

        value = cache.get_or_compute("k", slow_factory)
        assert np.array_equal(value, np.full(3, 1))
        assert np.array_equal(cache.get("k"), np.full(3, 1))

    def test_get_missing(self):
        assert LayerCache().get("nope") is None


class TestEviction:
    def test_evicts_least_recently_used(self):
        cache = LayerCache(max_items=2)
        cache.get_or_compute("a", lambda: np.zeros(1))
        cache.get_or_compute("b", lambda: np.zeros(1))
        cache.get("a")
        cache.get_or_compute("c", lambda: np.zeros(1))

        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache

    def test_memory_limit_keeps_newest(self):
        cache = LayerCache(max_items=10, max_memory_mb=1)
        one_mb = lambda: np.zeros(1024 * 1024, dtype=np.uint8)
        cache.get_or_compute("a", one_mb)
        cache.get_or_compute("b", one_mb)

        assert "a" not in cache
        assert "b" in cache
        assert cache.current_memory_mb == pytest.approx(1.0)

    def test_clear(self):
        cache = LayerCache()
        cache.get_or_compute("a", lambda: np.zeros(10))
        cache.clear()
        assert len(cache) == 0
        assert cache.current_memory_mb == 0.0


class TestThreadSafety:
    def test_concurrent_access_returns_one_entry(self):
        cache = LayerCache(max_items=4)
        results = []

        def worker(n):
            results.append(cache.get_or_compute("shared", lambda: np.full(4, n)))

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(cache) == 1
        stored = cache.get("shared")
        assert all(r is stored for r in results)
