"""
Thread-safe read-through LRU cache for derived rasters (shading maps, tiles).

Entries are keyed by immutable content identity and stored read-only; a job
can never modify an array another job got from the cache.
"""

import collections
import threading
from typing import Any, Callable, Hashable, Optional

import numpy as np
from loguru import logger


def _size_mb(value: Any) -> float:
    if isinstance(value, np.ndarray):
        return value.nbytes / (1024 * 1024)
    values = getattr(value, "values", None)
    if isinstance(values, np.ndarray):
        return values.nbytes / (1024 * 1024)
    return 0.0


def _freeze(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        value.setflags(write=False)
    else:
        values = getattr(value, "values", None)
        if isinstance(values, np.ndarray):
            values.setflags(write=False)
    return value


class LayerCache:
    """
    LRU cache bounded by item count and approximate memory.
    """

    def __init__(self, max_items: int = 32, max_memory_mb: float = 512):
        self.max_items = max_items
        self.max_memory_mb = max_memory_mb
        self.cache = collections.OrderedDict()
        self.lock = threading.Lock()
        self.current_memory_mb = 0.0
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        with self.lock:
            return len(self.cache)

    def __contains__(self, key: Hashable) -> bool:
        with self.lock:
            return key in self.cache

    def get(self, key: Hashable) -> Optional[Any]:
        with self.lock:
            if key in self.cache:
                self.cache.move_to_end(key)
                return self.cache[key][0]
            return None

    def get_or_compute(self, key: Hashable, factory: Callable[[], Any]) -> Any:
        """
        Return the cached value for ``key``, computing and storing it on a miss.

        ``factory`` runs outside the lock. If two jobs race on the same key the
        entry stored first wins and both get it.
        """
        with self.lock:
            if key in self.cache:
                self.cache.move_to_end(key)
                self.hits += 1
                return self.cache[key][0]
            self.misses += 1

        value = _freeze(factory())

        with self.lock:
            if key in self.cache:
                self.cache.move_to_end(key)
                return self.cache[key][0]

            size = _size_mb(value)
            self.cache[key] = (value, size)
            self.current_memory_mb += size
            self._evict_if_needed()

            logger.debug(
                f"[CACHE] Added {key}. Items: {len(self.cache)}, Mem: {self.current_memory_mb:.1f}MB"
            )
        return value

    def _evict_if_needed(self):
        while len(self.cache) > self.max_items:
            key, (_, size) = self.cache.popitem(last=False)
            self.current_memory_mb -= size
            logger.debug(f"[CACHE] Evicted (count) {key}. Mem: {self.current_memory_mb:.1f}MB")

        # Always keep the newest entry
        while self.current_memory_mb > self.max_memory_mb and len(self.cache) > 1:
            key, (_, size) = self.cache.popitem(last=False)
            self.current_memory_mb -= size
            logger.debug(f"[CACHE] Evicted (memory) {key}. Mem: {self.current_memory_mb:.1f}MB")

    def clear(self):
        with self.lock:
            self.cache.clear()
            self.current_memory_mb = 0.0
