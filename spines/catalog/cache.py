"""Process-local TTL cache for catalog search results."""

import threading
import time

from cachetools import TTLCache


class SearchCache:
    """Lock-guarded wrapper around :class:`cachetools.TTLCache`.

    Entries expire lazily on access; :meth:`expire` drops everything past its
    TTL and is driven by the scheduler's sweep job.
    """

    def __init__(self, ttl, maxsize=1024, timer=time.monotonic):
        self.ttl = ttl
        self._cache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)
        self._lock = threading.Lock()

    def get(self, key):
        with self._lock:
            return self._cache.get(key)

    def set(self, key, value):
        with self._lock:
            self._cache[key] = value

    def expire(self):
        """Remove expired entries. Returns how many were dropped."""
        with self._lock:
            return len(list(self._cache.expire()))

    def clear(self):
        with self._lock:
            self._cache.clear()

    def __len__(self):
        with self._lock:
            return len(self._cache)

    def __contains__(self, key):
        with self._lock:
            return key in self._cache
