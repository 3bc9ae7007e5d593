"""
Client-side query cache

Keys are tuples such as ('custom-designs', 12). Invalidating a key marks it
and every key it prefixes as stale, so ('testimonials',) also covers
('testimonials', 'approved'). Stale entries are refetched on the next read.
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, Tuple
import logging
import threading
import time

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    data: Any
    fetched_at: float
    stale: bool = False


class QueryCache:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: Dict[Tuple, CacheEntry] = {}
        self._lock = threading.Lock()
        self.clock = clock

    def peek(self, key: Tuple) -> Any:
        """Cached data, stale or not; None when absent"""
        with self._lock:
            entry = self._entries.get(key)
        return entry.data if entry is not None else None

    def is_stale(self, key: Tuple) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is None or entry.stale

    def set(self, key: Tuple, data: Any) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(data=data, fetched_at=self.clock())

    def fetch(self, key: Tuple, loader: Callable[[], Any], force: bool = False) -> Any:
        """Return fresh cached data or load, store and return it"""
        if not force:
            with self._lock:
                entry = self._entries.get(key)
                if entry is not None and not entry.stale:
                    return entry.data
        # loader runs outside the lock
        data = loader()
        self.set(key, data)
        return data

    def invalidate(self, prefix: Tuple) -> int:
        """Mark every key starting with `prefix` stale; returns how many"""
        count = 0
        with self._lock:
            for key, entry in self._entries.items():
                if key[:len(prefix)] == prefix:
                    entry.stale = True
                    count += 1
        logger.debug(f"Invalidated {count} cached queries under {prefix}")
        return count

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
