"""
In-process cache of selectors that last worked.

Maps (document type, field, URL pattern) to a selector string. Entries are
written on a successful resolution, evicted when a cached selector stops
matching, and bounded by a least-recently-used capacity. Nothing is
persisted; the cache lives as long as its owner.
"""

import logging
import threading
from collections import OrderedDict
from typing import Any, Optional

logger = logging.getLogger(__name__)

CacheKey = tuple[str, str, str]


def make_key(document_type: Any, field_name: str, pattern: str) -> CacheKey:
    """Build a cache key; enum document types collapse to their value."""
    return (getattr(document_type, "value", document_type), field_name, pattern)


class SelectorCache:
    """
    Thread-safe LRU mapping from cache key to selector.

    Writes are serialized by a lock, so concurrent resolutions of the same
    key end with the last writer's selector. Every cached selector is
    re-validated against the document before it is trusted.
    """

    def __init__(self, max_entries: int = 1000):
        """
        Initialize the cache.

        Args:
            max_entries: Capacity before least-recently-used eviction;
                0 or less means unbounded
        """
        self.max_entries = max_entries
        self._entries: "OrderedDict[CacheKey, str]" = OrderedDict()
        self._lock = threading.Lock()
        self._evictions = 0
        self._invalidations = 0

    def get(self, key: CacheKey) -> Optional[str]:
        """Return the cached selector for a key and mark it recently used."""
        with self._lock:
            selector = self._entries.get(key)
            if selector is not None:
                self._entries.move_to_end(key)
            return selector

    def set(self, key: CacheKey, selector: str) -> None:
        """Store (or overwrite) the selector for a key."""
        with self._lock:
            self._entries[key] = selector
            self._entries.move_to_end(key)
            self._enforce_capacity_unlocked()

    def delete(self, key: CacheKey) -> bool:
        """
        Remove a stale entry.

        Returns:
            True if an entry was removed
        """
        with self._lock:
            if key in self._entries:
                del self._entries[key]
                self._invalidations += 1
                return True
        return False

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._entries.clear()

    def _enforce_capacity_unlocked(self) -> None:
        """Evict least-recently-used entries over capacity (must hold lock)."""
        if self.max_entries <= 0:
            return
        while len(self._entries) > self.max_entries:
            key, selector = self._entries.popitem(last=False)
            self._evictions += 1
            logger.debug(f"Evicted cached selector {selector!r} for {key}")

    def stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            return {
                "entry_count": len(self._entries),
                "max_entries": self.max_entries,
                "evictions": self._evictions,
                "invalidations": self._invalidations,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        with self._lock:
            return key in self._entries
