"""Unit tests for SelectorCache."""

import threading

import pytest

from homescrape.intelligence.selector_cache import SelectorCache, make_key
from homescrape.intelligence.selector_hierarchy import DocumentType


@pytest.fixture
def cache():
    return SelectorCache(max_entries=3)


class TestMakeKey:
    """Tests for cache key construction."""

    def test_enum_and_string_keys_match(self):
        """Enum document types collapse to their string value."""
        assert make_key(DocumentType.DETAIL, "price", "p") == make_key("detail", "price", "p")

    def test_key_dimensions(self):
        """Keys differ by document type, field and pattern."""
        keys = {
            make_key("detail", "price", "a"),
            make_key("search", "price", "a"),
            make_key("detail", "address", "a"),
            make_key("detail", "price", "b"),
        }
        assert len(keys) == 4


class TestSelectorCache:
    """Tests for SelectorCache."""

    def test_starts_empty(self, cache):
        """A new cache has no entries."""
        assert len(cache) == 0
        assert cache.get(("detail", "price", "p")) is None

    def test_set_and_get(self, cache):
        """A stored selector is returned for its key."""
        key = ("detail", "price", "p")
        cache.set(key, ".price")

        assert cache.get(key) == ".price"
        assert key in cache

    def test_overwrite(self, cache):
        """A later success overwrites the entry."""
        key = ("detail", "price", "p")
        cache.set(key, ".old")
        cache.set(key, ".new")

        assert cache.get(key) == ".new"
        assert len(cache) == 1

    def test_delete(self, cache):
        """Deleting removes the entry and counts an invalidation."""
        key = ("detail", "price", "p")
        cache.set(key, ".price")

        assert cache.delete(key) is True
        assert cache.get(key) is None
        assert cache.delete(key) is False
        assert cache.stats()["invalidations"] == 1

    def test_clear(self, cache):
        """Clearing removes every entry."""
        cache.set(("detail", "a", "p"), ".a")
        cache.set(("detail", "b", "p"), ".b")
        cache.clear()

        assert len(cache) == 0

    def test_lru_eviction(self, cache):
        """The least recently used entry is evicted over capacity."""
        cache.set(("d", "a", "p"), ".a")
        cache.set(("d", "b", "p"), ".b")
        cache.set(("d", "c", "p"), ".c")
        cache.get(("d", "a", "p"))  # a is now most recent
        cache.set(("d", "d", "p"), ".d")

        assert len(cache) == 3
        assert ("d", "b", "p") not in cache
        assert ("d", "a", "p") in cache
        assert cache.stats()["evictions"] == 1

    def test_unbounded(self):
        """A capacity of 0 disables eviction."""
        cache = SelectorCache(max_entries=0)
        for i in range(50):
            cache.set(("d", f"f{i}", "p"), f".f{i}")

        assert len(cache) == 50
        assert cache.stats()["evictions"] == 0

    def test_concurrent_writers(self):
        """Concurrent writes to one key leave one of the written selectors."""
        cache = SelectorCache()
        key = ("detail", "price", "p")
        written = [f".price-{i}" for i in range(20)]

        threads = [threading.Thread(target=cache.set, args=(key, s)) for s in written]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(cache) == 1
        assert cache.get(key) in written
