"""Unit tests for SelectorManager."""

import json
import threading

import pytest

from homescrape.config import ExtractorConfig
from homescrape.document import SoupDocument
from homescrape.intelligence import (
    DocumentType,
    PerformanceSnapshot,
    SelectorCache,
    SelectorManager,
)
from homescrape.llm import LLMSelectorGenerator, MockSelectorGenerator


DETAIL_URL = "https://www.zillow.com/homedetails/9-Pine-Rd/31415926_zpid/"
SEARCH_URL = "https://www.zillow.com/austin-tx/"

DETAIL_HTML = """
<html><body>
  <h1 data-testid="home-details-address">9 Pine Rd, Austin, TX 78701</h1>
  <span data-testid="price">$649,900</span>
  <span data-testid="bed-count">4 bd</span>
</body></html>
"""

SEARCH_HTML = """
<html><body>
  <article data-testid="property-card">
    <a href="/homedetails/1-A-St/1_zpid/">1 A St</a>
    <address>1 A St, Austin, TX</address>
    <span data-testid="price">$400,000</span>
  </article>
  <article data-testid="property-card">
    <a href="/homedetails/2-B-St/2_zpid/">2 B St</a>
    <address>2 B St, Austin, TX</address>
    <span data-testid="price">$500,000</span>
  </article>
</body></html>
"""


@pytest.fixture
def manager():
    return SelectorManager()


@pytest.fixture
def detail_doc():
    return SoupDocument.from_html(DETAIL_HTML)


class TestSelectorManager:
    """Tests for the engine facade."""

    def test_resolve_detail_fields(self, manager, detail_doc):
        """Default hierarchy resolves common detail fields."""
        assert manager.resolve_field(DocumentType.DETAIL, "address", detail_doc, DETAIL_URL) == (
            "9 Pine Rd, Austin, TX 78701"
        )
        assert manager.resolve_field(DocumentType.DETAIL, "price", detail_doc, DETAIL_URL) == "$649,900"
        assert manager.resolve_field("detail", "beds", detail_doc, DETAIL_URL) == "4 bd"

    def test_missing_field_does_not_raise(self, manager, detail_doc):
        """An absent field is None and other fields still resolve."""
        assert manager.resolve_field(DocumentType.DETAIL, "lot_size", detail_doc, DETAIL_URL) is None
        assert manager.resolve_field(DocumentType.DETAIL, "price", detail_doc, DETAIL_URL) is not None

    def test_resolve_collection_and_scoped_fields(self, manager):
        """Cards are found and each card's sub-fields resolve inside it."""
        doc = SoupDocument.from_html(SEARCH_HTML)

        cards = manager.resolve_collection(DocumentType.SEARCH, "property_cards", doc, SEARCH_URL)
        rows = manager.resolve_scoped_fields(DocumentType.SEARCH, "property_cards", cards, doc, SEARCH_URL)

        assert len(cards) == 2
        assert [row["property_links"] for row in rows] == [
            "/homedetails/1-A-St/1_zpid/",
            "/homedetails/2-B-St/2_zpid/",
        ]
        assert [row["search_prices"] for row in rows] == ["$400,000", "$500,000"]
        assert [row["search_addresses"] for row in rows] == ["1 A St, Austin, TX", "2 B St, Austin, TX"]

    def test_url_pattern(self, manager):
        """url_pattern exposes the cache-key pattern."""
        assert manager.url_pattern(DETAIL_URL) == "https://www.zillow.com/homedetails/9-Pine-Rd/{record}/"

    def test_get_stats(self, manager, detail_doc):
        """Stats report counters and the number of cached selectors."""
        manager.resolve_field(DocumentType.DETAIL, "price", detail_doc, DETAIL_URL)
        manager.resolve_field(DocumentType.DETAIL, "price", detail_doc, DETAIL_URL)
        manager.record_success()

        stats = manager.get_stats()

        assert isinstance(stats, PerformanceSnapshot)
        assert stats.cache_misses == 1
        assert stats.cache_hits == 1
        assert stats.cache_hit_rate == 0.5
        assert stats.successful_extractions == 1
        assert stats.success_rate == 1.0
        assert stats.cached_selectors == 1

    def test_reset(self, manager, detail_doc):
        """Reset empties the cache and zeroes the counters."""
        manager.resolve_field(DocumentType.DETAIL, "price", detail_doc, DETAIL_URL)
        manager.record_failure()

        manager.reset()

        assert manager.get_stats() == PerformanceSnapshot()
        assert len(manager.cache) == 0

    def test_reset_then_resolve_is_a_miss(self, manager, detail_doc):
        """After reset the next resolution walks the hierarchy again."""
        manager.resolve_field(DocumentType.DETAIL, "price", detail_doc, DETAIL_URL)
        manager.reset()
        manager.resolve_field(DocumentType.DETAIL, "price", detail_doc, DETAIL_URL)

        assert manager.get_stats().cache_misses == 1
        assert manager.get_stats().cache_hits == 0

    def test_get_stats_waits_for_reset(self, manager, detail_doc):
        """A snapshot is never taken halfway through a reset."""
        manager.resolve_field(DocumentType.DETAIL, "price", detail_doc, DETAIL_URL)
        snapshots = []

        with manager._reset_lock:
            reader = threading.Thread(target=lambda: snapshots.append(manager.get_stats()))
            reader.start()
            reader.join(timeout=0.1)
            assert reader.is_alive()
            manager.cache.clear()
            manager.stats.reset()
        reader.join()

        assert snapshots == [PerformanceSnapshot()]

    def test_challenge_page_resolves_nothing(self):
        """Challenge markup is never used to learn selectors."""
        generator = MockSelectorGenerator(default="h1")
        manager = SelectorManager(generator=generator)
        doc = SoupDocument.from_html(
            '<div id="px-captcha"></div><h1 data-testid="home-details-address">Press &amp; Hold</h1>'
        )

        assert manager.resolve_field(DocumentType.DETAIL, "address", doc, DETAIL_URL) is None
        assert generator.calls == []
        assert manager.get_stats().cached_selectors == 0

    def test_shared_cache(self, detail_doc):
        """Managers given the same cache share learned selectors."""
        cache = SelectorCache()
        first = SelectorManager(cache=cache)
        second = SelectorManager(cache=cache)

        first.resolve_field(DocumentType.DETAIL, "price", detail_doc, DETAIL_URL)
        second.resolve_field(DocumentType.DETAIL, "price", detail_doc, DETAIL_URL)

        assert second.get_stats().cache_hits == 1

    def test_separate_caches(self, detail_doc):
        """Managers with their own caches do not see each other's entries."""
        first = SelectorManager()
        second = SelectorManager()

        first.resolve_field(DocumentType.DETAIL, "price", detail_doc, DETAIL_URL)
        second.resolve_field(DocumentType.DETAIL, "price", detail_doc, DETAIL_URL)

        assert second.get_stats().cache_hits == 0

    def test_concurrent_resolution(self, manager, detail_doc):
        """A shared manager stays consistent across threads."""
        def work():
            for _ in range(10):
                manager.resolve_field(DocumentType.DETAIL, "price", detail_doc, DETAIL_URL)

        threads = [threading.Thread(target=work) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        stats = manager.get_stats()
        assert stats.cache_hits + stats.cache_misses == 40
        assert stats.cached_selectors == 1


class TestFromConfig:
    """Tests for SelectorManager.from_config."""

    def test_no_api_key_disables_generator(self, monkeypatch):
        """Without credentials the generative tier is skipped."""
        monkeypatch.delenv("LLM_API_KEY", raising=False)
        config = ExtractorConfig(llm_api_key=None)

        manager = SelectorManager.from_config(config)

        assert manager.generator is None

    def test_fallback_disabled(self):
        """ai_fallback_enabled=False never builds a generator."""
        config = ExtractorConfig(ai_fallback_enabled=False, llm_api_key="sk-test")

        assert SelectorManager.from_config(config).generator is None

    def test_llm_generator_configured(self):
        """An API key produces an LLM generator with the configured options."""
        config = ExtractorConfig(
            llm_api_key="sk-test",
            llm_model="gpt-4o-mini",
            llm_timeout=5.0,
        )

        generator = SelectorManager.from_config(config).generator

        assert isinstance(generator, LLMSelectorGenerator)
        assert generator.model == "gpt-4o-mini"
        assert generator.timeout == 5.0

    def test_mock_provider(self):
        """The mock provider can be selected through configuration."""
        config = ExtractorConfig(llm_provider="mock")

        assert isinstance(SelectorManager.from_config(config).generator, MockSelectorGenerator)

    def test_cache_capacity(self):
        """The cache is bounded by cache_max_entries."""
        config = ExtractorConfig(ai_fallback_enabled=False, cache_max_entries=5)

        assert SelectorManager.from_config(config).cache.max_entries == 5

    def test_injected_cache_kept(self):
        """An injected cache is used as is."""
        cache = SelectorCache(max_entries=2)
        config = ExtractorConfig(ai_fallback_enabled=False)

        assert SelectorManager.from_config(config, cache=cache).cache is cache

    def test_selector_overrides(self, tmp_path, detail_doc):
        """Override files replace the bundled selectors."""
        path = tmp_path / "overrides.json"
        path.write_text(json.dumps({"detail": {"price": ['span[data-testid="bed-count"]']}}))
        config = ExtractorConfig(ai_fallback_enabled=False, selector_overrides_path=str(path))

        manager = SelectorManager.from_config(config)

        assert manager.resolve_field(DocumentType.DETAIL, "price", detail_doc, DETAIL_URL) == "4 bd"
