"""
Selector Manager.

Single entry point to the adaptive extraction engine: owns the selector
hierarchy, the selector cache, the stats tracker and the optional selector
generator, and exposes field resolution, collection resolution, stats and
reset.

Usage:
    from homescrape.intelligence import SelectorManager
    from homescrape.document import SoupDocument

    manager = SelectorManager()
    document = SoupDocument.from_html(html)
    price = manager.resolve_field("detail", "price", document, url)
"""

import logging
import threading
from typing import Callable, Iterable, Optional, Sequence, TYPE_CHECKING

from homescrape.document import BaseDocument, BaseElement
from homescrape.llm import BaseSelectorGenerator, get_generator
from .resolver import FieldResolver
from .selector_cache import SelectorCache
from .selector_hierarchy import DocumentType, SelectorHierarchy
from .stats import PerformanceSnapshot, StatsTracker
from .url_pattern import UrlPatternBuilder

if TYPE_CHECKING:
    from homescrape.config import ExtractorConfig

logger = logging.getLogger(__name__)


class SelectorManager:
    """
    Adaptive field extraction engine.

    The cache is injected so several managers (one per worker, say) can
    either share one cache or keep their own.
    """

    def __init__(
        self,
        hierarchy: Optional[SelectorHierarchy] = None,
        cache: Optional[SelectorCache] = None,
        generator: Optional[BaseSelectorGenerator] = None,
        stats: Optional[StatsTracker] = None,
        pattern_builder: Optional[UrlPatternBuilder] = None,
        excerpt_chars: int = 8000,
    ):
        """
        Initialize the manager.

        Args:
            hierarchy: Selector tables (defaults to the bundled ones)
            cache: Selector cache (defaults to a new private cache)
            generator: Selector generator for the last tier, or None
            stats: Stats tracker (defaults to a new one)
            pattern_builder: URL pattern builder
            excerpt_chars: Markup characters sent to the generator
        """
        self.hierarchy = hierarchy or SelectorHierarchy.default()
        self.cache = cache if cache is not None else SelectorCache()
        self.stats = stats or StatsTracker()
        self.pattern_builder = pattern_builder or UrlPatternBuilder()
        self._reset_lock = threading.Lock()
        self.resolver = FieldResolver(
            hierarchy=self.hierarchy,
            cache=self.cache,
            stats=self.stats,
            generator=generator,
            pattern_builder=self.pattern_builder,
            excerpt_chars=excerpt_chars,
        )

    @classmethod
    def from_config(
        cls,
        config: "ExtractorConfig",
        cache: Optional[SelectorCache] = None,
    ) -> "SelectorManager":
        """
        Build a manager from configuration.

        The generator is only created when the AI fallback is enabled and an
        API key is available; otherwise the last tier is skipped.
        """
        hierarchy = SelectorHierarchy.default()
        if config.selector_overrides_path:
            hierarchy = SelectorHierarchy.from_file(config.selector_overrides_path, base=hierarchy)

        generator = None
        if config.ai_fallback_enabled:
            try:
                generator = get_generator(
                    provider=config.llm_provider,
                    api_key=config.llm_api_key,
                    model=config.llm_model,
                    max_tokens=config.llm_max_tokens,
                    timeout=config.llm_timeout,
                    base_url=config.llm_base_url,
                )
            except ValueError as e:
                logger.warning(f"AI selector fallback disabled: {e}")

        return cls(
            hierarchy=hierarchy,
            cache=cache if cache is not None else SelectorCache(config.cache_max_entries),
            generator=generator,
            pattern_builder=UrlPatternBuilder(),
            excerpt_chars=config.html_excerpt_chars,
        )

    @property
    def generator(self) -> Optional[BaseSelectorGenerator]:
        return self.resolver.generator

    def resolve_field(
        self,
        document_type: DocumentType,
        field_name: str,
        document: Optional[BaseDocument],
        url: str,
    ) -> Optional[str]:
        """Resolve a scalar field; None when unresolved."""
        return self.resolver.resolve_field(document_type, field_name, document, url)

    def resolve_collection(
        self,
        document_type: DocumentType,
        field_name: str,
        document: Optional[BaseDocument],
        url: str,
        element_filter: Optional[Callable[[BaseElement], bool]] = None,
    ) -> list[BaseElement]:
        """Resolve a repeated-item field; [] when unresolved."""
        return self.resolver.resolve_collection(
            document_type, field_name, document, url, element_filter=element_filter
        )

    def resolve_scoped_fields(
        self,
        document_type: DocumentType,
        collection_field: str,
        elements: Sequence[BaseElement],
        document: Optional[BaseDocument],
        url: str,
        fields: Optional[Iterable[str]] = None,
    ) -> list[dict[str, Optional[str]]]:
        """Resolve per-element sub-fields of a collection."""
        return self.resolver.resolve_scoped_fields(
            document_type, collection_field, elements, document, url, fields
        )

    def url_pattern(self, url: str) -> str:
        """Cache-key pattern for a URL."""
        return self.pattern_builder.build(url)

    def record_success(self) -> None:
        """Count one successfully extracted record."""
        self.stats.record_success()

    def record_failure(self) -> None:
        """Count one failed record."""
        self.stats.record_failure()

    def get_stats(self) -> PerformanceSnapshot:
        """Immutable snapshot of the counters and cache size."""
        with self._reset_lock:
            return self.stats.snapshot(cached_selectors=len(self.cache))

    def reset(self) -> None:
        """Empty the cache and zero every counter."""
        with self._reset_lock:
            self.cache.clear()
            self.stats.reset()
        logger.debug("Selector cache and stats reset")
