"""
Selector Intelligence Package.

Adaptive field extraction for listing pages:
- Selector hierarchies per document type and field
- URL-pattern keyed selector cache with self-healing eviction
- Tiered resolution (cache, static hierarchy, generated selector)
- Cache and extraction statistics
"""

from .url_pattern import UrlPatternBuilder, url_pattern
from .selector_hierarchy import (
    DocumentType,
    ExtractionMode,
    FieldSpec,
    SelectorHierarchy,
    SEARCH_SELECTORS,
    DETAIL_SELECTORS,
)
from .selector_cache import SelectorCache, make_key
from .stats import StatsTracker, PerformanceSnapshot
from .resolver import FieldResolver, extract_value, relative_selectors
from .selector_manager import SelectorManager

__all__ = [
    # URL patterns
    "UrlPatternBuilder",
    "url_pattern",
    # Hierarchies
    "DocumentType",
    "ExtractionMode",
    "FieldSpec",
    "SelectorHierarchy",
    "SEARCH_SELECTORS",
    "DETAIL_SELECTORS",
    # Cache
    "SelectorCache",
    "make_key",
    # Stats
    "StatsTracker",
    "PerformanceSnapshot",
    # Resolution
    "FieldResolver",
    "extract_value",
    "relative_selectors",
    "SelectorManager",
]
