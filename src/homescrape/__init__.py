"""Adaptive field extraction for real estate listing pages."""

__version__ = "0.1.0"

from homescrape.config import ExtractorConfig
from homescrape.document import (
    BaseDocument,
    BaseElement,
    SoupDocument,
    SoupElement,
    PageDocument,
    PageElement,
)
from homescrape.errors import (
    ExtractionError,
    SelectorMiss,
    StaleCacheEntry,
    GenerativeFallbackFailure,
    FieldUnresolved,
    DegenerateDocument,
)
from homescrape.llm import (
    BaseSelectorGenerator,
    LLMSelectorGenerator,
    MockSelectorGenerator,
    get_generator,
)
from homescrape.normalizers import (
    ParseResult,
    ParseStatus,
    clean_price,
    extract_number,
    extract_identifier,
    parse_property_details,
    normalize_url,
    extract_contacts,
)
from homescrape.keywords import KeywordMode, KeywordFilter, matches_keywords, find_matches
from homescrape.challenge import detect_challenge, is_challenge_page
from homescrape.intelligence import (
    DocumentType,
    ExtractionMode,
    FieldSpec,
    SelectorHierarchy,
    SelectorCache,
    StatsTracker,
    PerformanceSnapshot,
    FieldResolver,
    SelectorManager,
    UrlPatternBuilder,
    url_pattern,
)
from homescrape.extractor import PropertyExtractor
from homescrape.logging_config import setup_logging

__all__ = [
    "ExtractorConfig",
    # Documents
    "BaseDocument",
    "BaseElement",
    "SoupDocument",
    "SoupElement",
    "PageDocument",
    "PageElement",
    # Errors
    "ExtractionError",
    "SelectorMiss",
    "StaleCacheEntry",
    "GenerativeFallbackFailure",
    "FieldUnresolved",
    "DegenerateDocument",
    # Selector generation
    "BaseSelectorGenerator",
    "LLMSelectorGenerator",
    "MockSelectorGenerator",
    "get_generator",
    # Normalizers
    "ParseResult",
    "ParseStatus",
    "clean_price",
    "extract_number",
    "extract_identifier",
    "parse_property_details",
    "normalize_url",
    "extract_contacts",
    # Keywords
    "KeywordMode",
    "KeywordFilter",
    "matches_keywords",
    "find_matches",
    # Challenges
    "detect_challenge",
    "is_challenge_page",
    # Engine
    "DocumentType",
    "ExtractionMode",
    "FieldSpec",
    "SelectorHierarchy",
    "SelectorCache",
    "StatsTracker",
    "PerformanceSnapshot",
    "FieldResolver",
    "SelectorManager",
    "UrlPatternBuilder",
    "url_pattern",
    "PropertyExtractor",
    "setup_logging",
]
