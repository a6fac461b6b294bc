"""
Tiered field resolution.

For one field of one document the resolver tries, in order:

1. the selector cached for (document type, field, URL pattern),
2. the static selector hierarchy, first success wins,
3. a single generated selector from the configured generator.

A cached selector that stops matching is evicted and resolution falls
through. Nothing raised while resolving escapes: every failure ends as an
absent value (None, or an empty list for collections).
"""

import logging
from functools import partial
from typing import Callable, Iterable, Optional, Sequence

from homescrape.challenge import detect_challenge
from homescrape.document import BaseDocument, BaseElement
from homescrape.errors import (
    DegenerateDocument,
    FieldUnresolved,
    GenerativeFallbackFailure,
    SelectorMiss,
    StaleCacheEntry,
)
from homescrape.llm import BaseSelectorGenerator
from .selector_cache import CacheKey, SelectorCache, make_key
from .selector_hierarchy import DocumentType, ExtractionMode, FieldSpec, SelectorHierarchy
from .stats import StatsTracker
from .url_pattern import UrlPatternBuilder

logger = logging.getLogger(__name__)

# Appended to a truncated document excerpt
EXCERPT_ELLIPSIS = "..."


class FieldResolver:
    """
    Resolves scalar fields, element collections, and per-element sub-fields.

    Stats contract: every resolution that yields a value records exactly one
    of cache hit, cache miss (static hierarchy hit) or AI call. Record-level
    success and failure are left to the caller.
    """

    def __init__(
        self,
        hierarchy: SelectorHierarchy,
        cache: SelectorCache,
        stats: StatsTracker,
        generator: Optional[BaseSelectorGenerator] = None,
        pattern_builder: Optional[UrlPatternBuilder] = None,
        excerpt_chars: int = 8000,
    ):
        """
        Initialize the resolver.

        Args:
            hierarchy: Static selector tables
            cache: Selector cache (shared or per worker)
            stats: Counters to update
            generator: Last-resort selector generator, or None to disable
            pattern_builder: URL pattern builder for cache keys
            excerpt_chars: Maximum characters of markup sent to the generator
        """
        self.hierarchy = hierarchy
        self.cache = cache
        self.stats = stats
        self.generator = generator
        self.pattern_builder = pattern_builder or UrlPatternBuilder()
        self.excerpt_chars = excerpt_chars

    # =========================================================================
    # Scalar fields
    # =========================================================================

    def resolve_field(
        self,
        document_type: DocumentType,
        field_name: str,
        document: Optional[BaseDocument],
        url: str,
    ) -> Optional[str]:
        """
        Resolve one scalar field.

        Args:
            document_type: Which hierarchy applies
            field_name: Field to resolve
            document: Document to query
            url: Source URL of the document (cache dimension)

        Returns:
            Cleaned raw value, or None if every tier failed
        """
        spec = self.hierarchy.get(document_type, field_name)
        if spec is None:
            logger.debug(f"No selector hierarchy for {document_type}/{field_name}")
            return None

        try:
            self._check_document(document)
            key = self._key(spec, url)
            extract = partial(self._apply, spec)

            value = self._from_cache(key, document, extract)
            if value is not None:
                self.stats.record_cache_hit()
                return value

            value, selector = self._walk(spec.selectors, document, extract)
            if selector is not None:
                self.cache.set(key, selector)
                self.stats.record_cache_miss()
                return value

            value = self._from_generator(spec, key, document, extract)
            if value is not None:
                self.stats.record_ai_call()
                return value

            raise FieldUnresolved(spec.document_type.value, spec.name)

        except DegenerateDocument as e:
            logger.debug(f"Skipping {field_name}: {e}")
        except FieldUnresolved as e:
            logger.debug(str(e))
        except Exception as e:
            logger.warning(f"Failed to resolve {field_name}: {e}")
        return None

    # =========================================================================
    # Collections
    # =========================================================================

    def resolve_collection(
        self,
        document_type: DocumentType,
        field_name: str,
        document: Optional[BaseDocument],
        url: str,
        element_filter: Optional[Callable[[BaseElement], bool]] = None,
    ) -> list[BaseElement]:
        """
        Resolve a repeated-item field (e.g. listing cards).

        The first selector matching at least one element wins and all of its
        matches are returned; results of different selectors are never merged.
        With an element_filter, only elements passing it count as matches, so
        a selector whose matches are all rejected falls through.

        Returns:
            Matched elements, or an empty list
        """
        spec = self.hierarchy.get(document_type, field_name)
        if spec is None:
            logger.debug(f"No selector hierarchy for {document_type}/{field_name}")
            return []

        try:
            self._check_document(document)
            key = self._key(spec, url)
            match = partial(self._match_all, element_filter=element_filter)

            elements = self._from_cache(key, document, match)
            if elements is not None:
                self.stats.record_cache_hit()
                return elements

            elements, selector = self._walk(spec.selectors, document, match)
            if selector is not None:
                self.cache.set(key, selector)
                self.stats.record_cache_miss()
                return elements

            elements = self._from_generator(spec, key, document, match)
            if elements is not None:
                self.stats.record_ai_call()
                return elements

            raise FieldUnresolved(spec.document_type.value, spec.name)

        except DegenerateDocument as e:
            logger.debug(f"Skipping {field_name}: {e}")
        except FieldUnresolved as e:
            logger.debug(str(e))
        except Exception as e:
            logger.warning(f"Failed to resolve collection {field_name}: {e}")
        return []

    def resolve_scoped_fields(
        self,
        document_type: DocumentType,
        collection_field: str,
        elements: Sequence[BaseElement],
        document: Optional[BaseDocument],
        url: str,
        fields: Optional[Iterable[str]] = None,
    ) -> list[dict[str, Optional[str]]]:
        """
        Resolve sub-fields inside each element of a collection.

        Selectors are made relative to the element by dropping any leading
        container selector. A sub-field unresolved for every element gets one
        generator attempt against the whole document; a selector that then
        matches inside the elements is cached for later documents.

        Args:
            document_type: Which hierarchy applies
            collection_field: Collection whose elements scope the sub-fields
            elements: Elements returned by resolve_collection
            document: Whole document (generator excerpt)
            url: Source URL of the document
            fields: Sub-field names (defaults to every field scoped to the
                collection)

        Returns:
            One {field: value} dict per element, in element order
        """
        results: list[dict[str, Optional[str]]] = [{} for _ in elements]
        if not elements:
            return results

        if fields is None:
            specs = self.hierarchy.scoped_fields(document_type, collection_field)
        else:
            specs = [
                spec for spec in (self.hierarchy.get(document_type, name) for name in fields)
                if spec is not None
            ]

        containers = self._container_selectors(document_type, collection_field, url)
        for spec in specs:
            try:
                values = self._resolve_in_elements(spec, elements, document, url, containers)
            except Exception as e:
                logger.warning(f"Failed to resolve scoped field {spec.name}: {e}")
                values = [None] * len(elements)
            for result, value in zip(results, values):
                result[spec.name] = value

        return results

    def _resolve_in_elements(
        self,
        spec: FieldSpec,
        elements: Sequence[BaseElement],
        document: Optional[BaseDocument],
        url: str,
        containers: Sequence[str],
    ) -> list[Optional[str]]:
        key = self._key(spec, url)
        selectors = relative_selectors(spec.selectors, containers)
        values: list[Optional[str]] = [None] * len(elements)

        cached = self.cache.get(key)
        cache_valid = False
        if cached is not None:
            for i, element in enumerate(elements):
                try:
                    values[i] = self._apply(spec, element, cached)
                    self.stats.record_cache_hit()
                    cache_valid = True
                except SelectorMiss:
                    continue
            if not cache_valid:
                self.cache.delete(key)
                logger.info(str(StaleCacheEntry(key, cached)))

        for i, element in enumerate(elements):
            if values[i] is not None:
                continue
            value, selector = self._walk(selectors, element, partial(self._apply, spec))
            if selector is not None:
                values[i] = value
                self.stats.record_cache_miss()
                if not cache_valid:
                    self.cache.set(key, selector)
                    cache_valid = True

        if any(v is not None for v in values) or self.generator is None:
            return values

        # Unresolved in every element: one generator call for the whole set
        selector = self._generate_selector(spec, document)
        if selector is None:
            return values
        selector = relative_selectors([selector], containers)[0]
        for i, element in enumerate(elements):
            try:
                values[i] = self._apply(spec, element, selector)
            except SelectorMiss:
                continue
        if any(v is not None for v in values):
            self.cache.set(key, selector)
            self.stats.record_ai_call()
            logger.info(f"Generated selector {selector!r} upgraded {spec.name}")
        else:
            logger.info(f"Generated selector {selector!r} matched nothing for {spec.name}")
        return values

    def _container_selectors(
        self, document_type: DocumentType, collection_field: str, url: str
    ) -> list[str]:
        containers = list(self.hierarchy.selectors(document_type, collection_field))
        spec = self.hierarchy.get(document_type, collection_field)
        if spec is not None:
            cached = self.cache.get(self._key(spec, url))
            if cached and cached not in containers:
                containers.append(cached)
        return containers

    # =========================================================================
    # Tiers
    # =========================================================================

    def _from_cache(self, key: CacheKey, root, extract: Callable):
        """Reuse the cached selector; evict it if it no longer matches."""
        selector = self.cache.get(key)
        if selector is None:
            return None
        try:
            return extract(root, selector)
        except SelectorMiss as e:
            self.cache.delete(key)
            logger.info(f"{StaleCacheEntry(key, selector)} ({e.reason}), evicted")
            return None

    def _walk(self, selectors: Iterable[str], root, extract: Callable):
        """Try selectors in declared order; the first success wins."""
        for selector in selectors:
            try:
                return extract(root, selector), selector
            except SelectorMiss:
                continue
        return None, None

    def _from_generator(self, spec: FieldSpec, key: CacheKey, document, extract: Callable):
        """One generator attempt; a working selector is cached."""
        selector = self._generate_selector(spec, document)
        if selector is None:
            return None
        try:
            result = extract(document, selector)
        except SelectorMiss as e:
            logger.info(f"Generated selector for {spec.name} unusable: {e}")
            return None
        self.cache.set(key, selector)
        logger.info(f"Generated selector {selector!r} resolved {spec.name}")
        return result

    def _generate_selector(self, spec: FieldSpec, document) -> Optional[str]:
        if self.generator is None:
            return None
        try:
            excerpt = self._excerpt(document)
            return self.generator.suggest_selector(
                spec.description or spec.name,
                spec.document_type.value,
                excerpt,
            )
        except GenerativeFallbackFailure as e:
            logger.warning(f"Selector generation failed for {spec.name}: {e}")
        except Exception as e:
            logger.warning(f"Selector generation failed for {spec.name}: {e}")
        return None

    # =========================================================================
    # Selector application
    # =========================================================================

    def _apply(self, spec: FieldSpec, root, selector: str) -> str:
        """
        Run a selector and extract the first non-empty value.

        Raises:
            SelectorMiss: Invalid selector, no match, or only empty values
        """
        elements = self._query(root, selector)
        for element in elements:
            value = extract_value(spec, element)
            if value:
                return value
        raise SelectorMiss(selector, "no value" if elements else "no match")

    def _match_all(
        self,
        root,
        selector: str,
        element_filter: Optional[Callable[[BaseElement], bool]] = None,
    ) -> list[BaseElement]:
        elements = self._query(root, selector)
        if element_filter is not None and elements:
            elements = [e for e in elements if element_filter(e)]
            if not elements:
                raise SelectorMiss(selector, "no accepted match")
        if not elements:
            raise SelectorMiss(selector)
        return elements

    @staticmethod
    def _query(root, selector: str) -> list[BaseElement]:
        try:
            return list(root.query_all(selector))
        except Exception as e:
            raise SelectorMiss(selector, f"query failed: {e}") from e

    # =========================================================================
    # Helpers
    # =========================================================================

    def _key(self, spec: FieldSpec, url: str) -> CacheKey:
        return make_key(spec.document_type, spec.name, self.pattern_builder.build(url))

    def _excerpt(self, document: BaseDocument) -> str:
        source = document.source() or ""
        if len(source) > self.excerpt_chars:
            return source[: self.excerpt_chars] + EXCERPT_ELLIPSIS
        return source

    @staticmethod
    def _check_document(document: Optional[BaseDocument]) -> None:
        if document is None:
            raise DegenerateDocument("No document")
        if document.is_empty():
            raise DegenerateDocument("Empty document")
        challenge = detect_challenge(document)
        if challenge:
            raise DegenerateDocument(f"Challenge page detected: {challenge}")


def extract_value(spec: FieldSpec, element: BaseElement) -> Optional[str]:
    """Read a field's raw value from an element according to its mode."""
    if spec.mode == ExtractionMode.HREF:
        value = element.attribute("href")
    elif spec.mode == ExtractionMode.SRC:
        value = element.attribute("src")
    elif spec.mode == ExtractionMode.ATTRIBUTE:
        value = element.attribute(spec.attribute) if spec.attribute else None
    else:
        value = element.text()

    if not (value and value.strip()) and spec.text_fallback and spec.mode != ExtractionMode.TEXT:
        value = element.text()

    if value is None:
        return None
    value = value.strip()
    if spec.strip_prefix and value.startswith(spec.strip_prefix):
        value = value[len(spec.strip_prefix):].strip()
    return value or None


def relative_selectors(selectors: Iterable[str], containers: Iterable[str]) -> list[str]:
    """
    Make selectors relative to a container element.

    A selector starting with a container selector followed by a descendant
    combinator loses that prefix. Order is kept and duplicates are dropped.
    """
    prefixes = sorted(set(containers), key=len, reverse=True)
    result: list[str] = []
    for selector in selectors:
        for prefix in prefixes:
            if selector.startswith(prefix + " "):
                selector = selector[len(prefix) + 1:].strip()
                break
        if selector not in result:
            result.append(selector)
    return result
