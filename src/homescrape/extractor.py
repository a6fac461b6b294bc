"""
Record assembly for search-result and property-detail pages.

PropertyExtractor is the caller of the selector engine: it resolves the
fields of a page, runs the raw strings through the normalizers, and decides
whether the page counts as a successful or failed extraction. A record with
some missing fields is still a success; a blocked, empty, or entirely
unresolved page is a failure.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from homescrape.challenge import detect_challenge
from homescrape.config import ExtractorConfig
from homescrape.document import BaseDocument, BaseElement
from homescrape.intelligence import DocumentType, SelectorManager
from homescrape.keywords import KeywordFilter
from homescrape.normalizers import (
    clean_price,
    extract_contacts,
    extract_identifier,
    extract_number,
    normalize_url,
    parse_property_details,
)

logger = logging.getLogger(__name__)

DETAIL_FIELDS = (
    "address",
    "price",
    "beds",
    "baths",
    "sqft",
    "description",
    "zestimate",
    "agent_name",
    "agent_phone",
    "property_type",
    "year_built",
    "lot_size",
)

CARD_FIELDS = ("property_links", "search_addresses", "search_prices", "property_details")


def _to_int(raw: Optional[str]) -> Optional[int]:
    """Integer from text with thousands separators ("1,500 sqft" -> 1500)."""
    if not raw:
        return None
    number = extract_number(raw.replace(",", ""))
    return int(number) if number is not None else None


def _has_http_src(element: BaseElement) -> bool:
    src = element.attribute("src")
    return bool(src) and src.startswith("http")


# Normalizer per detail field; unlisted fields keep their trimmed text
FIELD_NORMALIZERS = {
    "price": lambda raw: clean_price(raw).to_value(),
    "zestimate": lambda raw: clean_price(raw).to_value(),
    "beds": extract_number,
    "baths": extract_number,
    "sqft": _to_int,
    "year_built": _to_int,
}


class PropertyExtractor:
    """Builds property records from documents with a SelectorManager."""

    def __init__(
        self,
        manager: Optional[SelectorManager] = None,
        config: Optional[ExtractorConfig] = None,
        keyword_filter: Optional[KeywordFilter] = None,
    ):
        """
        Initialize the extractor.

        Args:
            manager: Selector engine (built from config when omitted)
            config: Extraction configuration
            keyword_filter: Description keyword policy (built from config
                when omitted)
        """
        self.config = config or ExtractorConfig()
        self.manager = manager or SelectorManager.from_config(self.config)
        self.keyword_filter = keyword_filter or KeywordFilter(
            keywords=list(self.config.keywords),
            mode=self.config.keyword_mode,
        )

    # =========================================================================
    # Search results
    # =========================================================================

    def extract_search_results(
        self,
        document: Optional[BaseDocument],
        url: str,
    ) -> list[dict[str, Any]]:
        """
        Extract one record per listing card on a search results page.

        Args:
            document: Search results document
            url: Search URL

        Returns:
            Card records (possibly empty)
        """
        if self._is_degenerate(document, url):
            self.manager.record_failure()
            return []

        cards = self.manager.resolve_collection(DocumentType.SEARCH, "property_cards", document, url)
        if not cards:
            logger.warning(f"No property cards found on search results page {url}")
            self.manager.record_failure()
            return []

        logger.info(f"Found {len(cards)} property cards")
        rows = self.manager.resolve_scoped_fields(
            DocumentType.SEARCH, "property_cards", cards, document, url, fields=CARD_FIELDS
        )

        results = []
        extracted_at = datetime.now().isoformat()
        for row in rows:
            record = self._card_record(row)
            if not record:
                continue
            record["extracted_at"] = extracted_at
            record["search_url"] = url
            record["extraction_method"] = "search-card"
            results.append(record)

        if results:
            self.manager.record_success()
        else:
            self.manager.record_failure()
        return results

    def _card_record(self, row: dict[str, Optional[str]]) -> dict[str, Any]:
        record: dict[str, Any] = {}

        link = row.get("property_links")
        if link:
            record["url"] = normalize_url(link, self.config.base_url)
            record["zpid"] = extract_identifier(record["url"], self.config.identifier_suffix)

        address = row.get("search_addresses")
        if address:
            record["address"] = address.strip()

        price = row.get("search_prices")
        if price:
            record["price"] = clean_price(price).to_value()

        details = row.get("property_details")
        if details:
            record.update(parse_property_details(details))

        return record

    def has_next_page(self, document: Optional[BaseDocument], url: str) -> bool:
        """Whether the search results page links to a next page."""
        return bool(
            self.manager.resolve_collection(DocumentType.SEARCH, "next_page_button", document, url)
        )

    # =========================================================================
    # Property details
    # =========================================================================

    def extract_property_details(
        self,
        document: Optional[BaseDocument],
        url: str,
    ) -> dict[str, Any]:
        """
        Extract a property record from a detail page.

        Missing fields are simply left out of the record.

        Args:
            document: Property detail document
            url: Detail page URL

        Returns:
            Property record ({} when nothing could be extracted)
        """
        if self._is_degenerate(document, url):
            self.manager.record_failure()
            return {}

        record: dict[str, Any] = {}
        for field_name in DETAIL_FIELDS:
            raw = self.manager.resolve_field(DocumentType.DETAIL, field_name, document, url)
            if raw is None:
                continue
            normalizer = FIELD_NORMALIZERS.get(field_name)
            value = normalizer(raw) if normalizer else raw
            if value is not None:
                record[field_name] = value

        images = self.extract_images(document, url)
        if images:
            record["images"] = images
            record["image_count"] = len(images)

        if not record:
            logger.warning(f"No fields extracted from {url}")
            self.manager.record_failure()
            return record

        try:
            record.update(extract_contacts(document.body_text()))
        except Exception as e:
            logger.warning(f"Failed to extract additional contacts: {e}")

        record["url"] = url
        record["zpid"] = extract_identifier(url, self.config.identifier_suffix)
        record["extracted_at"] = datetime.now().isoformat()
        record["extraction_method"] = "detail-page"

        if self.keyword_filter.enabled:
            self.keyword_filter.annotate(record)

        self.manager.record_success()
        return record

    def extract_images(self, document: Optional[BaseDocument], url: str) -> list[str]:
        """
        Absolute photo URLs from the detail page gallery, capped at max_images.

        A gallery holding only placeholders (data: URIs, relative paths) does
        not count, so the next gallery selector is tried.
        """
        elements = self.manager.resolve_collection(
            DocumentType.DETAIL, "images", document, url, element_filter=_has_http_src
        )
        images: list[str] = []
        for element in elements:
            src = element.attribute("src")
            if src not in images:
                images.append(src)
            if len(images) >= self.config.max_images:
                break
        return images

    def filter_records(self, records: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Apply the keyword policy to extracted records."""
        return self.keyword_filter.filter_records(records)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _is_degenerate(self, document: Optional[BaseDocument], url: str) -> bool:
        """Missing, empty, or bot-challenge documents yield nothing."""
        if document is None:
            logger.warning(f"No document for {url}")
            return True
        try:
            if document.is_empty():
                logger.warning(f"Empty document for {url}")
                return True
            challenge = detect_challenge(document, url)
        except Exception as e:
            logger.warning(f"Could not inspect document for {url}: {e}")
            return True
        if challenge:
            logger.warning(f"Challenge page detected for {url}: {challenge}")
            return True
        return False
