"""
Selector Hierarchies for Listing Pages.

Per document type and field, an ordered list of candidate CSS selectors,
most specific first. Resolution is a generic walk over this data; nothing
here branches per field.

Hierarchies are immutable once built. Site-specific tweaks are applied by
building a new hierarchy from an override file (JSON or YAML).
"""

import json
import logging
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

import yaml

logger = logging.getLogger(__name__)


class DocumentType(str, Enum):
    """Which kind of page a document is."""
    SEARCH = "search"  # Search results / listing cards
    DETAIL = "detail"  # Single property detail page


class ExtractionMode(str, Enum):
    """How a matched element yields its raw value."""
    TEXT = "text"
    HREF = "href"
    SRC = "src"
    ATTRIBUTE = "attribute"


@dataclass(frozen=True)
class FieldSpec:
    """
    Extraction rules for one field of one document type.

    Selectors are tried strictly in order; the first that yields a
    non-empty value wins.
    """
    document_type: DocumentType
    name: str
    selectors: tuple[str, ...]
    mode: ExtractionMode = ExtractionMode.TEXT
    attribute: Optional[str] = None  # Used by ExtractionMode.ATTRIBUTE
    description: str = ""  # Semantic description for the selector generator
    strip_prefix: Optional[str] = None  # e.g. "tel:" on phone links
    text_fallback: bool = False  # Use element text when the attribute is missing
    scope: Optional[str] = None  # Collection field whose elements scope this field

    @property
    def key(self) -> tuple[DocumentType, str]:
        return (self.document_type, self.name)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "document_type": self.document_type.value,
            "name": self.name,
            "selectors": list(self.selectors),
            "mode": self.mode.value,
            "attribute": self.attribute,
            "description": self.description,
            "strip_prefix": self.strip_prefix,
            "text_fallback": self.text_fallback,
            "scope": self.scope,
        }


# =============================================================================
# Search results page
# =============================================================================

SEARCH_SELECTORS: dict[str, dict[str, Any]] = {
    "property_cards": {
        "description": "property listing containers or cards",
        "selectors": [
            '[data-testid="property-card"]',
            ".property-card",
            ".list-card",
            ".search-result",
            "article[data-zpid]",
            '[class*="property"]',
            ".result-item",
        ],
    },
    "property_links": {
        "description": "links to individual property detail pages",
        "mode": ExtractionMode.HREF,
        "scope": "property_cards",
        "selectors": [
            '[data-testid="property-card"] a[href*="/homedetails/"]',
            '.property-card a[href*="/homedetails/"]',
            '.list-card a[href*="/homedetails/"]',
            'a[href*="/homedetails/"]',
            "[data-zpid] a",
            ".property-link",
        ],
    },
    "search_addresses": {
        "description": "property addresses in search results",
        "scope": "property_cards",
        "selectors": [
            '[data-testid="property-card"] address',
            ".property-card .address",
            ".list-card .address",
            '[data-testid="address"]',
            ".property-address",
            ".listing-address",
            "address",
        ],
    },
    "search_prices": {
        "description": "property prices in search results",
        "scope": "property_cards",
        "selectors": [
            '[data-testid="property-card"] [data-testid="price"]',
            ".property-card .price",
            ".list-card .price",
            '[data-testid="price"]',
            '[class*="price"]:not([class*="history"])',
            ".property-price",
            ".listing-price",
        ],
    },
    "property_details": {
        "description": "bed, bath and square footage summary line of a listing card",
        "scope": "property_cards",
        "selectors": [
            '[data-testid="property-card"] [data-testid="property-card-details"]',
            ".property-card .details",
            ".list-card .list-card-details",
            '[data-testid="property-card-details"]',
            ".list-card-details",
            'ul[class*="details"]',
        ],
    },
    "next_page_button": {
        "description": "next page button for pagination",
        "selectors": [
            '[data-testid="pagination-next-page"]',
            ".pagination-next",
            'a[aria-label="Next page"]',
            ".next-page",
            '[class*="next"]',
        ],
    },
}


# =============================================================================
# Property detail page
# =============================================================================

DETAIL_SELECTORS: dict[str, dict[str, Any]] = {
    "address": {
        "description": "property address or street address",
        "selectors": [
            'h1[data-testid="home-details-address"]',
            ".summary-container h1",
            ".property-summary h1",
            "h1.notranslate",
            ".address h1",
            ".property-address h1",
        ],
    },
    "price": {
        "description": "property listing price or asking price",
        "selectors": [
            'span[data-testid="price"]',
            ".summary-container .notranslate",
            ".price-section .notranslate",
            ".home-summary-price",
            ".property-price .notranslate",
            '[class*="price"] .notranslate',
        ],
    },
    "beds": {
        "description": "number of bedrooms",
        "selectors": [
            'span[data-testid="bed-count"]',
            '.summary-container span:-soup-contains("bd")',
            '.property-meta span:-soup-contains("bed")',
            ".bed-bath-beyond span:first-child",
            '[class*="bed"]',
        ],
    },
    "baths": {
        "description": "number of bathrooms",
        "selectors": [
            'span[data-testid="bath-count"]',
            '.summary-container span:-soup-contains("ba")',
            '.property-meta span:-soup-contains("bath")',
            ".bed-bath-beyond span:nth-child(2)",
            '[class*="bath"]',
        ],
    },
    "sqft": {
        "description": "square footage or property size",
        "selectors": [
            'span[data-testid="home-size"]',
            '.summary-container span:-soup-contains("sqft")',
            '.property-meta span:-soup-contains("sqft")',
            ".bed-bath-beyond span:last-child",
            '[class*="sqft"]',
        ],
    },
    "description": {
        "description": "property description or listing details",
        "selectors": [
            '[data-testid="home-description-text-description-text"]',
            ".property-description",
            ".home-description",
            ".listing-description",
            '[class*="description"] p',
            ".remarks",
        ],
    },
    "zestimate": {
        "description": "Zestimate value or estimated price",
        "selectors": [
            'span[data-testid="zestimate-text-value-label"]',
            ".zestimate-value",
            ".estimate-value",
            '[class*="zestimate"]',
            '[class*="estimate"]',
        ],
    },
    "agent_name": {
        "description": "real estate agent name",
        "selectors": [
            ".agent-name",
            '[data-testid="attribution-AGENT"] .Text-c11n-8-84-3__sc-aiai24-0',
            ".listing-agent-name",
            ".agent-info .name",
            '[class*="agent"] .name',
        ],
    },
    "agent_phone": {
        "description": "agent phone number or contact",
        "mode": ExtractionMode.HREF,
        "strip_prefix": "tel:",
        "text_fallback": True,
        "selectors": [
            'a[href^="tel:"]',
            ".agent-phone",
            ".contact-phone",
            '[class*="phone"]',
            ".agent-contact-phone",
        ],
    },
    "images": {
        "description": "property photo images",
        "mode": ExtractionMode.SRC,
        "selectors": [
            "ul.media-stream-photo-list img",
            ".property-photos img",
            ".photo-gallery img",
            ".listing-photos img",
            ".media-stream img",
        ],
    },
    "property_type": {
        "description": "property type (house, condo, etc.)",
        "selectors": [
            '[data-testid="property-type"]',
            ".property-type",
            ".home-type",
            ".listing-type",
        ],
    },
    "year_built": {
        "description": "year the property was built",
        "selectors": [
            '[data-testid="year-built"]',
            ".year-built",
            ".built-year",
            ".construction-year",
        ],
    },
    "lot_size": {
        "description": "lot size or land area",
        "selectors": [
            '[data-testid="lot-size"]',
            ".lot-size",
            ".land-size",
            ".property-lot",
        ],
    },
}

DEFAULT_TABLES: dict[DocumentType, dict[str, dict[str, Any]]] = {
    DocumentType.SEARCH: SEARCH_SELECTORS,
    DocumentType.DETAIL: DETAIL_SELECTORS,
}


def _spec_from_table(
    document_type: DocumentType,
    name: str,
    entry: Mapping[str, Any],
    base: Optional[FieldSpec] = None,
) -> FieldSpec:
    """Build a FieldSpec from a table entry, layering over an existing spec."""
    if isinstance(entry, (list, tuple)):
        entry = {"selectors": entry}

    values: dict[str, Any] = {}
    if "selectors" in entry:
        values["selectors"] = tuple(str(s) for s in entry["selectors"])
    if "mode" in entry:
        values["mode"] = ExtractionMode(entry["mode"])
    for key in ("attribute", "description", "strip_prefix", "text_fallback", "scope"):
        if key in entry:
            values[key] = entry[key]

    if base is not None:
        return replace(base, **values)
    values.setdefault("selectors", ())
    values.setdefault("description", name.replace("_", " "))
    return FieldSpec(document_type=document_type, name=name, **values)


class SelectorHierarchy:
    """
    Immutable registry of FieldSpecs keyed by (document type, field).

    Built once at engine construction; lookups never mutate it.
    """

    def __init__(self, specs: Iterable[FieldSpec]):
        table: dict[tuple[DocumentType, str], FieldSpec] = {}
        for spec in specs:
            table[spec.key] = spec
        self._specs = MappingProxyType(table)

    @classmethod
    def default(cls) -> "SelectorHierarchy":
        """Hierarchy built from the bundled search and detail tables."""
        return cls.from_tables(DEFAULT_TABLES)

    @classmethod
    def from_tables(
        cls,
        tables: Mapping[Any, Mapping[str, Any]],
        base: Optional["SelectorHierarchy"] = None,
    ) -> "SelectorHierarchy":
        """
        Build a hierarchy from nested tables.

        Args:
            tables: {document_type: {field: entry}} where entry is either a
                list of selectors or a dict of FieldSpec attributes
            base: Hierarchy whose specs are kept and overridden per field

        Returns:
            New SelectorHierarchy
        """
        specs = dict(base._specs) if base is not None else {}
        for doc_type, fields in tables.items():
            document_type = DocumentType(doc_type)
            for name, entry in fields.items():
                existing = specs.get((document_type, name))
                specs[(document_type, name)] = _spec_from_table(
                    document_type, name, entry, existing
                )
        return cls(specs.values())

    @classmethod
    def from_file(
        cls,
        path: Path,
        base: Optional["SelectorHierarchy"] = None,
    ) -> "SelectorHierarchy":
        """
        Load selector overrides from a JSON or YAML file.

        Fields named in the file replace the matching attributes of the
        default hierarchy (or `base`); other fields are kept.

        Args:
            path: .json, .yaml or .yml file
            base: Hierarchy to layer over (defaults to the bundled tables)

        Returns:
            New SelectorHierarchy
        """
        path = Path(path)
        with open(path) as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)

        tables = data.get("selectors", data)
        hierarchy = cls.from_tables(tables, base=base or cls.default())
        logger.info(f"Loaded selector overrides from {path} ({len(hierarchy)} fields)")
        return hierarchy

    def get(self, document_type: DocumentType, field_name: str) -> Optional[FieldSpec]:
        """Get the FieldSpec for a field, or None if the field is unknown."""
        try:
            document_type = DocumentType(document_type)
        except ValueError:
            return None
        return self._specs.get((document_type, field_name))

    def selectors(self, document_type: DocumentType, field_name: str) -> tuple[str, ...]:
        """Ordered selectors for a field (empty for unknown fields)."""
        spec = self.get(document_type, field_name)
        return spec.selectors if spec else ()

    def fields(self, document_type: DocumentType) -> list[str]:
        """Field names declared for a document type, in declaration order."""
        document_type = DocumentType(document_type)
        return [name for (dt, name) in self._specs if dt == document_type]

    def scoped_fields(self, document_type: DocumentType, scope: str) -> list[FieldSpec]:
        """Sub-field specs resolved inside elements of the `scope` collection."""
        document_type = DocumentType(document_type)
        return [
            spec for (dt, _), spec in self._specs.items()
            if dt == document_type and spec.scope == scope
        ]

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """Serialize to {document_type: {field: spec_dict}}."""
        result: dict[str, dict[str, Any]] = {}
        for (dt, name), spec in self._specs.items():
            result.setdefault(dt.value, {})[name] = spec.to_dict()
        return result

    def __len__(self) -> int:
        return len(self._specs)

    def __contains__(self, key: tuple) -> bool:
        document_type, field_name = key
        return self.get(document_type, field_name) is not None
