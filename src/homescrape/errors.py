"""
Extraction error taxonomy.

None of these escape field or collection resolution. The resolver raises
them internally to move between tiers and turns every one of them into an
absent value.
"""


class ExtractionError(Exception):
    """Base class for extraction failures."""


class SelectorMiss(ExtractionError):
    """A single candidate selector found nothing usable."""

    def __init__(self, selector: str, reason: str = "no match"):
        self.selector = selector
        self.reason = reason
        super().__init__(f"{selector!r}: {reason}")


class StaleCacheEntry(ExtractionError):
    """A cached selector no longer matches the document."""

    def __init__(self, key: tuple, selector: str):
        self.key = key
        self.selector = selector
        super().__init__(f"Cached selector {selector!r} for {key} no longer matches")


class GenerativeFallbackFailure(ExtractionError):
    """The selector generator errored, timed out, or proposed nothing usable."""


class FieldUnresolved(ExtractionError):
    """Every tier was exhausted for a field."""

    def __init__(self, document_type: str, field_name: str):
        self.document_type = document_type
        self.field_name = field_name
        super().__init__(f"{document_type}/{field_name} unresolved")


class DegenerateDocument(ExtractionError):
    """The document is missing, empty, or a bot-challenge page."""
