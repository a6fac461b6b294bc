"""
URL pattern keys for the selector cache.

Listing sites repeat the same page template under thousands of URLs that
differ only in record IDs. Collapsing those IDs gives a stable cache
dimension so a selector learned on one detail page is reused on the next.
"""

import re
from typing import Optional

# Trailing "<digits>_<suffix>" record segment, e.g. /123456789_zpid/
RECORD_SEGMENT_PATTERN = re.compile(r"/\d+_[A-Za-z]+(?=/|$|\?|#)")

# Volatile numeric runs (zip codes, listing IDs, timestamps)
VOLATILE_DIGITS_PATTERN = re.compile(r"\d{5,}")


class UrlPatternBuilder:
    """
    Normalizes URLs into cache-key patterns.

    Two URLs that differ only in numeric identifiers map to the same
    pattern; URLs built from different templates keep distinct paths and
    therefore distinct patterns. Uniqueness is best-effort.
    """

    def __init__(
        self,
        record_placeholder: str = "/{record}",
        id_placeholder: str = "{id}",
    ):
        self.record_placeholder = record_placeholder
        self.id_placeholder = id_placeholder

    def build(self, url: Optional[str]) -> str:
        """
        Build the pattern for a URL.

        Args:
            url: Source URL of the document

        Returns:
            Pattern string, or "" for an empty URL
        """
        if not url:
            return ""
        pattern = RECORD_SEGMENT_PATTERN.sub(self.record_placeholder, url)
        return VOLATILE_DIGITS_PATTERN.sub(self.id_placeholder, pattern)

    __call__ = build


_default_builder = UrlPatternBuilder()


def url_pattern(url: Optional[str]) -> str:
    """Build a URL pattern with the default placeholders."""
    return _default_builder.build(url)
