"""
Keyword filtering of listing descriptions.

Matching is a case-insensitive substring test of each keyword against the
description text. The filter mode decides whether a record passes:

- any:  at least one keyword matched
- all:  every keyword matched (an empty keyword list passes)
- none: always passes; matches are still reported
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)


class KeywordMode(str, Enum):
    """How matched keywords decide whether a record passes."""
    ANY = "any"
    ALL = "all"
    NONE = "none"


def find_matches(text: Optional[str], keywords: Iterable[str]) -> list[str]:
    """Keywords found in the text, in keyword order."""
    if not text:
        return []
    haystack = text.lower()
    return [kw for kw in keywords if kw and kw.lower() in haystack]


def matches_keywords(
    text: Optional[str],
    keywords: Iterable[str],
    mode: KeywordMode = KeywordMode.ANY,
) -> bool:
    """
    Apply the keyword policy to a description.

    Args:
        text: Description text
        keywords: Keywords to look for
        mode: any, all, or none

    Returns:
        Whether the text passes the policy
    """
    mode = KeywordMode(mode)
    if mode == KeywordMode.NONE:
        return True

    keywords = [kw for kw in keywords if kw]
    matched = set(find_matches(text, keywords))
    if mode == KeywordMode.ALL:
        return all(kw in matched for kw in keywords)
    return bool(matched)


@dataclass
class KeywordFilter:
    """Keyword policy applied to extracted records."""
    keywords: list[str] = field(default_factory=list)
    mode: KeywordMode = KeywordMode.ANY
    text_field: str = "description"

    def __post_init__(self):
        self.mode = KeywordMode(self.mode)

    @property
    def enabled(self) -> bool:
        return bool(self.keywords)

    def annotate(self, record: dict[str, Any]) -> dict[str, Any]:
        """Add matched_keywords and keyword_match to a record in place."""
        text = record.get(self.text_field)
        record["matched_keywords"] = find_matches(text, self.keywords)
        record["keyword_match"] = matches_keywords(text, self.keywords, self.mode)
        return record

    def filter_records(self, records: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
        """Annotate records and keep those that pass the policy."""
        if not self.enabled:
            return list(records)

        kept = []
        dropped = 0
        for record in records:
            self.annotate(record)
            if record["keyword_match"]:
                kept.append(record)
            else:
                dropped += 1
        if dropped:
            logger.info(
                f"Keyword filter ({self.mode.value}) dropped {dropped} of {dropped + len(kept)} records"
            )
        return kept
