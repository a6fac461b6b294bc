"""
Value normalizers for raw extracted strings.

All functions are pure, never raise, and treat empty or missing input as
absent (never as zero).
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union
from urllib.parse import urljoin

DEFAULT_BASE_URL = "https://www.zillow.com"
DEFAULT_IDENTIFIER_SUFFIX = "_zpid"

PRICE_STRIP_PATTERN = re.compile(r"[^\d,.\-]")
# A K/M/B magnitude letter after the number ("$500K", "1.2M") makes it unparsable
MAGNITUDE_SUFFIX_PATTERN = re.compile(r"\d[\d,.]*\s?[KkMmBb]\b")
NUMBER_PATTERN = re.compile(r"\d[\d.]*|\.\d+")

BEDS_PATTERN = re.compile(r"(\d+)\s*(?:bd|bed|bedroom)", re.I)
BATHS_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(?:ba|bath|bathroom)", re.I)
SQFT_PATTERN = re.compile(r"([\d,]+)\s*(?:sqft|sq ft|square feet)", re.I)

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
PHONE_PATTERN = re.compile(r"\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")


class ParseStatus(str, Enum):
    """Outcome tag of a parse."""
    PARSED = "parsed"
    UNPARSED = "unparsed"
    ABSENT = "absent"


@dataclass(frozen=True)
class ParseResult:
    """
    Tagged parse outcome.

    PARSED carries a number, UNPARSED carries the original text untouched,
    ABSENT carries nothing.
    """
    status: ParseStatus
    value: Optional[Union[float, str]] = None

    @classmethod
    def parsed(cls, number: float) -> "ParseResult":
        return cls(ParseStatus.PARSED, float(number))

    @classmethod
    def unparsed(cls, original: str) -> "ParseResult":
        return cls(ParseStatus.UNPARSED, original)

    @classmethod
    def absent(cls) -> "ParseResult":
        return cls(ParseStatus.ABSENT, None)

    @property
    def is_parsed(self) -> bool:
        return self.status == ParseStatus.PARSED

    @property
    def is_absent(self) -> bool:
        return self.status == ParseStatus.ABSENT

    def to_value(self) -> Optional[Union[float, str]]:
        """Plain value for emitted records (number, original text, or None)."""
        return self.value


def clean_price(text: Any) -> ParseResult:
    """
    Parse a price string such as "$1,250,000".

    Args:
        text: Raw price text (numbers pass through as parsed)

    Returns:
        PARSED with the number, UNPARSED with the original text when the
        remainder is not a plain number ("$500K", "Contact agent"), or ABSENT
        for empty input
    """
    if text is None or isinstance(text, bool):
        return ParseResult.absent()
    if isinstance(text, (int, float)):
        return ParseResult.parsed(text)
    if not isinstance(text, str) or not text.strip():
        return ParseResult.absent()

    if MAGNITUDE_SUFFIX_PATTERN.search(text):
        return ParseResult.unparsed(text)

    cleaned = PRICE_STRIP_PATTERN.sub("", text).replace(",", "")
    try:
        return ParseResult.parsed(float(cleaned))
    except ValueError:
        return ParseResult.unparsed(text)


def extract_number(text: Any) -> Optional[float]:
    """
    First number in a string ("3 bedrooms" -> 3.0, "2.5 baths" -> 2.5).

    Returns:
        The number, or None when there is none
    """
    if text is None or isinstance(text, bool):
        return None
    if isinstance(text, (int, float)):
        return float(text)
    if not isinstance(text, str) or not text.strip():
        return None

    match = NUMBER_PATTERN.search(text)
    if not match:
        return None
    token = match.group(0).rstrip(".")
    # "1.2.3" style runs: keep the leading valid float
    parts = token.split(".")
    if len(parts) > 2:
        token = f"{parts[0]}.{parts[1]}"
    try:
        return float(token)
    except ValueError:
        return None


def extract_identifier(
    text: Optional[str],
    suffix: str = DEFAULT_IDENTIFIER_SUFFIX,
) -> Optional[str]:
    """
    Record identifier preceding a suffix token.

    ".../123456789_zpid/" -> "123456789"

    Returns:
        The digit run, or None if the suffix is absent
    """
    if not text or not isinstance(text, str):
        return None
    match = re.search(rf"(\d+){re.escape(suffix)}", text)
    return match.group(1) if match else None


def parse_property_details(text: Optional[str]) -> dict[str, Any]:
    """
    Parse a summary line such as "3 bd | 2 ba | 1,500 sqft".

    Returns:
        Dict with any of beds (int), baths (float), sqft (int)
    """
    details: dict[str, Any] = {}
    if not text or not isinstance(text, str):
        return details

    bed_match = BEDS_PATTERN.search(text)
    if bed_match:
        details["beds"] = int(bed_match.group(1))

    bath_match = BATHS_PATTERN.search(text)
    if bath_match:
        details["baths"] = float(bath_match.group(1))

    sqft_match = SQFT_PATTERN.search(text)
    if sqft_match:
        digits = sqft_match.group(1).replace(",", "")
        if digits:
            details["sqft"] = int(digits)

    return details


def normalize_url(url: Optional[str], base_url: str = DEFAULT_BASE_URL) -> Optional[str]:
    """
    Make a listing URL absolute.

    "/homedetails/x/1_zpid/" -> "https://www.zillow.com/homedetails/x/1_zpid/"
    """
    if not url or not isinstance(url, str):
        return None
    url = url.strip()
    if not url:
        return None
    if url.startswith("http"):
        return url
    return urljoin(base_url.rstrip("/") + "/", url.lstrip("/"))


def extract_contacts(text: Optional[str]) -> dict[str, list[str]]:
    """
    Harvest email addresses and phone numbers from free text.

    Returns:
        Dict with contact_emails and/or contact_phones (deduplicated, in
        first-seen order); empty when nothing was found
    """
    contacts: dict[str, list[str]] = {}
    if not text or not isinstance(text, str):
        return contacts

    emails = list(dict.fromkeys(EMAIL_PATTERN.findall(text)))
    if emails:
        contacts["contact_emails"] = emails

    phones = list(dict.fromkeys(PHONE_PATTERN.findall(text)))
    if phones:
        contacts["contact_phones"] = phones

    return contacts
