"""
Bot-challenge detection for fetched documents.

A blocked page (CAPTCHA, PerimeterX "press and hold", Cloudflare
interstitial) is a degenerate document: extraction must resolve nothing
from it rather than cache selectors that happen to match challenge markup.
"""

import logging
import re
from typing import Optional

from homescrape.document import BaseDocument

logger = logging.getLogger(__name__)


# =============================================================================
# Challenge Detection Selectors
# =============================================================================

CHALLENGE_INDICATORS = {
    # reCAPTCHA
    "recaptcha_iframe": "iframe[src*='recaptcha'], iframe[title*='reCAPTCHA']",
    "recaptcha_checkbox": ".recaptcha-checkbox, #recaptcha-anchor",

    # hCaptcha
    "hcaptcha_iframe": "iframe[src*='hcaptcha']",

    # PerimeterX (press & hold)
    "perimeterx_challenge": "#px-captcha, [id^='px-captcha']",

    # Akamai Bot Manager
    "akamai_challenge": "#sec-cpt-if, #ak-challenge",

    # Cloudflare
    "cloudflare_challenge": "#cf-challenge-running, .cf-browser-verification",
    "cloudflare_turnstile": "iframe[src*='challenges.cloudflare']",
}

CHALLENGE_TEXT_PATTERNS = {
    "challenge_text": re.compile(r"verify you(?:'re| are) (?:a )?human", re.I),
    "press_and_hold": re.compile(r"press\s*&\s*hold|press and hold", re.I),
    "blocked_text": re.compile(r"access (?:to this page has been )?denied", re.I),
}

# URL patterns that indicate a challenge page
CHALLENGE_URL_PATTERNS = [
    "captcha",
    "challenge",
    "blocked",
    "security-check",
]


def detect_challenge(document: BaseDocument, url: Optional[str] = None) -> Optional[str]:
    """
    Detect if a document is a CAPTCHA or bot challenge page.

    Args:
        document: Document to inspect
        url: URL the document was fetched from

    Returns:
        Name of detected challenge type, or None if no challenge found
    """
    if url:
        current_url = url.lower()
        for pattern in CHALLENGE_URL_PATTERNS:
            if pattern in current_url:
                return f"url_pattern:{pattern}"

    for name, selector in CHALLENGE_INDICATORS.items():
        try:
            if document.query_all(selector):
                return name
        except Exception as e:
            logger.debug(f"Challenge selector {name} failed: {e}")
            continue

    try:
        text = document.body_text()
    except Exception as e:
        logger.debug(f"Could not read body text: {e}")
        text = ""
    for name, pattern in CHALLENGE_TEXT_PATTERNS.items():
        if pattern.search(text):
            return name

    return None


def is_challenge_page(document: BaseDocument, url: Optional[str] = None) -> bool:
    """Check if a document is any kind of challenge page."""
    return detect_challenge(document, url) is not None
