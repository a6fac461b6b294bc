"""
Document query backends.

The resolver only needs to run a selector against a document (or against an
element, for scoped sub-fields) and read text or attributes from what
matched. Two backends are provided:

- SoupDocument: a parsed HTML snapshot (BeautifulSoup + soupsieve)
- PageDocument: a live Playwright page (sync API)

Usage:
    from homescrape.document import SoupDocument

    document = SoupDocument.from_html(html)
    for element in document.query_all(".list-card"):
        print(element.text())
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from bs4 import BeautifulSoup, Tag
from playwright.sync_api import ElementHandle, Page

logger = logging.getLogger(__name__)


class BaseElement(ABC):
    """A matched element handle."""

    @abstractmethod
    def text(self) -> str:
        """Trimmed text content ("" when there is none)."""
        pass

    @abstractmethod
    def attribute(self, name: str) -> Optional[str]:
        """Value of a named attribute, or None if absent."""
        pass

    @abstractmethod
    def query_all(self, selector: str) -> list["BaseElement"]:
        """Elements matching a selector inside this element."""
        pass


class BaseDocument(ABC):
    """A queryable document (rendered page)."""

    @abstractmethod
    def query_all(self, selector: str) -> list[BaseElement]:
        """
        Elements matching a selector, in document order.

        Raises whatever the backend raises for an invalid selector; callers
        treat that as a miss.
        """
        pass

    @abstractmethod
    def source(self) -> str:
        """Full markup of the document."""
        pass

    @abstractmethod
    def body_text(self) -> str:
        """Visible text of the document body."""
        pass

    def query_one(self, selector: str) -> Optional[BaseElement]:
        """First element matching a selector, or None."""
        elements = self.query_all(selector)
        return elements[0] if elements else None

    def is_empty(self) -> bool:
        """True when the document has no markup at all."""
        return not self.source().strip()


# =============================================================================
# BeautifulSoup backend
# =============================================================================

class SoupElement(BaseElement):
    """Element backed by a BeautifulSoup Tag."""

    def __init__(self, tag: Tag):
        self.tag = tag

    def text(self) -> str:
        return self.tag.get_text(" ", strip=True)

    def attribute(self, name: str) -> Optional[str]:
        value = self.tag.get(name)
        if isinstance(value, list):
            # Multi-valued attributes (class, rel) come back as lists
            return " ".join(value)
        return value

    def query_all(self, selector: str) -> list[BaseElement]:
        return [SoupElement(tag) for tag in self.tag.select(selector)]

    def __repr__(self) -> str:
        return f"SoupElement(<{self.tag.name}>)"


class SoupDocument(BaseDocument):
    """Static HTML snapshot parsed with BeautifulSoup."""

    def __init__(self, soup: BeautifulSoup, html: Optional[str] = None):
        self.soup = soup
        self._html = html

    @classmethod
    def from_html(cls, html: str, parser: str = "html.parser") -> "SoupDocument":
        """Parse markup into a document."""
        return cls(BeautifulSoup(html or "", parser), html=html or "")

    def query_all(self, selector: str) -> list[BaseElement]:
        return [SoupElement(tag) for tag in self.soup.select(selector)]

    def source(self) -> str:
        if self._html is None:
            self._html = str(self.soup)
        return self._html

    def body_text(self) -> str:
        body = self.soup.body or self.soup
        return body.get_text(" ", strip=True)


# =============================================================================
# Playwright backend
# =============================================================================

class PageElement(BaseElement):
    """Element backed by a Playwright ElementHandle."""

    def __init__(self, handle: ElementHandle):
        self.handle = handle

    def text(self) -> str:
        return (self.handle.text_content() or "").strip()

    def attribute(self, name: str) -> Optional[str]:
        return self.handle.get_attribute(name)

    def query_all(self, selector: str) -> list[BaseElement]:
        return [PageElement(h) for h in self.handle.query_selector_all(selector)]


class PageDocument(BaseDocument):
    """Live page driven through the Playwright sync API."""

    def __init__(self, page: Page):
        self.page = page

    def query_all(self, selector: str) -> list[BaseElement]:
        return [PageElement(h) for h in self.page.query_selector_all(selector)]

    def source(self) -> str:
        return self.page.content()

    def body_text(self) -> str:
        try:
            return self.page.inner_text("body")
        except Exception as e:
            logger.debug(f"Could not read body text: {e}")
            return ""
