"""
HTML Content Extraction Module

This module turns a downloaded page into a standalone offline document.
The first content region found (in a fixed priority order) is lifted out of
the page and wrapped in a minimal HTML shell that records where the page came
from. Pages without a recognisable content region are wrapped whole.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from bs4 import BeautifulSoup
from bs4.element import Tag


DEFAULT_DOCUMENT_TITLE = "Offline Content"

# Priority order; the first selector matching any element wins.
DEFAULT_CONTENT_SELECTORS = (
    'main',
    '.main-content',
    '#main-content',
    '.content',
    '#content',
    'article',
    '.technique-content',
    '.tactic-content',
)

OFFLINE_STYLESHEET = """
        body { font-family: Arial, sans-serif; margin: 20px; line-height: 1.6; margin-top: 6px }
        h1, h2, h3 { color: #333; }
        .original-url { color: #666; font-size: 0.9em; margin-bottom: 6px; }
"""

DOCUMENT_SHELL = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
    <style>{stylesheet}    </style>
</head>
<body>
    <div class="original-url">
        <strong>Original URL:</strong> <a href="{url}" target="_blank">{url}</a>
    </div>
    {content}
</body>
</html>"""


class ContentRegionMatcher:
    """Finds the element holding a page's main content, if present."""

    def try_match(self, soup: BeautifulSoup) -> Optional[Tag]:
        raise NotImplementedError


class CssSelectorMatcher(ContentRegionMatcher):

    def __init__(self, selector: str):
        self.selector = selector

    def try_match(self, soup: BeautifulSoup) -> Optional[Tag]:
        return soup.select_one(self.selector)

    def __repr__(self) -> str:
        return f"CssSelectorMatcher({self.selector!r})"


def _escape_url(url: str) -> str:
    # '&' stays literal so query strings read the same as the source URL.
    return (url.replace('"', '&quot;')
               .replace('<', '&lt;')
               .replace('>', '&gt;'))


class ContentExtractor:
    """
    Extracts the meaningful part of a page into an offline HTML document.

    Matchers are tried strictly in order and the first hit is used; there is
    no scoring between candidate regions.
    """

    def __init__(self,
                 selectors: Iterable[str] = DEFAULT_CONTENT_SELECTORS,
                 title: str = DEFAULT_DOCUMENT_TITLE,
                 matchers: Optional[Sequence[ContentRegionMatcher]] = None):
        """
        Initialize the extractor.

        Args:
            selectors: CSS selectors in priority order (ignored if matchers given)
            title: Title of every generated document
            matchers: Explicit matcher list in priority order
        """
        self.logger = logging.getLogger(__name__)
        self.title = title
        self.matchers: List[ContentRegionMatcher] = (
            list(matchers) if matchers is not None
            else [CssSelectorMatcher(s) for s in selectors]
        )

    def extract(self, raw_html: str, source_url: str) -> str:
        """
        Build the offline document for a fetched page.

        Args:
            raw_html: Page markup as downloaded
            source_url: URL the page was fetched from

        Returns:
            Standalone HTML document; never fails
        """
        content = self._find_content(raw_html, source_url)
        if content is None:
            self.logger.debug(f"No content region matched for {source_url}, wrapping full page")
            content = raw_html
        return self.wrap(content, source_url)

    def _find_content(self, raw_html: str, source_url: str) -> Optional[str]:
        try:
            soup = BeautifulSoup(raw_html, 'lxml')
        except Exception as e:
            self.logger.warning(f"Failed to parse HTML for {source_url}: {e}")
            return None

        for matcher in self.matchers:
            try:
                element = matcher.try_match(soup)
            except Exception as e:
                self.logger.warning(f"{matcher!r} failed for {source_url}: {e}")
                continue
            if element is not None:
                self.logger.debug(f"{matcher!r} matched for {source_url}")
                return element.decode_contents()
        return None

    def wrap(self, content: str, source_url: str) -> str:
        """Wrap markup in the offline document shell without altering it."""
        return DOCUMENT_SHELL.format(
            title=self.title,
            stylesheet=OFFLINE_STYLESHEET,
            url=_escape_url(source_url),
            content=content,
        )
