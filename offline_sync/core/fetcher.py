"""
Page Retrieval Module

This module downloads a single web page with browser-like headers so that
basic bot blocking on target sites lets the request through. Every failure
is classified as a transport, HTTP status or body decoding problem.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import requests
import urllib3

from .errors import ContentDecodeError, HTTPStatusError, TransportError


DEFAULT_TIMEOUT = 30.0

DEFAULT_USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36'
)


def browser_headers(user_agent: str = DEFAULT_USER_AGENT) -> Dict[str, str]:
    return {
        'User-Agent': user_agent,
        'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
        'Accept-Language': 'en-US,en;q=0.5',
        'Connection': 'keep-alive',
        'Upgrade-Insecure-Requests': '1',
    }


@dataclass(frozen=True)
class FetchResult:
    url: str
    final_url: str
    status_code: int
    html: str
    encoding: str
    size: int


class PageFetcher:
    """
    Retrieves pages over HTTP for offline storage.

    One GET per call, no retries and no backoff. A per-request timeout is
    always applied so a hung server cannot stall a whole batch.
    """

    def __init__(self,
                 session: Optional[requests.Session] = None,
                 timeout: float = DEFAULT_TIMEOUT,
                 user_agent: str = DEFAULT_USER_AGENT):
        """
        Initialize the fetcher.

        Args:
            session: Optional pre-built session (owned by the caller)
            timeout: Per-request timeout in seconds
            user_agent: User-Agent header sent with every request
        """
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)
        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()
        self.session.headers.update(browser_headers(user_agent))

    def fetch(self, url: str) -> FetchResult:
        """
        Fetch a page and decode its body.

        Args:
            url: Page URL

        Returns:
            FetchResult with the decoded HTML

        Raises:
            TransportError: Connection, DNS, timeout or malformed URL
            HTTPStatusError: Non-2xx response
            ContentDecodeError: Body is not valid text in its charset
        """
        self.logger.info(f"Fetching: {url}")

        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise TransportError(f"Timeout after {self.timeout}s fetching {url}: {e}", url=url) from e
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Failed to download {url}: {e}", url=url) from e
        except (urllib3.exceptions.LocationParseError, ValueError) as e:
            # Some malformed hosts (e.g. an empty label) escape requests unwrapped
            raise TransportError(f"Invalid URL {url}: {e}", url=url) from e

        if not 200 <= response.status_code < 300:
            raise HTTPStatusError(f"HTTP error for {url}: {response.status_code}",
                                  status_code=response.status_code, url=url)

        html, encoding = self._decode_body(response, url)

        result = FetchResult(
            url=url,
            final_url=str(response.url or url),
            status_code=int(response.status_code),
            html=html,
            encoding=encoding,
            size=len(response.content),
        )
        self.logger.info(f"Retrieved {result.size} bytes for {url}")
        return result

    def _decode_body(self, response: requests.Response, url: str) -> tuple:
        """
        Strictly decode the response body.

        The declared charset wins; without one, requests would fall back to
        ISO-8859-1 for text/*, so the detected encoding is used instead.
        """
        content_type = response.headers.get('content-type', '').lower()
        encoding = response.encoding
        if not encoding or 'charset' not in content_type:
            encoding = response.apparent_encoding or 'utf-8'

        try:
            return response.content.decode(encoding), encoding
        except (UnicodeDecodeError, LookupError) as e:
            raise ContentDecodeError(f"Failed to read response for {url}: {e}", url=url) from e

    def close(self):
        """Close the HTTP session if this fetcher created it."""
        if self._owns_session:
            self.session.close()
            self.logger.debug("Fetcher session closed")
