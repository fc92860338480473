from __future__ import annotations

import logging
import time
from typing import Iterator, Optional

import requests
from bs4 import BeautifulSoup

from .config import HTTP_TIMEOUT_SECONDS, SECTION_SELECTOR, SOURCE_URL
from .utils import HTTPError, get_http_session, retryable_request

logger = logging.getLogger(__name__)


class FetchFailed(Exception):
    """Raised when the catalog page does not come back with status 200."""

    def __init__(self, status: int, url: str) -> None:
        self.status = status
        self.url = url
        super().__init__(f"failed to fetch {url} correctly: status {status}")


class SectionNotFound(Exception):
    """Raised when the listing region is missing from the page."""


@retryable_request
def _get(session: requests.Session, url: str, **kwargs: dict) -> requests.Response:
    """Thin wrapper around session.get with retry policy from utils.retryable_request."""
    return session.get(url, **kwargs)


def fetch_page(url: str = SOURCE_URL, session: Optional[requests.Session] = None) -> str:
    """Download the catalog page and return its HTML."""
    close_session = False
    if session is None:
        session = get_http_session()
        close_session = True

    try:
        start = time.monotonic()
        try:
            resp = _get(session, url, timeout=HTTP_TIMEOUT_SECONDS)
        except HTTPError as e:
            # Server errors left after the last retry.
            raise FetchFailed(e.status_code, url) from e
        if resp.status_code != 200:
            raise FetchFailed(resp.status_code, url)
        logger.info(
            "Fetched site with status %s in %.2fs", resp.status_code, time.monotonic() - start
        )
        return resp.text
    finally:
        if close_session:
            session.close()


def section_lines(html: str, selector: str = SECTION_SELECTOR) -> Iterator[str]:
    """Yield every text node of the listing region in document order.

    Whitespace-only nodes are kept; they separate a name from its price.
    """
    soup = BeautifulSoup(html, "html.parser")
    section = soup.select_one(selector)
    if section is None:
        raise SectionNotFound(f"no element matches {selector!r}")
    return iter([str(s) for s in section.strings])


__all__ = ["fetch_page", "section_lines", "FetchFailed", "SectionNotFound"]
