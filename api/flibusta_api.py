"""Connector for Flibusta.

Search:
  - Scrapes /booksearch; each book hit is a list item holding a /b/<id>
    link (the title, with search-term highlighting) and an /a/<id> author link
  - Flibusta only searches free text, the field argument is ignored

Download:
  - Every book is offered as epub at /b/<id>/epub, so candidates carry the
    direct file link and no resolution step is needed
  - Responses are slow and the site throttles aggressively; the deferred
    worker paces calls against it
"""
from __future__ import annotations

import logging
import re
from typing import List

from bs4 import BeautifulSoup

from .client import ProviderClient
from .core.network import make_request
from .model import Candidate, ProviderUnavailable, SearchField

logger = logging.getLogger(__name__)

_BOOK_HREF = re.compile(r"^/b/\d+/?$")
_AUTHOR_HREF = re.compile(r"^/a/\d+/?$")


def parse_search_results(html: str, base_url: str, provider_key: str = "flibusta") -> List[Candidate]:
    """Parse a booksearch page into epub candidates."""
    soup = BeautifulSoup(html, "html.parser")
    candidates: List[Candidate] = []

    for item in soup.find_all("li"):
        book = item.find("a", href=_BOOK_HREF)
        author = item.find("a", href=_AUTHOR_HREF)
        if book is None or author is None:
            continue

        title = " ".join(book.get_text().split())
        if not title:
            continue

        candidates.append(Candidate(
            authors=[" ".join(author.get_text().split())],
            title=title,
            format="epub",
            link=f"{base_url}{book['href'].rstrip('/')}/epub",
            provider_key=provider_key,
        ))

    return candidates


class FlibustaClient(ProviderClient):
    """Flibusta: title search, epub only."""

    key = "flibusta"
    name = "flibusta"
    default_base_url = "http://flibusta.is"

    def search(self, query: str, field: SearchField = SearchField.FREE_TEXT) -> List[Candidate]:
        if not query or not query.strip():
            return []

        logger.debug("Searching Flibusta for: %s", query)
        html = make_request(f"{self.base_url}/booksearch", params={"ask": query, "chb": "on"})
        if html is None:
            raise ProviderUnavailable(self.key, f"search request failed for {query!r}")
        if not isinstance(html, str):
            raise ProviderUnavailable(self.key, "search returned a non-HTML response")

        try:
            results = parse_search_results(html, self.base_url, self.key)
        except Exception as e:
            raise ProviderUnavailable(self.key, f"could not parse search results: {e}") from e

        logger.debug("Flibusta returned %d candidate(s) for: %s", len(results), query)
        return results
