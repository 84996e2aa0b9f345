"""Connector for Library Genesis.

Search:
  - Scrapes the "simple view" results table of search.php
  - column=identifier for ISBN lookups, column=def for free text
  - Each row yields up to four authors, the title, the file extension and
    the first mirror link (a library.lol landing page)

Download:
  - The mirror link is a landing page; resolve_download_link reads the real
    file URL from its <div id="download"> block
  - The file is saved under the URL-decoded name the mirror serves it as
"""
from __future__ import annotations

import logging
from typing import List, Optional

from bs4 import BeautifulSoup

from .client import ProviderClient
from .core.network import make_request
from .model import Candidate, ProviderUnavailable, SearchField

logger = logging.getLogger(__name__)

# Cell positions in the simple-view results table
_AUTHOR_CELL = 1
_TITLE_CELL = 2
_EXTENSION_CELL = 8
_MIRROR_CELL = 9

MAX_AUTHORS = 4


def _title_from_cell(cell) -> str:
    """Title text of the row, without the ISBN/edition markup nested in the anchor."""
    anchor = cell.find("a", id=True)
    if anchor is None:
        return ""
    own_text = "".join(anchor.find_all(string=True, recursive=False))
    return " ".join(own_text.split())


def parse_search_results(html: str, provider_key: str = "libgen") -> List[Candidate]:
    """Parse a search.php simple-view page into candidates.

    Rows missing a title or mirror link are skipped.
    """
    soup = BeautifulSoup(html, "html.parser")
    table = soup.find("table", class_="c")
    if table is None:
        return []

    candidates: List[Candidate] = []
    for row in table.find_all("tr")[1:]:
        cells = row.find_all("td", recursive=False)
        if len(cells) <= _MIRROR_CELL:
            continue

        authors = [
            " ".join(a.get_text().split())
            for a in cells[_AUTHOR_CELL].find_all("a")
        ][:MAX_AUTHORS]
        title = _title_from_cell(cells[_TITLE_CELL])
        mirror = cells[_MIRROR_CELL].find("a", href=True)
        if not title or mirror is None:
            continue

        candidates.append(Candidate(
            authors=authors,
            title=title,
            format=cells[_EXTENSION_CELL].get_text(strip=True),
            link=mirror["href"],
            provider_key=provider_key,
        ))

    return candidates


def parse_download_page(html: str) -> Optional[str]:
    """Return the file URL of a mirror landing page, or None."""
    soup = BeautifulSoup(html, "html.parser")
    anchor = soup.select_one("div#download h2 a[href]")
    if anchor is None:
        return None
    return anchor["href"].strip() or None


class LibgenClient(ProviderClient):
    """Library Genesis: identifier and free-text search over several formats."""

    key = "libgen"
    name = "libgen.is"
    default_base_url = "https://libgen.is"

    def search(self, query: str, field: SearchField = SearchField.FREE_TEXT) -> List[Candidate]:
        if not query or not query.strip():
            return []

        column = "identifier" if field == SearchField.IDENTIFIER else "def"
        params = {
            "req": query,
            "lg_topic": "libgen",
            "open": "0",
            "view": "simple",
            "res": "100",
            "phrase": "1",
            "column": column,
        }
        logger.debug("Searching Library Genesis (%s) for: %s", column, query)

        html = make_request(f"{self.base_url}/search.php", params=params)
        if html is None:
            raise ProviderUnavailable(self.key, f"search request failed for {query!r}")
        if not isinstance(html, str):
            raise ProviderUnavailable(self.key, "search returned a non-HTML response")

        try:
            results = parse_search_results(html, self.key)
        except Exception as e:
            raise ProviderUnavailable(self.key, f"could not parse search results: {e}") from e

        logger.debug("Library Genesis returned %d candidate(s) for: %s", len(results), query)
        return results

    def resolve_download_link(self, candidate: Candidate) -> Optional[str]:
        if not candidate.link:
            return None

        page = make_request(candidate.link)
        if not isinstance(page, str):
            logger.warning("Could not fetch download page %s", candidate.link)
            return None

        link = parse_download_page(page)
        if not link:
            logger.warning("No download link on page %s", candidate.link)
        return link
