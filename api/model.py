"""Data models for ShelfFetch.

Provides the dataclasses shared by providers and the acquisition pipeline,
plus the exception types that cross module boundaries.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

# Closed set of formats a candidate can carry
KNOWN_FORMATS = ("epub", "mobi", "pdf")
OTHER_FORMAT = "other"


class SearchField(str, Enum):
    """Which provider field a query is matched against."""

    IDENTIFIER = "identifier"
    FREE_TEXT = "freeText"


class ShelfFetchError(Exception):
    """Base class for ShelfFetch errors."""


class ProviderUnavailable(ShelfFetchError):
    """A provider call failed at the network or parsing level.

    Callers treat it as "no candidates" and continue the fallback chain.
    """

    def __init__(self, provider_key: str, message: str):
        self.provider_key = provider_key
        self.message = message
        super().__init__(f"{provider_key}: {message}")


class DownloadFailed(ShelfFetchError):
    """Non-success response or stream/write error while fetching a file."""


class PersistenceFailure(ShelfFetchError):
    """The record store snapshot could not be written."""


def normalize_format(value: Optional[str]) -> str:
    """Map a provider's extension label onto the closed format set."""
    fmt = str(value or "").strip().lower().lstrip(".")
    return fmt if fmt in KNOWN_FORMATS else OTHER_FORMAT


@dataclass
class Candidate:
    """One search result from a provider, not yet confirmed as a match.

    Attributes:
        authors: Ordered author names as the provider lists them
        title: Title as shown by the provider
        format: One of epub, mobi, pdf, other
        link: Locator resolvable by the owning provider client
        provider_key: Key of the provider that produced the result
    """

    authors: List[str]
    title: str
    format: str
    link: str
    provider_key: Optional[str] = None

    def __post_init__(self) -> None:
        self.format = normalize_format(self.format)
        self.authors = [a for a in (self.authors or []) if a]

    @property
    def first_author(self) -> str:
        return self.authors[0] if self.authors else ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CatalogItem:
    """One row of the input catalog."""

    id: str
    title: str
    author: str
    isbn: str = ""
    isbn13: str = ""
    shelves: Tuple[str, ...] = field(default_factory=tuple)

    def on_shelf(self, marker: str) -> bool:
        return marker in self.shelves


@dataclass
class AcquisitionRecord:
    """Durable record of a successfully acquired catalog item.

    The id is the store key; the persisted value holds the remaining fields.
    """

    id: str
    title: str
    author: str
    source: str

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d.pop("id")
        return d

    @classmethod
    def from_dict(cls, item_id: str, data: Dict[str, Any]) -> "AcquisitionRecord":
        return cls(
            id=str(item_id),
            title=str(data.get("title", "")),
            author=str(data.get("author", "")),
            source=str(data.get("source", "unknown")),
        )


@dataclass(frozen=True)
class DeferredRequest:
    """An item no primary provider matched, waiting for the secondary source."""

    id: str
    title: str
    author: str

    @classmethod
    def from_item(cls, item: CatalogItem) -> "DeferredRequest":
        return cls(id=item.id, title=item.title, author=item.author)
