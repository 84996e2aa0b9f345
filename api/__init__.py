"""ShelfFetch API package.

This package provides the provider-facing infrastructure for searching and
downloading books from external sources.

Key modules:
- core: Config, network session and rate limiting, filename conventions
- model: Candidate/CatalogItem/record dataclasses and error types
- matching: Title matching and format preference
- client: ProviderClient base class
- providers: Registry of provider clients
- utils: Idempotent file download and atomic JSON snapshots
- translate_api: Author-name translation

Provider connectors:
- libgen_api: Library Genesis (primary)
- flibusta_api: Flibusta (secondary, deferred)

Usage:
    from api.providers import get_provider
    from api.matching import best_match
"""

from .model import Candidate, CatalogItem, SearchField
from .providers import PROVIDERS, get_provider

__all__ = [
    "Candidate",
    "CatalogItem",
    "SearchField",
    "PROVIDERS",
    "get_provider",
]
