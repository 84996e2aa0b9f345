"""Base class for provider connectors.

A provider client wraps one external source behind three operations:
search a query, resolve a candidate to a file locator, and download it.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from .core.config import get_provider_setting
from .model import Candidate, SearchField
from .utils import download_file

logger = logging.getLogger(__name__)


class ProviderClient(ABC):
    """Abstract provider connector.

    Subclasses set ``key``, ``name`` and ``default_base_url`` and implement
    ``search``. The base URL can be overridden per provider in config
    (``provider_settings.<key>.base_url``) to point at a mirror.
    """

    key: str = ""
    name: str = ""
    default_base_url: str = ""

    def __init__(self, base_url: Optional[str] = None):
        configured = get_provider_setting(self.key, "base_url") if self.key else None
        self.base_url = (base_url or configured or self.default_base_url).rstrip("/")

    @abstractmethod
    def search(self, query: str, field: SearchField = SearchField.FREE_TEXT) -> List[Candidate]:
        """Return candidates for query; [] when nothing matched.

        Raises:
            ProviderUnavailable: On network or parse failure
        """

    def resolve_download_link(self, candidate: Candidate) -> Optional[str]:
        """Return the file locator for a candidate; direct links by default."""
        return candidate.link or None

    def download(self, locator: str, output_dir: str, filename: Optional[str] = None) -> bool:
        return download_file(locator, output_dir, filename)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(base_url={self.base_url!r})"
