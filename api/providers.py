"""Providers registry mapping provider keys to client classes.

Centralizes provider imports and the roles the pipeline assigns them:
the primary provider runs the fallback search chain, the secondary one
drains the deferred queue.
"""
from __future__ import annotations

from typing import Dict, Optional, Type

from .client import ProviderClient
from .flibusta_api import FlibustaClient
from .libgen_api import LibgenClient

PROVIDERS: Dict[str, Type[ProviderClient]] = {
    LibgenClient.key: LibgenClient,
    FlibustaClient.key: FlibustaClient,
}

PRIMARY_PROVIDER = LibgenClient.key
SECONDARY_PROVIDER = FlibustaClient.key


def get_provider(key: str, base_url: Optional[str] = None) -> ProviderClient:
    """Instantiate the client registered under key.

    Raises:
        KeyError: If no provider is registered under key
    """
    try:
        cls = PROVIDERS[key]
    except KeyError:
        raise KeyError(f"Unknown provider: {key!r} (known: {', '.join(sorted(PROVIDERS))})") from None
    return cls(base_url=base_url)


__all__ = ["PROVIDERS", "PRIMARY_PROVIDER", "SECONDARY_PROVIDER", "get_provider"]
