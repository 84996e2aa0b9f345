"""Core utilities for the ShelfFetch API.

- config: Configuration loading and provider settings
- network: HTTP session, requests, rate limiting
- naming: Filename sanitization and naming conventions
"""

__all__ = [
    "config",
    "network",
    "naming",
]
