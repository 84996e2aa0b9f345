"""Pytest configuration and shared fixtures for ShelfFetch tests."""
from __future__ import annotations

import json
import os
import shutil
import tempfile
from typing import Any, Callable, Dict, Generator, List, Optional
from unittest.mock import MagicMock

import pytest


# ============================================================================
# Path and Directory Fixtures
# ============================================================================

@pytest.fixture
def temp_dir() -> Generator[str, None, None]:
    """Create a temporary directory for test files."""
    dirpath = tempfile.mkdtemp(prefix="shelffetch_test_")
    yield dirpath
    shutil.rmtree(dirpath, ignore_errors=True)


@pytest.fixture
def temp_output_dir(temp_dir: str) -> str:
    """Create a temporary download directory."""
    output_dir = os.path.join(temp_dir, "out")
    os.makedirs(output_dir, exist_ok=True)
    return output_dir


@pytest.fixture
def store_path(temp_dir: str) -> str:
    """Path for a record store file that does not exist yet."""
    return os.path.join(temp_dir, ".store.json")


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def sample_config() -> Dict[str, Any]:
    """Return a sample configuration dictionary."""
    return {
        "paths": {
            "output_dir": "books",
            "store_file": ".books.json",
        },
        "catalog": {
            "shelf_marker": "wishlist",
        },
        "deferred": {
            "base_delay_s": 1,
            "jitter_s": 2,
            "drain_poll_s": 3,
        },
        "translation": {
            "enabled": True,
            "target": "uk",
        },
        "provider_settings": {
            "libgen": {
                "base_url": "https://libgen.rs",
                "network": {
                    "max_attempts": 2,
                    "timeout_s": 10,
                    "delay_ms": 0,
                },
            },
        },
    }


@pytest.fixture
def config_file(temp_dir: str, sample_config: Dict[str, Any]) -> str:
    """Create a temporary config file."""
    config_path = os.path.join(temp_dir, "config.json")
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(sample_config, f)
    return config_path


@pytest.fixture
def use_config(monkeypatch):
    """Install a config dict as the cached configuration."""
    import api.core.config as config_module

    def _install(cfg: Dict[str, Any]) -> Dict[str, Any]:
        monkeypatch.setattr(config_module, "_CONFIG_CACHE", cfg)
        return cfg

    return _install


@pytest.fixture(autouse=True)
def reset_config_cache(monkeypatch):
    """Reset config cache before each test and keep tests off any real config.json."""
    import api.core.config as config_module
    original_cache = config_module._CONFIG_CACHE
    config_module._CONFIG_CACHE = {}
    monkeypatch.delenv("SHELFFETCH_CONFIG_PATH", raising=False)
    yield
    config_module._CONFIG_CACHE = original_cache


@pytest.fixture(autouse=True)
def reset_rate_limiters():
    """Drop rate limiters created by previous tests."""
    from api.core import network
    network._RATE_LIMITERS.clear()
    yield
    network._RATE_LIMITERS.clear()


# ============================================================================
# Catalog Fixtures
# ============================================================================

SAMPLE_CATALOG_CSV = (
    "Book Id,Title,Author,ISBN,ISBN13,Bookshelves\n"
    '1,The Hobbit,J.R.R. Tolkien,"=""0345339681""","=""9780345339683""",to-read\n'
    '2,"Dune, Deluxe Edition",Frank Herbert,"=""""","=""""","favorites, to-read"\n'
    '3,Solaris,Stanisław Lem,"=""0156027607""","=""9780156027601""",read\n'
    '4,Roadside Picnic,Arkady Strugatsky,"=""""","=""9781613743416""",to-read;classics\n'
)


@pytest.fixture
def sample_csv_file(temp_dir: str) -> str:
    """Create a temporary Goodreads-style export."""
    csv_path = os.path.join(temp_dir, "data.csv")
    with open(csv_path, "w", encoding="utf-8") as f:
        f.write(SAMPLE_CATALOG_CSV)
    return csv_path


@pytest.fixture
def catalog_item():
    """Return a single catalog item."""
    from api.model import CatalogItem
    return CatalogItem(
        id="1",
        title="The Hobbit",
        author="J.R.R. Tolkien",
        isbn="0345339681",
        isbn13="9780345339683",
        shelves=("to-read",),
    )


# ============================================================================
# Candidate Fixtures
# ============================================================================

@pytest.fixture
def make_candidate():
    """Factory for Candidate objects."""
    from api.model import Candidate

    def _make(
        title: str = "The Hobbit",
        fmt: str = "epub",
        authors: Optional[List[str]] = None,
        link: str = "http://library.lol/main/ABC",
    ) -> Candidate:
        return Candidate(
            authors=authors if authors is not None else ["J.R.R. Tolkien"],
            title=title,
            format=fmt,
            link=link,
        )

    return _make


# ============================================================================
# Provider Stubs
# ============================================================================

class StubProvider:
    """In-memory provider client recording every call.

    ``results`` maps a query to the candidates returned for it (or an
    exception to raise); unknown queries return no candidates. Downloads
    write a small file into the output directory unless the locator is
    listed in ``failing_locators``.
    """

    def __init__(self, key: str = "stub", name: str = "stub", results=None, resolve=None):
        self.key = key
        self.name = name
        self.results: Dict[str, Any] = dict(results or {})
        self.resolve: Callable = resolve or (lambda candidate: candidate.link)
        self.failing_locators: set = set()
        self.search_calls: List[tuple] = []
        self.download_calls: List[tuple] = []

    def search(self, query, field=None):
        self.search_calls.append((query, field))
        result = self.results.get(query, [])
        if isinstance(result, BaseException):
            raise result
        return list(result)

    def resolve_download_link(self, candidate):
        return self.resolve(candidate)

    def download(self, locator, output_dir, filename=None):
        from api.utils import resolve_target_path

        self.download_calls.append((locator, output_dir, filename))
        if locator in self.failing_locators:
            return False
        path = resolve_target_path(locator, output_dir, filename)
        if not os.path.exists(path):
            os.makedirs(output_dir, exist_ok=True)
            with open(path, "wb") as f:
                f.write(b"book")
        return True


@pytest.fixture
def stub_provider_factory():
    """Factory for StubProvider instances."""
    return StubProvider


# ============================================================================
# Mock Response Fixtures
# ============================================================================

@pytest.fixture
def mock_response():
    """Create a mock HTTP response usable as a context manager."""
    def _create_mock(
        status_code: int = 200,
        json_data: Dict[str, Any] | None = None,
        content: bytes = b"",
        headers: Dict[str, str] | None = None,
        chunks: List[bytes] | None = None,
    ) -> MagicMock:
        response = MagicMock()
        response.status_code = status_code
        response.ok = 200 <= status_code < 400
        response.json.return_value = json_data if json_data is not None else {}
        response.content = content
        response.text = content.decode("utf-8") if content else ""
        response.headers = headers if headers is not None else {"Content-Type": "application/json"}
        response.iter_content = MagicMock(
            return_value=chunks if chunks is not None else ([content] if content else [])
        )
        response.raise_for_status = MagicMock()
        if status_code >= 400:
            response.raise_for_status.side_effect = Exception(f"HTTP {status_code}")
        response.__enter__ = MagicMock(return_value=response)
        response.__exit__ = MagicMock(return_value=False)
        return response
    return _create_mock


@pytest.fixture
def mock_session():
    """Patch the global HTTP session with a MagicMock."""
    from unittest.mock import patch

    session = MagicMock()
    with patch("api.core.network.get_session", return_value=session), \
            patch("api.utils.get_session", return_value=session):
        yield session
