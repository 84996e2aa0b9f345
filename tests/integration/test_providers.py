"""Integration tests for the provider registry and client plumbing with mocked HTTP."""
from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from api.model import SearchField

LIBGEN_PAGE = (
    "<html><body><table class=c>"
    "<tr><td>ID</td><td>Author(s)</td><td>Title</td><td></td><td></td><td></td><td></td><td></td>"
    "<td>Extension</td><td>Mirrors</td></tr>"
    "<tr><td>1</td><td><a href='#'>Frank Herbert</a></td>"
    "<td><a href='book/index.php?md5=AAA' id=1>Dune</a></td>"
    "<td></td><td></td><td></td><td></td><td></td><td>epub</td>"
    "<td><a href='http://library.lol/main/AAA'>[1]</a></td></tr>"
    "</table></body></html>"
)

LIBGEN_LANDING = (
    "<html><body><div id=download><h2>"
    "<a href='https://download.library.lol/main/1/aaa/Frank%20Herbert%20-%20Dune.epub'>GET</a>"
    "</h2></div></body></html>"
)


class TestRegistry:
    """Tests for the providers registry."""

    def test_roles(self):
        """libgen is primary, flibusta secondary."""
        from api.providers import PRIMARY_PROVIDER, PROVIDERS, SECONDARY_PROVIDER

        assert PRIMARY_PROVIDER == "libgen"
        assert SECONDARY_PROVIDER == "flibusta"
        assert set(PROVIDERS) == {"libgen", "flibusta"}

    def test_get_provider(self):
        """get_provider instantiates the registered client."""
        from api.flibusta_api import FlibustaClient
        from api.providers import get_provider

        client = get_provider("flibusta", base_url="http://flibusta.site")

        assert isinstance(client, FlibustaClient)
        assert client.base_url == "http://flibusta.site"

    def test_unknown_provider(self):
        """Unknown keys raise KeyError naming the known ones."""
        from api.providers import get_provider

        with pytest.raises(KeyError, match="libgen"):
            get_provider("annas_archive")


class TestProviderClient:
    """Tests for the ProviderClient base class."""

    def test_download_delegates(self, temp_output_dir):
        """download goes through the shared idempotent downloader."""
        from api.providers import get_provider

        client = get_provider("flibusta")
        with patch("api.client.download_file", return_value=True) as mock_dl:
            assert client.download("http://flibusta.is/b/1/epub", temp_output_dir, "Lem - Solaris.epub")

        mock_dl.assert_called_once_with("http://flibusta.is/b/1/epub", temp_output_dir, "Lem - Solaris.epub")

    def test_abstract(self):
        """The base class cannot be instantiated."""
        from api.client import ProviderClient

        with pytest.raises(TypeError):
            ProviderClient()


class TestLibgenEndToEnd:
    """Search, resolve and download against mocked Library Genesis responses."""

    def test_search_resolve_download(self, mock_session, mock_response, temp_output_dir):
        """A search hit is resolved through its landing page and saved under the mirror name."""
        from api.providers import get_provider

        html = {"Content-Type": "text/html"}
        mock_session.get.side_effect = [
            mock_response(content=LIBGEN_PAGE.encode(), headers=html),
            mock_response(content=LIBGEN_LANDING.encode(), headers=html),
            mock_response(content=b"EPUB", headers={"Content-Type": "application/epub+zip"}),
        ]

        client = get_provider("libgen")
        results = client.search("9780441013593", SearchField.IDENTIFIER)
        locator = client.resolve_download_link(results[0])

        assert client.download(locator, temp_output_dir) is True
        assert os.listdir(temp_output_dir) == ["Frank Herbert - Dune.epub"]
