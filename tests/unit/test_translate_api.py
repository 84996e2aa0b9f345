"""Tests for api/translate_api.py - Author name translation."""
from __future__ import annotations

from unittest.mock import patch


class TestTranslate:
    """Tests for translate function."""

    def test_returns_translation(self):
        """The translated text is returned."""
        from api.translate_api import translate

        with patch("api.translate_api.post_json", return_value={"translatedText": "Станислав Лем"}) as mock_post:
            assert translate("Stanisław Lem") == "Станислав Лем"

        url, payload = mock_post.call_args[0]
        assert url == "https://libretranslate.com/translate"
        assert payload == {"q": "Stanisław Lem", "source": "en", "target": "ru", "format": "text"}

    def test_configured_languages_and_key(self, use_config):
        """Languages, URL and API key come from config."""
        from api.translate_api import translate

        use_config({"translation": {"url": "http://localhost:5000/translate", "target": "uk", "api_key": "k"}})
        with patch("api.translate_api.post_json", return_value={"translatedText": "x"}) as mock_post:
            translate("Lem")

        url, payload = mock_post.call_args[0]
        assert url == "http://localhost:5000/translate"
        assert payload["target"] == "uk"
        assert payload["api_key"] == "k"

    def test_failure_returns_input(self):
        """A failed call returns the original text."""
        from api.translate_api import translate

        with patch("api.translate_api.post_json", return_value=None):
            assert translate("Frank Herbert") == "Frank Herbert"

    def test_blank_translation_returns_input(self):
        """A blank translation returns the original text."""
        from api.translate_api import translate

        with patch("api.translate_api.post_json", return_value={"translatedText": "  "}):
            assert translate("Frank Herbert") == "Frank Herbert"

    def test_disabled(self, use_config):
        """Disabled translation makes no request."""
        from api.translate_api import translate

        use_config({"translation": {"enabled": False}})
        with patch("api.translate_api.post_json") as mock_post:
            assert translate("Frank Herbert") == "Frank Herbert"

        mock_post.assert_not_called()

    def test_empty_text(self):
        """Empty text is returned without a request."""
        from api.translate_api import translate

        with patch("api.translate_api.post_json") as mock_post:
            assert translate("") == ""

        mock_post.assert_not_called()
