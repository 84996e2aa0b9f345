"""Connector for LibreTranslate, used to translate author names.

Cyrillic-language catalogs list Russian authors under their transliterated
English names; searching with the translated name finds editions the
English spelling misses. Any failure returns the input unchanged.
"""
from __future__ import annotations

import logging
from typing import Optional

from .core.config import get_translation_config
from .core.network import post_json

logger = logging.getLogger(__name__)


def translate(text: str, source: Optional[str] = None, target: Optional[str] = None) -> str:
    """Translate text; returns text itself when translation is off or fails."""
    if not text or not text.strip():
        return text

    cfg = get_translation_config()
    if not cfg.get("enabled", True):
        return text

    payload = {
        "q": text,
        "source": source or cfg["source"],
        "target": target or cfg["target"],
        "format": "text",
    }
    if cfg.get("api_key"):
        payload["api_key"] = cfg["api_key"]

    data = post_json(cfg["url"], payload)
    translated = (data or {}).get("translatedText")
    if not isinstance(translated, str) or not translated.strip():
        logger.debug("Translation unavailable for %r; using original text", text)
        return text

    return translated.strip()
