"""Configuration management for ShelfFetch.

Handles loading and caching of the JSON configuration file with environment
variable support (SHELFFETCH_CONFIG_PATH) and provider-specific settings.

The configuration system provides:
- Centralized config loading with caching
- Provider-specific settings (network policy, base URL overrides)
- Output paths (download directory, record store file)
- Deferred queue pacing and translation settings
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_CONFIG_CACHE: Optional[Dict[str, Any]] = None

DEFAULT_OUTPUT_DIR = "out"
DEFAULT_STORE_FILE = ".store.json"
DEFAULT_SHELF_MARKER = "to-read"


def get_config(force_reload: bool = False) -> Dict[str, Any]:
    """Load project configuration JSON.

    Looks for the path in SHELFFETCH_CONFIG_PATH env var; falls back to 'config.json' in CWD.
    Caches the result unless force_reload is True.

    Returns:
        Configuration dictionary (empty dict if file not found or invalid)
    """
    global _CONFIG_CACHE
    if _CONFIG_CACHE is not None and not force_reload:
        return _CONFIG_CACHE

    path = os.environ.get("SHELFFETCH_CONFIG_PATH", "config.json")
    try:
        if os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                _CONFIG_CACHE = json.load(f) or {}
        else:
            _CONFIG_CACHE = {}
    except Exception as e:
        logger.error("Failed to load config from %s: %s", path, e)
        _CONFIG_CACHE = {}

    return _CONFIG_CACHE


def get_provider_setting(provider_key: str, setting: str, default: Any = None) -> Any:
    """Retrieve a provider-specific setting from the configuration.

    Args:
        provider_key: Provider identifier (e.g., 'libgen', 'flibusta')
        setting: Setting name to retrieve
        default: Default value if not found

    Returns:
        The setting value or default
    """
    cfg = get_config()
    ps = cfg.get("provider_settings", {}) or {}
    return (ps.get(provider_key, {}) or {}).get(setting, default)


def get_paths_config() -> Dict[str, Any]:
    """Get output path configuration section.

    Returns:
        Paths configuration dictionary with defaults
    """
    cfg = get_config()
    paths = dict(cfg.get("paths", {}) or {})
    paths.setdefault("output_dir", DEFAULT_OUTPUT_DIR)
    paths.setdefault("store_file", DEFAULT_STORE_FILE)
    return paths


def get_shelf_marker() -> str:
    """Shelf tag an item must carry to be processed."""
    cfg = get_config()
    catalog = cfg.get("catalog", {}) or {}
    return str(catalog.get("shelf_marker") or DEFAULT_SHELF_MARKER)


def get_deferred_config() -> Dict[str, float]:
    """Get pacing for the deferred queue worker.

    - base_delay_s: fixed part of the delay between deferred attempts
    - jitter_s: upper bound of the uniform random part added to the delay
    - drain_poll_s: how often the scan waits on the queue to drain

    Returns:
        Deferred configuration dictionary with float values
    """
    cfg = get_config()
    d = dict(cfg.get("deferred", {}) or {})
    d.setdefault("base_delay_s", 5.0)
    d.setdefault("jitter_s", 15.0)
    d.setdefault("drain_poll_s", 10.0)
    return {k: float(d[k]) for k in ("base_delay_s", "jitter_s", "drain_poll_s")}


def get_translation_config() -> Dict[str, Any]:
    """Get translation collaborator settings.

    Returns:
        Translation configuration dictionary with defaults
    """
    cfg = get_config()
    tr = dict(cfg.get("translation", {}) or {})
    tr.setdefault("enabled", True)
    tr.setdefault("url", "https://libretranslate.com/translate")
    tr.setdefault("source", "en")
    tr.setdefault("target", "ru")
    tr.setdefault("api_key", None)
    return tr


def get_network_config(provider_key: Optional[str]) -> Dict[str, Any]:
    """Return network policy for a provider, with sensible defaults.

    Args:
        provider_key: Provider identifier (may be None for generic defaults)

    Returns:
        Network configuration dictionary with all fields populated
    """
    cfg = get_config()
    prov_cfg = cfg.get("provider_settings", {}).get(provider_key or "", {}) if provider_key else {}
    net = dict((prov_cfg or {}).get("network", {}) or {})

    net.setdefault("delay_ms", 0)
    net.setdefault("jitter_ms", 0)
    net.setdefault("max_attempts", 1)
    net.setdefault("base_backoff_s", 1.5)
    net.setdefault("backoff_multiplier", 1.5)
    net.setdefault("max_backoff_s", 60.0)
    net.setdefault("timeout_s", 30.0)
    net.setdefault("verify_ssl", True)

    if not isinstance(net.get("headers", {}), dict):
        net["headers"] = {}

    return net
