"""Network utilities for HTTP requests, rate limiting, and session management.

Provides a centralized HTTP session, per-provider rate limiting,
and error handling for provider lookups, translation calls and file downloads.
"""
from __future__ import annotations

import json
import logging
import random
import threading
import time
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Optional, Union
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import get_network_config

logger = logging.getLogger(__name__)

# Global session (lazy-initialized)
_SESSION: Optional[requests.Session] = None
_SESSION_LOCK = threading.Lock()

# Map URL hostnames to provider keys for rate limiting and policies
PROVIDER_HOST_MAP: Dict[str, tuple[str, ...]] = {
    "libgen": ("libgen.is", "libgen.rs", "libgen.st", "library.lol", "libgen.li"),
    "flibusta": ("flibusta.is", "flibusta.site", "flibusta.club"),
    "libretranslate": ("libretranslate.com", "libretranslate.de"),
}


class RateLimiter:
    """Simple per-provider rate limiter with jitter, using monotonic time."""

    def __init__(self, min_interval_s: float = 0.0, jitter_s: float = 0.0):
        self.min_interval_s = max(0.0, float(min_interval_s or 0.0))
        self.jitter_s = max(0.0, float(jitter_s or 0.0))
        self._last_ts = 0.0
        self._lock = threading.Lock()

    def wait(self) -> None:
        """Wait until the minimum interval has passed since the last request."""
        if self.min_interval_s <= 0 and self.jitter_s <= 0:
            return

        with self._lock:
            now = time.monotonic()
            # Next ready time is last_ts + base + random jitter
            jitter = random.uniform(0.0, self.jitter_s) if self.jitter_s > 0 else 0.0
            next_ready = self._last_ts + self.min_interval_s + jitter
            sleep_s = next_ready - now

            if sleep_s > 0:
                time.sleep(sleep_s)
                now = time.monotonic()

            self._last_ts = now


# Per-provider rate limiter instances
_RATE_LIMITERS: Dict[str, RateLimiter] = {}


def get_provider_for_url(url: str) -> Optional[str]:
    """Determine the provider key for a given URL.

    Args:
        url: URL to check

    Returns:
        Provider key or None if not recognized
    """
    try:
        host = urlparse(url).netloc.lower()
    except Exception:
        return None

    # Strip port if present
    if ":" in host:
        host = host.split(":", 1)[0]

    def _host_matches(h: str, part: str) -> bool:
        return h == part or h.endswith("." + part)

    for provider, host_parts in PROVIDER_HOST_MAP.items():
        for part in host_parts:
            if _host_matches(host, part):
                return provider

    return None


def get_rate_limiter(provider_key: Optional[str]) -> Optional[RateLimiter]:
    """Get or create a rate limiter for a provider.

    Args:
        provider_key: Provider identifier

    Returns:
        RateLimiter instance or None if no provider is known
    """
    if not provider_key:
        return None

    net = get_network_config(provider_key)
    delay_s = float(net.get("delay_ms", 0) or 0) / 1000.0
    jitter_s = float(net.get("jitter_ms", 0) or 0) / 1000.0

    rl = _RATE_LIMITERS.get(provider_key)
    if rl is None or rl.min_interval_s != delay_s or rl.jitter_s != jitter_s:
        rl = RateLimiter(delay_s, jitter_s)
        _RATE_LIMITERS[provider_key] = rl

    return rl


def build_session() -> requests.Session:
    """Build a configured requests session with default headers.

    Returns:
        Configured Session instance
    """
    session = requests.Session()

    # One attempt per call, no status or read retries
    retry = Retry(total=0, read=False, redirect=False, raise_on_status=False)

    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    session.headers.update({
        # Mirror pages answer 403 to obviously scripted clients
        "User-Agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/124.0.0.0 Safari/537.36"
        ),
        "Accept": "*/*",
        "Accept-Language": "en-US,en;q=0.9",
    })

    return session


def get_session() -> requests.Session:
    """Get the global HTTP session (lazy initialization).

    Returns:
        Configured Session instance
    """
    global _SESSION
    with _SESSION_LOCK:
        if _SESSION is None:
            _SESSION = build_session()
    return _SESSION


def _backoff(attempt: int, base: float, mult: float, cap: float) -> float:
    return min(base * (mult ** (attempt - 1)), cap)


def _retry_after_seconds(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header given either as seconds or as an HTTP date."""
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        pass
    try:
        retry_dt = parsedate_to_datetime(value)
        return max(0.0, (retry_dt - datetime.now(retry_dt.tzinfo)).total_seconds())
    except Exception:
        return None


def make_request(
    url: str,
    params: Optional[Dict] = None,
    headers: Optional[Dict] = None,
    timeout: int = 30,
) -> Optional[Union[Dict, str, bytes]]:
    """HTTP GET with centralized per-provider pacing.

    A single attempt unless the provider's network config raises
    ``max_attempts``; extra attempts back off on 429, 5xx and timeouts.

    Args:
        url: URL to request
        params: Query parameters
        headers: Additional headers
        timeout: Request timeout in seconds (overridden by provider config)

    Returns:
        - dict for JSON responses
        - str for text/xml/html
        - bytes for other/binary content
        - None on error
    """
    session = get_session()
    provider = get_provider_for_url(url)
    net = get_network_config(provider)

    max_attempts = max(1, int(net.get("max_attempts", 1) or 1))
    base_backoff = float(net.get("base_backoff_s", 1.5) or 1.5)
    backoff_mult = float(net.get("backoff_multiplier", 1.5) or 1.5)
    max_backoff = float(net.get("max_backoff_s", 60.0) or 60.0)
    net_timeout = net.get("timeout_s")
    effective_timeout = float(net_timeout) if net_timeout is not None else float(timeout)
    verify = bool(net.get("verify_ssl", True))

    rl = get_rate_limiter(provider)

    # Merge headers: session defaults < provider headers < per-call headers
    req_headers = {str(k): str(v) for k, v in (net.get("headers") or {}).items() if v is not None}
    if headers:
        req_headers.update(headers)

    for attempt in range(1, max_attempts + 1):
        try:
            if rl:
                rl.wait()

            resp = session.get(
                url,
                params=params,
                headers=req_headers or None,
                timeout=effective_timeout,
                verify=verify,
            )

            if resp.status_code == 429:
                if attempt >= max_attempts:
                    logger.warning("429 Too Many Requests for %s; giving up", url)
                    return None
                sleep_s = _retry_after_seconds(resp.headers.get("Retry-After"))
                if sleep_s is None:
                    sleep_s = _backoff(attempt, base_backoff, backoff_mult, max_backoff)
                sleep_s = min(sleep_s, max_backoff)
                logger.warning(
                    "429 Too Many Requests for %s; sleeping %.1fs (attempt %d/%d)",
                    url, sleep_s, attempt, max_attempts
                )
                time.sleep(sleep_s)
                continue

            if resp.status_code in (500, 502, 503, 504):
                if attempt >= max_attempts:
                    logger.warning("HTTP %s for %s; giving up", resp.status_code, url)
                    return None
                sleep_s = _backoff(attempt, base_backoff, backoff_mult, max_backoff)
                logger.warning(
                    "%s for %s; sleeping %.1fs (attempt %d/%d)",
                    resp.status_code, url, sleep_s, attempt, max_attempts
                )
                time.sleep(sleep_s)
                continue

            if resp.status_code in (400, 401, 403, 404, 410, 422):
                logger.warning("Non-retryable HTTP %s for %s; not retrying", resp.status_code, url)
                return None

            resp.raise_for_status()

            content_type = resp.headers.get("Content-Type", "").lower()
            if "json" in content_type:
                try:
                    return resp.json()
                except (json.JSONDecodeError, ValueError) as e:
                    logger.error("JSON decode error for %s: %s", url, e)
                    return None

            if any(t in content_type for t in ("text/", "xml", "html")):
                return resp.text

            return resp.content

        except requests.exceptions.Timeout:
            if attempt < max_attempts:
                sleep_s = _backoff(attempt, base_backoff, backoff_mult, max_backoff)
                logger.warning(
                    "Timeout for %s; sleeping %.1fs (attempt %d/%d)",
                    url, sleep_s, attempt, max_attempts
                )
                time.sleep(sleep_s)
                continue
            logger.error("Request timed out: %s", url)
            return None

        except requests.exceptions.RequestException as e:
            if attempt < max_attempts:
                sleep_s = _backoff(attempt, base_backoff, backoff_mult, max_backoff)
                logger.warning(
                    "Request error for %s: %s; sleeping %.1fs (attempt %d/%d)",
                    url, e, sleep_s, attempt, max_attempts
                )
                time.sleep(sleep_s)
                continue

            logger.error("Request failed for %s: %s", url, e)
            return None

    return None


def post_json(url: str, payload: Dict[str, Any], timeout: int = 30) -> Optional[Dict[str, Any]]:
    """POST a JSON body and return the decoded JSON response.

    Single attempt; POST is not idempotent so no retry loop applies.

    Returns:
        Decoded dict, or None on any network, status or decode error
    """
    session = get_session()
    provider = get_provider_for_url(url)
    net = get_network_config(provider)
    net_timeout = net.get("timeout_s")
    effective_timeout = float(net_timeout) if net_timeout is not None else float(timeout)

    rl = get_rate_limiter(provider)
    if rl:
        rl.wait()

    try:
        resp = session.post(
            url,
            json=payload,
            headers={"Content-Type": "application/json"},
            timeout=effective_timeout,
        )
    except requests.exceptions.RequestException as e:
        logger.warning("POST failed for %s: %s", url, e)
        return None

    if not resp.ok:
        logger.warning("HTTP %s for POST %s", resp.status_code, url)
        return None

    try:
        data = resp.json()
    except ValueError as e:
        logger.warning("JSON decode error for %s: %s", url, e)
        return None

    return data if isinstance(data, dict) else None
