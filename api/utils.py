"""File utilities for ShelfFetch providers.

Provides the idempotent book download shared by every provider client and the
atomic JSON snapshot writer used by the record store.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from typing import Any, Optional

import requests

from .core.naming import BOOK_EXTENSIONS, filename_from_url, sanitize_filename
from .core.network import get_network_config, get_provider_for_url, get_rate_limiter, get_session
from .model import DownloadFailed

logger = logging.getLogger(__name__)

_PART_SUFFIX = ".part"


def _should_reject_html_response(content_type: str, filename: str) -> tuple[bool, str]:
    """Check if an HTML response is an error page standing in for a book.

    Args:
        content_type: Response Content-Type header
        filename: Target file name

    Returns:
        Tuple of (should_reject, reason)
    """
    if "text/html" not in (content_type or "").lower():
        return False, ""

    ext = os.path.splitext(filename)[1].lower()
    if ext in BOOK_EXTENSIONS:
        return True, f"expected {ext} but server returned HTML (likely error page)"

    return False, ""


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove partial file %s: %s", path, e)


def _stream_to_file(response: requests.Response, output_dir: str) -> tuple[str, int]:
    """Write the response body to a fresh partial file in output_dir.

    Every call gets its own partial file, so concurrent downloads of the same
    name never write into one file.

    Returns:
        Tuple of (partial file path, bytes written)

    Raises:
        DownloadFailed: On any read or write error; the partial file is removed
    """
    try:
        fd, part_path = tempfile.mkstemp(prefix=".dl_", suffix=_PART_SUFFIX, dir=output_dir)
    except OSError as e:
        raise DownloadFailed(f"cannot create partial file in {output_dir}: {e}") from e

    written = 0
    try:
        with os.fdopen(fd, "wb") as f:
            for chunk in response.iter_content(chunk_size=8192):
                if not chunk:
                    continue
                f.write(chunk)
                written += len(chunk)
    except (requests.exceptions.RequestException, OSError) as e:
        _remove_quietly(part_path)
        raise DownloadFailed(f"stream to {part_path} failed: {e}") from e
    return part_path, written


def resolve_target_path(url: str, output_dir: str, filename: Optional[str] = None) -> str:
    """Path a download of url would be saved under."""
    target_name = sanitize_filename(filename) if filename else filename_from_url(url)
    return os.path.join(output_dir, target_name)


def download_file(url: str, output_dir: str, filename: Optional[str] = None) -> bool:
    """Download a book to output_dir exactly once.

    The target name is ``filename`` when given, otherwise the URL-decoded last
    path segment of ``url`` (see ``filename_from_url``). An existing file under
    that name counts as success and nothing is fetched. The body is streamed
    to a private ``.part`` file and moved into place only once complete, so a
    failed transfer never leaves a file under the target name.

    Args:
        url: File locator
        output_dir: Destination directory (created if absent)
        filename: Explicit destination file name

    Returns:
        True if the target file is present on disk afterwards
    """
    target_path = resolve_target_path(url, output_dir, filename)
    target_name = os.path.basename(target_path)

    if os.path.exists(target_path):
        logger.info("File already exists, skipping: %s", target_path)
        return True

    os.makedirs(output_dir, exist_ok=True)

    session = get_session()
    provider = get_provider_for_url(url)
    net = get_network_config(provider)
    timeout_s = net.get("timeout_s")
    timeout = float(timeout_s) if timeout_s is not None else 30.0
    req_headers = {str(k): str(v) for k, v in (net.get("headers") or {}).items() if v is not None}

    rl = get_rate_limiter(provider)
    if rl:
        rl.wait()

    logger.info("Downloading %s", target_name)

    try:
        with session.get(
            url,
            stream=True,
            timeout=timeout,
            verify=bool(net.get("verify_ssl", True)),
            headers=req_headers or None,
        ) as response:
            if not response.ok:
                logger.warning("HTTP %s for %s; download failed", response.status_code, url)
                return False

            should_reject, reason = _should_reject_html_response(
                response.headers.get("Content-Type", ""), target_name
            )
            if should_reject:
                logger.warning("Rejecting download: %s: %s", reason, url)
                return False

            part_path, written = _stream_to_file(response, output_dir)
    except requests.exceptions.RequestException as e:
        logger.warning("Error downloading %s: %s", url, e)
        return False
    except DownloadFailed as e:
        logger.warning("Download failed for %s: %s", url, e)
        return False

    if os.path.exists(target_path):
        # Another flow finished the same name first; keep its file
        _remove_quietly(part_path)
    else:
        try:
            os.replace(part_path, target_path)
        except OSError as e:
            logger.warning("Could not move %s into place: %s", part_path, e)
            _remove_quietly(part_path)
            return False

    if not os.path.exists(target_path):
        logger.warning("Downloaded file missing after write: %s", target_path)
        return False

    logger.info("Downloaded %s -> %s (%d bytes)", url, target_path, written)
    return True


def save_json(data: Any, path: str) -> str:
    """Atomically write data as JSON to path.

    The snapshot is written to a temporary file in the same directory and
    renamed over the target, so readers never observe a half-written file.

    Returns:
        The written path

    Raises:
        OSError: If the directory or file cannot be written
        TypeError: If data is not JSON-serializable
    """
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(prefix=".tmp_", suffix=".json", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, path)
    except BaseException:
        _remove_quietly(tmp_path)
        raise

    return path


__all__ = [
    "download_file",
    "resolve_target_path",
    "save_json",
]
