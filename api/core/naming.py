"""Filename sanitization and naming conventions for ShelfFetch.

Downloaded books keep human-readable names: either the name the mirror
serves them under (last URL path segment, plus the query for
script links) or "<author> - <title>.<ext>".
"""
from __future__ import annotations

import os
import re
from urllib.parse import unquote, urlparse

# Characters rejected by at least one common filesystem
_ILLEGAL_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')

# Extensions that identify a book payload
BOOK_EXTENSIONS = frozenset({".epub", ".mobi", ".pdf", ".fb2", ".djvu", ".azw3"})


def _split_name_and_extension(name: str) -> tuple[str, str]:
    """Split a filename into base name and its final extension.

    Only the last suffix counts: author initials like "J. R. R." are part of
    the base name, not extensions.
    """
    base, ext = os.path.splitext(name)
    # ".epub" alone is a name without a base, not an extension
    if not base:
        return ext, ""
    return base, ext


def sanitize_filename(name: str, max_base_len: int = 150) -> str:
    """Sanitize string for safe filenames while preserving extension.

    - Removes illegal filesystem characters and path separators.
    - Collapses runs of whitespace.
    - Limits the base name length only.

    Args:
        name: Input filename
        max_base_len: Maximum length for the base name (before extension)

    Returns:
        Sanitized filename safe for most filesystems
    """
    if not name:
        return "_untitled_"

    base, ext = _split_name_and_extension(str(name))

    base = _ILLEGAL_CHARS.sub("", base)
    base = re.sub(r"\s+", " ", base).strip(" .")
    ext = _ILLEGAL_CHARS.sub("", ext)

    if not base:
        base = "_untitled_"

    return f"{base[:max_base_len].rstrip()}{ext}"


def filename_from_url(url: str) -> str:
    """Return the local filename for a locator.

    Normally the URL-decoded final path segment. Script locators such as
    ``get.php?md5=<hash>`` name the book only in their query, so unless the
    segment already carries a book extension the decoded query is kept in
    the name and two books never share one file.

    Args:
        url: File locator

    Returns:
        Sanitized filename, "_untitled_" when the URL names nothing
    """
    parsed = urlparse(url or "")
    path = parsed.path.rstrip("/")
    segment = unquote(path.split("/")[-1]) if path else ""
    query = unquote(parsed.query)
    stem, ext = os.path.splitext(segment)
    if query and ext.lower() not in BOOK_EXTENSIONS:
        segment = f"{stem}_{query}" if stem else query
    return sanitize_filename(segment)


def synthesize_book_filename(author: str | None, title: str, ext: str = "epub") -> str:
    """Build "<author> - <title>.<ext>" for providers whose links carry no name.

    Args:
        author: First listed author (may be empty)
        title: Book title
        ext: Extension without the leading dot

    Returns:
        Sanitized filename
    """
    ext = (ext or "").lstrip(".")
    stem = f"{author} - {title}" if author else str(title)
    # "Either/Or" keeps its word boundary once the separator is gone
    stem = stem.replace("/", " ")
    return sanitize_filename(f"{stem}.{ext}" if ext else stem)
