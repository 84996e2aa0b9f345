"""Catalog loading for ShelfFetch.

The catalog is a Goodreads-style library export: one row per book, the
first column is the book id, and at least the columns below are present.
ISBNs are often wrapped as spreadsheet formulas (="0345339681") to keep
leading zeros; they are unwrapped here.
"""
from __future__ import annotations

import logging
import os
import re
from typing import Iterable, Iterator, List

import pandas as pd

from api.model import CatalogItem

logger = logging.getLogger(__name__)

ISBN_COL = "ISBN"
ISBN13_COL = "ISBN13"
TITLE_COL = "Title"
AUTHOR_COL = "Author"
SHELVES_COL = "Bookshelves"

REQUIRED_COLUMNS = (ISBN_COL, ISBN13_COL, TITLE_COL, AUTHOR_COL, SHELVES_COL)


def load_catalog(csv_path: str) -> pd.DataFrame:
    """Load the catalog CSV with every cell as a string.

    Args:
        csv_path: Path to the CSV file

    Returns:
        DataFrame with all columns preserved, empty cells as ""

    Raises:
        FileNotFoundError: If CSV file doesn't exist
        ValueError: If required columns are missing
    """
    if not os.path.exists(csv_path):
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    df = pd.read_csv(csv_path, dtype=str, keep_default_na=False, encoding="utf-8")

    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(f"CSV missing required columns: {missing}")

    return df


def clean_isbn(value: str) -> str:
    """Strip ="..." wrapping, quotes and whitespace from an ISBN cell."""
    if value is None:
        return ""
    s = str(value).strip()
    if s.startswith("="):
        s = s[1:]
    return s.strip().strip('"').strip()


def parse_shelves(value: str) -> tuple[str, ...]:
    """Split a shelves cell joined by ';' or ','."""
    if not value:
        return ()
    return tuple(tag.strip() for tag in re.split(r"[;,]", str(value)) if tag.strip())


def iter_catalog_items(df: pd.DataFrame) -> Iterator[CatalogItem]:
    """Yield a CatalogItem per row; the first column is the id."""
    id_col = df.columns[0]
    for row in df.to_dict(orient="records"):
        item_id = str(row.get(id_col, "")).strip()
        if not item_id:
            logger.debug("Skipping catalog row without id: %s", row.get(TITLE_COL))
            continue
        yield CatalogItem(
            id=item_id,
            title=str(row.get(TITLE_COL, "")).strip(),
            author=str(row.get(AUTHOR_COL, "")).strip(),
            isbn=clean_isbn(row.get(ISBN_COL, "")),
            isbn13=clean_isbn(row.get(ISBN13_COL, "")),
            shelves=parse_shelves(row.get(SHELVES_COL, "")),
        )


def select_pending(
    items: Iterable[CatalogItem],
    acquired: object,
    shelf_marker: str,
) -> List[CatalogItem]:
    """Items on the marker shelf whose id is not yet acquired, in catalog order.

    Args:
        items: Catalog items
        acquired: Anything supporting ``in`` for ids (e.g. a RecordStore)
        shelf_marker: Required shelf tag
    """
    pending: List[CatalogItem] = []
    for item in items:
        if not item.on_shelf(shelf_marker):
            continue
        if item.id in acquired:
            logger.debug("Already acquired, skipping: %s", item.title)
            continue
        pending.append(item)
    return pending


__all__ = [
    "load_catalog",
    "clean_isbn",
    "parse_shelves",
    "iter_catalog_items",
    "select_pending",
    "REQUIRED_COLUMNS",
]
