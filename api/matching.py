"""Title matching and format preference for candidate selection.

A candidate matches a requested title when both normalize to the same string,
or when their bigram (Dice) similarity exceeds TITLE_SIMILARITY_THRESHOLD.
Both the punctuation set and the threshold are fixed: stores written by one
run are only meaningful to the next if matching behaves identically.

The stripped characters are exactly , - ; — ! ? and the period, taken
literally. Read as a regex class, ",-;" would be a range that also covers
digits, "/" and ":", which would make "Catch-22" and "Catch-23" equal; that
range is not applied.
"""
from collections import Counter
import re
from typing import Iterable, List, Optional

from .model import Candidate

TITLE_SIMILARITY_THRESHOLD = 0.8

# Preferred formats, best first
FORMAT_PRIORITY = ("epub", "mobi", "pdf")

_TITLE_PUNCTUATION = re.compile(r"[,\-;—!?.]")


def normalize_title(text: str) -> str:
    """Lowercase and drop the characters , - ; — ! ? ."""
    if text is None:
        return ""
    return _TITLE_PUNCTUATION.sub("", str(text).lower())


def _bigrams(text: str) -> Counter:
    return Counter(text[i:i + 2] for i in range(len(text) - 1))


def compare_two_strings(first: str, second: str) -> float:
    """Return the Dice coefficient of the two strings' character bigrams.

    Whitespace is ignored and the comparison is case-sensitive. Result is in 0..1.
    """
    a = re.sub(r"\s+", "", first or "")
    b = re.sub(r"\s+", "", second or "")

    if a == b:
        return 1.0
    if len(a) < 2 or len(b) < 2:
        return 0.0

    first_bigrams = _bigrams(a)
    second_bigrams = _bigrams(b)
    # Multiset intersection: a repeated bigram only counts as often as it occurs in both
    intersection = sum((first_bigrams & second_bigrams).values())
    return (2.0 * intersection) / (len(a) + len(b) - 2)


def title_matches(query: str, candidate_title: str) -> bool:
    """True if the candidate title corresponds to the requested one."""
    if normalize_title(query) == normalize_title(candidate_title):
        return True
    return compare_two_strings(query, candidate_title) > TITLE_SIMILARITY_THRESHOLD


def filter_by_title(query: str, candidates: Iterable[Candidate]) -> List[Candidate]:
    """All candidates whose title matches the query, in input order."""
    return [c for c in candidates if title_matches(query, c.title)]


def pick_format(candidates: Iterable[Candidate]) -> Optional[Candidate]:
    """First epub, else first mobi, else first pdf, else None."""
    candidates = list(candidates)
    for fmt in FORMAT_PRIORITY:
        for candidate in candidates:
            if candidate.format == fmt:
                return candidate
    return None


def best_match(query: str, candidates: Iterable[Candidate]) -> Optional[Candidate]:
    return pick_format(filter_by_title(query, candidates))
