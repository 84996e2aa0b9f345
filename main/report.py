"""Per-item outcome log for the primary scan and the deferred worker."""
from __future__ import annotations

import logging
import threading
from collections import Counter
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

OUTCOME_OK = "ok"
OUTCOME_ALREADY_PRESENT = "already present"
OUTCOME_FAILED_DOWNLOAD = "failed to download"
OUTCOME_NOT_FOUND = "not found"
OUTCOME_SCHEDULED = "scheduled"
OUTCOME_ERROR = "error"

_SUCCESS_OUTCOMES = (OUTCOME_OK, OUTCOME_ALREADY_PRESENT)


@dataclass(frozen=True)
class ReportEntry:
    title: str
    outcome: str
    source: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome in _SUCCESS_OUTCOMES

    @property
    def marker(self) -> str:
        if self.succeeded:
            return "✅"
        if self.outcome == OUTCOME_SCHEDULED:
            return "🕐"
        return "🛑"


class AcquisitionReport:
    """Thread-safe list of report entries for one flow."""

    def __init__(self, name: str):
        self.name = name
        self._entries: List[ReportEntry] = []
        self._lock = threading.Lock()

    def add(self, title: str, outcome: str, source: Optional[str] = None) -> ReportEntry:
        entry = ReportEntry(title=title, outcome=outcome, source=source)
        with self._lock:
            self._entries.append(entry)
        return entry

    def entries(self) -> List[ReportEntry]:
        with self._lock:
            return list(self._entries)

    def counts(self) -> Dict[str, int]:
        with self._lock:
            return dict(Counter(e.outcome for e in self._entries))

    def emit(self, logger: logging.Logger) -> None:
        """Log one line per entry followed by a summary line."""
        entries = self.entries()
        logger.info("%s:", self.name)
        for entry in entries:
            logger.info("%s %s: %s", entry.marker, entry.title, entry.outcome)
        succeeded = sum(1 for e in entries if e.succeeded)
        logger.info("%s: %d of %d item(s) acquired", self.name, succeeded, len(entries))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "entries": [asdict(e) for e in self.entries()],
            "counts": self.counts(),
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = [
    "AcquisitionReport",
    "ReportEntry",
    "OUTCOME_OK",
    "OUTCOME_ALREADY_PRESENT",
    "OUTCOME_FAILED_DOWNLOAD",
    "OUTCOME_NOT_FOUND",
    "OUTCOME_SCHEDULED",
    "OUTCOME_ERROR",
]
