"""Durable ledger of catalog items that have already been acquired.

The store is a single JSON object mapping catalog id -> {title, author,
source}. It is read fully on startup and rewritten in full after every new
record, so an interrupted run never loses what it already fetched and a
re-run skips those ids without touching any provider.

Both the primary scan and the deferred worker write here; every
read-modify-persist sequence runs under one lock.
"""
from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from api.core.config import DEFAULT_STORE_FILE
from api.model import AcquisitionRecord, PersistenceFailure
from api.utils import save_json

logger = logging.getLogger(__name__)


class RecordStore:
    """Thread-safe, persistent id -> AcquisitionRecord mapping.

    Records are never overwritten: recording an id that is already present
    is a no-op.
    """

    def __init__(self, path: str | Path = DEFAULT_STORE_FILE):
        self._path = Path(path)
        self._lock = threading.RLock()
        self._records: Dict[str, AcquisitionRecord] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> Dict[str, AcquisitionRecord]:
        """Read the store file; an absent file is an empty store.

        Raises:
            PersistenceFailure: If the file exists but cannot be read or parsed
        """
        if not self._path.exists():
            logger.debug("No record store at %s; starting empty", self._path)
            return {}

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceFailure(f"Cannot read record store {self._path}: {e}") from e

        if not isinstance(data, dict):
            raise PersistenceFailure(f"Record store {self._path} is not a JSON object")

        records = {
            str(item_id): AcquisitionRecord.from_dict(str(item_id), value or {})
            for item_id, value in data.items()
        }
        logger.info("Loaded %d acquisition record(s) from %s", len(records), self._path)
        return records

    def _snapshot(self, records: Dict[str, AcquisitionRecord]) -> Dict[str, Dict[str, Any]]:
        return {item_id: record.to_dict() for item_id, record in records.items()}

    def record(self, record: AcquisitionRecord) -> bool:
        """Add a record and persist the full store.

        Returns:
            True if the record was added, False if the id was already present

        Raises:
            PersistenceFailure: If the snapshot could not be written; the
                in-memory store is left unchanged
        """
        with self._lock:
            if record.id in self._records:
                logger.debug("Record for %s already present; not overwriting", record.id)
                return False

            updated = dict(self._records)
            updated[record.id] = record
            try:
                save_json(self._snapshot(updated), str(self._path))
            except (OSError, TypeError) as e:
                logger.error("Failed to persist record store %s: %s", self._path, e)
                raise PersistenceFailure(f"Cannot write record store {self._path}: {e}") from e

            self._records = updated
            logger.debug("Recorded %s (%s) from %s", record.id, record.title, record.source)
            return True

    def get(self, item_id: str) -> Optional[AcquisitionRecord]:
        with self._lock:
            return self._records.get(item_id)

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """Copy of the store as it is persisted."""
        with self._lock:
            return self._snapshot(self._records)

    def __contains__(self, item_id: object) -> bool:
        with self._lock:
            return item_id in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._records))


__all__ = ["RecordStore"]
