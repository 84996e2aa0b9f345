"""In-memory deferred request queue shared by the scan and the deferred worker.

The primary scan appends requests it could not satisfy; the deferred worker
pops them one at a time. The queue also carries the scan's completion
signal, and ``is_drained`` reads both under the same lock so the worker
never sees "finished" without also seeing a request enqueued just before it.
"""
from __future__ import annotations

import logging
import threading
from typing import List, Optional, Set

from api.model import DeferredRequest

logger = logging.getLogger(__name__)


class DeferredQueue:
    """Thread-safe LIFO of DeferredRequest plus the scan-finished flag.

    Each catalog id is accepted at most once per run.
    """

    def __init__(self):
        self._items: List[DeferredRequest] = []
        self._seen: Set[str] = set()
        self._finished = False
        self._lock = threading.Lock()

    def push(self, request: DeferredRequest) -> bool:
        """Enqueue a request.

        Returns:
            True if enqueued, False if this id was already enqueued this run
        """
        with self._lock:
            if request.id in self._seen:
                logger.debug("Deferred request for %s already queued once; ignoring", request.id)
                return False
            if self._finished:
                logger.warning("Enqueueing '%s' after the scan finished", request.title)
            self._seen.add(request.id)
            self._items.append(request)
            return True

    def pop(self) -> Optional[DeferredRequest]:
        """Remove and return the most recently queued request, or None."""
        with self._lock:
            if not self._items:
                return None
            return self._items.pop()

    def mark_finished(self) -> None:
        """Signal that no more requests are expected from the scan."""
        with self._lock:
            self._finished = True

    @property
    def finished(self) -> bool:
        with self._lock:
            return self._finished

    def is_drained(self) -> bool:
        """True once the scan has finished and nothing is left to process."""
        with self._lock:
            return self._finished and not self._items

    def pending(self) -> List[DeferredRequest]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


__all__ = ["DeferredQueue"]
