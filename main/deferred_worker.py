"""Background worker that drains the deferred queue against the secondary provider.

This module provides a thread that runs alongside the primary scan, popping
one deferred request per cycle and searching the secondary (slower,
throttling) provider by title.

Features:
- Jittered pacing: every cycle waits base delay + uniform jitter, whatever
  the queue length, to keep load on the secondary provider low
- Completion-aware: stops only once the scan has finished AND the queue
  is empty, checked atomically on the queue
- Graceful shutdown: stop() interrupts the wait between cycles
"""
from __future__ import annotations

import logging
import os
import random
import threading
from typing import Optional

from api.client import ProviderClient
from api.core.config import get_deferred_config
from api.core.naming import synthesize_book_filename
from api.matching import filter_by_title
from api.model import AcquisitionRecord, DeferredRequest, PersistenceFailure, ProviderUnavailable, SearchField
from api.utils import resolve_target_path

from .deferred_queue import DeferredQueue
from .record_store import RecordStore
from .report import (
    OUTCOME_ALREADY_PRESENT,
    OUTCOME_ERROR,
    OUTCOME_FAILED_DOWNLOAD,
    OUTCOME_NOT_FOUND,
    OUTCOME_OK,
    AcquisitionReport,
)

logger = logging.getLogger(__name__)


class DeferredQueueWorker:
    """Thread draining the deferred queue.

    Args:
        provider: Secondary provider client
        store: Shared record store
        queue: Shared deferred queue (also carries the scan-finished flag)
        output_dir: Download directory
        report: Report for this flow (created if omitted)
        base_delay_s: Fixed part of the pause between cycles
        jitter_s: Upper bound of the uniform random part of the pause
        rng: Random source for the jitter
    """

    def __init__(
        self,
        provider: ProviderClient,
        store: RecordStore,
        queue: DeferredQueue,
        output_dir: str,
        report: Optional[AcquisitionReport] = None,
        base_delay_s: Optional[float] = None,
        jitter_s: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ):
        cfg = get_deferred_config()
        self.provider = provider
        self.store = store
        self.queue = queue
        self.output_dir = output_dir
        self.report = report or AcquisitionReport(f"{provider.name} checks")
        self.base_delay_s = float(cfg["base_delay_s"] if base_delay_s is None else base_delay_s)
        self.jitter_s = float(cfg["jitter_s"] if jitter_s is None else jitter_s)
        self._rng = rng or random.Random()

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self.error: Optional[BaseException] = None

    def next_delay(self) -> float:
        return self.base_delay_s + self._rng.uniform(0.0, self.jitter_s)

    def start(self) -> bool:
        """Start the worker thread.

        Returns:
            True if started, False if already running
        """
        if self.is_running():
            logger.debug("Deferred worker already running")
            return False

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="DeferredQueueWorker",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "Deferred worker started against %s (delay %.1fs + up to %.1fs jitter)",
            self.provider.name, self.base_delay_s, self.jitter_s,
        )
        return True

    def stop(self, wait: bool = True, timeout: float = 30.0) -> None:
        """Stop the worker without draining the queue.

        A download in progress runs to completion first.
        """
        if not self.is_running():
            return

        logger.info("Stopping deferred worker...")
        self._stop_event.set()
        if wait:
            self.join(timeout)
            if self.is_running():
                logger.warning("Deferred worker did not stop within timeout")

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the worker thread; True once it has exited."""
        if self._thread is not None:
            self._thread.join(timeout)
        return not self.is_running()

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def process(self, request: DeferredRequest) -> str:
        """Search, download and record one deferred request; return the outcome.

        Raises:
            PersistenceFailure: If the record store cannot be written
        """
        logger.info("Deferred check for '%s' on %s", request.title, self.provider.name)
        try:
            candidates = self.provider.search(request.title, SearchField.FREE_TEXT)
        except ProviderUnavailable as e:
            logger.warning("'%s': %s search unavailable: %s", request.title, self.provider.name, e)
            candidates = []

        matches = filter_by_title(request.title, candidates)
        if not matches:
            logger.info("'%s': not found on %s", request.title, self.provider.name)
            self.report.add(request.title, OUTCOME_NOT_FOUND, self.provider.name)
            return OUTCOME_NOT_FOUND

        book = matches[0]
        locator = self.provider.resolve_download_link(book)
        filename = synthesize_book_filename(book.first_author, book.title, book.format)
        if not locator:
            self.report.add(request.title, OUTCOME_FAILED_DOWNLOAD, self.provider.name)
            return OUTCOME_FAILED_DOWNLOAD

        already_present = os.path.exists(resolve_target_path(locator, self.output_dir, filename))
        if not self.provider.download(locator, self.output_dir, filename):
            logger.warning("'%s': download from %s failed", request.title, self.provider.name)
            self.report.add(request.title, OUTCOME_FAILED_DOWNLOAD, self.provider.name)
            return OUTCOME_FAILED_DOWNLOAD

        self.store.record(AcquisitionRecord(
            id=request.id, title=request.title, author=request.author, source=self.provider.name,
        ))
        outcome = OUTCOME_ALREADY_PRESENT if already_present else OUTCOME_OK
        self.report.add(request.title, outcome, self.provider.name)
        return outcome

    def run_cycle(self) -> Optional[str]:
        """Process at most one queued request.

        Returns:
            The outcome, or None if the queue was empty
        """
        request = self.queue.pop()
        if request is None:
            return None

        try:
            return self.process(request)
        except PersistenceFailure:
            self.report.add(request.title, OUTCOME_ERROR, self.provider.name)
            raise
        except Exception as e:
            logger.exception("Error processing deferred request '%s': %s", request.title, e)
            self.report.add(request.title, OUTCOME_ERROR, self.provider.name)
            return OUTCOME_ERROR

    def _run_loop(self) -> None:
        """Main loop (runs in the worker thread)."""
        logger.debug("Deferred worker loop started")

        while not self._stop_event.is_set():
            try:
                self.run_cycle()
            except PersistenceFailure as e:
                logger.error("Deferred worker stopping: %s", e)
                self.error = e
                return

            if self.queue.is_drained():
                self.report.emit(logger)
                logger.debug("Deferred worker loop finished")
                return

            # Event.wait returns True when stop() was called during the pause
            if self._stop_event.wait(self.next_delay()):
                break

        logger.debug("Deferred worker loop stopped with %d request(s) pending", len(self.queue))


__all__ = ["DeferredQueueWorker"]
