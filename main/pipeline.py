"""Primary scan: search, download and record each pending catalog item.

Each item is fully resolved before the next one starts. The primary provider
is tried with a fixed chain of search strategies, stopping at the first that
yields a download-eligible candidate:

1. ISBN (identifier search, format preference only)
2. ISBN-13 (identifier search, format preference only)
3. "Title Author" (free text, title match + format preference)
4. "Title" (free text, title match + format preference)
5. "Title <translated author>" (free text, title match + format preference)

Identifier searches are assumed precise, so their results skip the title
similarity filter. Items no strategy matches are handed to the deferred
queue for the secondary provider; the scan never waits on them until the
whole catalog has been processed.
"""
from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from api.client import ProviderClient
from api.core.config import get_deferred_config
from api.matching import best_match, pick_format
from api.model import (
    AcquisitionRecord,
    CatalogItem,
    Candidate,
    DeferredRequest,
    PersistenceFailure,
    ProviderUnavailable,
    SearchField,
)
from api.translate_api import translate
from api.utils import resolve_target_path
from main.deferred_queue import DeferredQueue
from main.record_store import RecordStore
from main.report import (
    OUTCOME_ALREADY_PRESENT,
    OUTCOME_ERROR,
    OUTCOME_FAILED_DOWNLOAD,
    OUTCOME_OK,
    OUTCOME_SCHEDULED,
    AcquisitionReport,
)

logger = logging.getLogger(__name__)

Translator = Callable[[str], str]


@dataclass(frozen=True)
class SearchStrategy:
    """One step of the fallback chain."""

    label: str
    field: SearchField
    build_query: Callable[[CatalogItem, Translator], str]
    title_filter: bool


def _join(*parts: str) -> str:
    return " ".join(p for p in parts if p)


SEARCH_STRATEGIES: List[SearchStrategy] = [
    SearchStrategy("ISBN", SearchField.IDENTIFIER, lambda item, _tr: item.isbn, False),
    SearchStrategy("ISBN13", SearchField.IDENTIFIER, lambda item, _tr: item.isbn13, False),
    SearchStrategy(
        "Title + Author", SearchField.FREE_TEXT,
        lambda item, _tr: _join(item.title, item.author), True,
    ),
    SearchStrategy("Title", SearchField.FREE_TEXT, lambda item, _tr: item.title, True),
    SearchStrategy(
        "Title + Author translated", SearchField.FREE_TEXT,
        lambda item, tr: _join(item.title, tr(item.author) if item.author else ""), True,
    ),
]


def _safe_translate(translator: Translator) -> Translator:
    """Wrap translator so any failure degrades to the untranslated text."""
    def _translate(text: str) -> str:
        try:
            return translator(text) or text
        except Exception as e:
            logger.debug("Translation of %r failed: %s", text, e)
            return text
    return _translate


class PrimaryScanController:
    """Sequential scan of the catalog against the primary provider.

    Args:
        provider: Primary provider client
        store: Shared record store
        queue: Shared deferred queue; receives unmatched items
        output_dir: Download directory
        report: Report for this flow (created if omitted)
        translator: Author-name translator for the last strategy
        strategies: Fallback chain (defaults to SEARCH_STRATEGIES)
        drain_poll_s: Interval for polling the queue after the scan
        sleep: Sleep function used while waiting for the queue to drain
    """

    def __init__(
        self,
        provider: ProviderClient,
        store: RecordStore,
        queue: DeferredQueue,
        output_dir: str,
        report: Optional[AcquisitionReport] = None,
        translator: Translator = translate,
        strategies: Optional[List[SearchStrategy]] = None,
        drain_poll_s: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.provider = provider
        self.store = store
        self.queue = queue
        self.output_dir = output_dir
        self.report = report or AcquisitionReport(f"{provider.name} checks")
        self.translator = _safe_translate(translator)
        self.strategies = list(strategies) if strategies is not None else list(SEARCH_STRATEGIES)
        if drain_poll_s is None:
            drain_poll_s = get_deferred_config()["drain_poll_s"]
        self.drain_poll_s = float(drain_poll_s)
        self._sleep = sleep

    def find_match(self, item: CatalogItem) -> Optional[Candidate]:
        """Run the fallback chain; return the first download-eligible candidate."""
        for strategy in self.strategies:
            query = strategy.build_query(item, self.translator)
            if not query or not query.strip():
                logger.debug("'%s': no query for strategy %s; skipping", item.title, strategy.label)
                continue

            logger.info("'%s': trying by %s", item.title, strategy.label)
            try:
                candidates = self.provider.search(query, strategy.field)
            except ProviderUnavailable as e:
                logger.warning("'%s': %s search unavailable: %s", item.title, strategy.label, e)
                continue

            if strategy.title_filter:
                chosen = best_match(item.title, candidates)
            else:
                chosen = pick_format(candidates)

            if chosen is not None:
                logger.info(
                    "'%s': matched '%s' (%s) by %s",
                    item.title, chosen.title, chosen.format, strategy.label,
                )
                return chosen

        return None

    def download(self, item: CatalogItem, candidate: Candidate) -> str:
        """Resolve, download and record a matched candidate; return the outcome."""
        locator = self.provider.resolve_download_link(candidate)
        if not locator:
            logger.warning("'%s': could not resolve a download link", item.title)
            self.report.add(item.title, OUTCOME_FAILED_DOWNLOAD, self.provider.name)
            return OUTCOME_FAILED_DOWNLOAD

        already_present = os.path.exists(resolve_target_path(locator, self.output_dir))
        if not self.provider.download(locator, self.output_dir):
            logger.warning("'%s': download failed", item.title)
            self.report.add(item.title, OUTCOME_FAILED_DOWNLOAD, self.provider.name)
            return OUTCOME_FAILED_DOWNLOAD

        # A file already on disk still gets its record; the store is the ledger
        self.store.record(AcquisitionRecord(
            id=item.id, title=item.title, author=item.author, source=self.provider.name,
        ))
        outcome = OUTCOME_ALREADY_PRESENT if already_present else OUTCOME_OK
        self.report.add(item.title, outcome, self.provider.name)
        return outcome

    def defer(self, item: CatalogItem) -> str:
        self.queue.push(DeferredRequest.from_item(item))
        logger.info("'%s': scheduled check on the secondary provider", item.title)
        self.report.add(item.title, OUTCOME_SCHEDULED)
        return OUTCOME_SCHEDULED

    def process_item(self, item: CatalogItem) -> Optional[str]:
        """Acquire or defer one item.

        Returns:
            The outcome, or None if the item was already recorded

        Raises:
            PersistenceFailure: If the record store cannot be written
        """
        if item.id in self.store:
            logger.debug("'%s': already acquired; skipping", item.title)
            return None

        try:
            candidate = self.find_match(item)
            if candidate is None:
                return self.defer(item)
            return self.download(item, candidate)
        except PersistenceFailure:
            raise
        except Exception as e:
            logger.exception("'%s': unexpected error: %s", item.title, e)
            self.report.add(item.title, OUTCOME_ERROR)
            return OUTCOME_ERROR

    def wait_for_drain(self, worker_alive: Callable[[], bool] = lambda: True) -> None:
        """Block until the deferred queue is empty or the worker has stopped."""
        while len(self.queue) > 0 and worker_alive():
            logger.info("Waiting for deferred checks to finish: %d request(s)", len(self.queue))
            self._sleep(self.drain_poll_s)

    def run(
        self,
        items: Iterable[CatalogItem],
        worker_alive: Callable[[], bool] = lambda: True,
    ) -> AcquisitionReport:
        """Process every item, signal completion, then wait for the queue to drain.

        Args:
            items: Pending catalog items, in order
            worker_alive: Reports whether the deferred worker is still running

        Returns:
            The scan report

        Raises:
            PersistenceFailure: If the record store cannot be written
        """
        try:
            for item in items:
                self.process_item(item)
        finally:
            self.queue.mark_finished()

        self.report.emit(logger)
        self.wait_for_drain(worker_alive)
        return self.report


__all__ = ["PrimaryScanController", "SearchStrategy", "SEARCH_STRATEGIES"]
