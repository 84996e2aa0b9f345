"""Main package for ShelfFetch.

This package contains:
- downloader: CLI entry point
- catalog: Library export loading and shelf filtering
- pipeline: Primary scan with the fallback search chain
- deferred_queue: Queue shared by the scan and the deferred worker
- deferred_worker: Background drain against the secondary provider
- record_store: Persistent ledger of acquired items
- report: Per-flow outcome reports
"""

__all__ = [
    "catalog",
    "pipeline",
    "deferred_queue",
    "deferred_worker",
    "record_store",
    "report",
    "downloader",
]
