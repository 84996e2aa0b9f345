"""CLI entry point for ShelfFetch.

Reads a library export, then runs two flows side by side:
- the primary scan over pending catalog items (main thread)
- the deferred worker draining unmatched items against the secondary
  provider (background thread)

The run ends once the scan has finished and the deferred queue is empty.
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

# Ensure parent directory is in path for direct script execution
if __package__ is None or __package__ == "":
    sys.path.append(str(Path(__file__).resolve().parents[1]))

from api.core.config import get_config, get_paths_config, get_shelf_marker
from api.model import PersistenceFailure
from api.providers import PRIMARY_PROVIDER, SECONDARY_PROVIDER, get_provider
from main.catalog import iter_catalog_items, load_catalog, select_pending
from main.deferred_queue import DeferredQueue
from main.deferred_worker import DeferredQueueWorker
from main.pipeline import PrimaryScanController
from main.record_store import RecordStore

logger = logging.getLogger(__name__)


def create_cli_parser() -> argparse.ArgumentParser:
    """Create argument parser for the CLI.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        description="ShelfFetch - download the books on a reading-list shelf",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Fetch everything on the to-read shelf of a Goodreads export
  python -m main.downloader goodreads_library_export.csv

  # Different shelf and download directory
  python -m main.downloader export.csv --shelf wishlist --output_dir books
        """
    )

    parser.add_argument(
        "csv_file",
        nargs="?",
        default="data.csv",
        help="Path to the library export CSV (default: data.csv)."
    )

    parser.add_argument(
        "--output_dir",
        default=None,
        help="Directory to save downloaded books (default from config, else 'out')."
    )

    parser.add_argument(
        "--store",
        default=None,
        help="Record store file (default from config, else '.store.json')."
    )

    parser.add_argument(
        "--shelf",
        default=None,
        help="Only process books on this shelf (default from config, else 'to-read')."
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level"
    )

    parser.add_argument(
        "--config",
        default="config.json",
        help="Path to JSON config file."
    )

    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    # Reduce noisy retry logs from urllib3
    logging.getLogger("urllib3").setLevel(logging.ERROR)
    logging.getLogger("urllib3.connectionpool").setLevel(logging.ERROR)


def run(args: argparse.Namespace) -> int:
    """Run both flows to completion.

    Returns:
        Process exit code
    """
    os.environ["SHELFFETCH_CONFIG_PATH"] = args.config
    get_config(force_reload=True)

    paths = get_paths_config()
    output_dir = args.output_dir or paths["output_dir"]
    store_file = args.store or paths["store_file"]
    shelf = args.shelf or get_shelf_marker()

    try:
        catalog = load_catalog(args.csv_file)
    except (FileNotFoundError, ValueError) as e:
        logger.error("Cannot load catalog: %s", e)
        return 1

    try:
        store = RecordStore(store_file)
    except PersistenceFailure as e:
        logger.error("%s", e)
        return 1

    os.makedirs(output_dir, exist_ok=True)
    pending = select_pending(iter_catalog_items(catalog), store, shelf)
    logger.info(
        "Starting ShelfFetch. %d book(s) on shelf '%s' to fetch; output directory: %s",
        len(pending), shelf, output_dir,
    )

    queue = DeferredQueue()
    worker = DeferredQueueWorker(get_provider(SECONDARY_PROVIDER), store, queue, output_dir)
    controller = PrimaryScanController(get_provider(PRIMARY_PROVIDER), store, queue, output_dir)

    worker.start()
    try:
        controller.run(pending, worker_alive=worker.is_running)
        worker.join()
    except PersistenceFailure as e:
        logger.error("Stopping: %s", e)
        worker.stop()
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted; stopping deferred worker")
        worker.stop()
        raise

    if worker.error is not None:
        logger.error("Deferred worker failed: %s", worker.error)
        return 1

    logger.info("ShelfFetch finished. %d book(s) recorded in %s", len(store), store.path)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Console entry point."""
    args = create_cli_parser().parse_args(argv)
    configure_logging(args.log_level)
    try:
        code = run(args)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        sys.exit(0)
    except Exception as e:
        logging.exception("Unexpected error: %s", e)
        print(f"Error: {e}")
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
