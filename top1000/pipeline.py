"""
Ingestion pipeline: fetch the feed, parse it and publish the snapshot.
"""
import logging
import os
import threading
import time
from concurrent.futures import Future
from typing import Any, Dict, Optional

from filelock import FileLock, Timeout

from top1000.errors import FetchError, StoreError
from top1000.feed_fetcher import FeedFetcher
from top1000.feed_parser import FeedParser
from top1000.snapshot_store import SnapshotStore
from top1000.utils.logging_utils import log_run_summary

logger = logging.getLogger(__name__)

# Upper bound for waiting on a run held by another process
DEFAULT_LOCK_TIMEOUT = 300


class IngestionPipeline:
    """
    Runs Feed Fetcher -> Feed Parser -> Snapshot Store under a single-flight guard.

    At most one run is in flight per snapshot directory. A caller in the
    same process arriving during a run waits for that run and receives its
    result. A caller in another process (e.g. ``--ensure-fresh`` while
    ``--schedule`` is ingesting) is held off by a lock file next to the
    snapshot; it waits for the holder to finish and reports the snapshot
    the holder published instead of fetching again.
    """

    def __init__(self, fetcher: FeedFetcher, parser: FeedParser, store: SnapshotStore,
                 lock_timeout: float = DEFAULT_LOCK_TIMEOUT):
        """
        Initialize the pipeline with its components.

        Args:
            fetcher: Feed fetcher instance
            parser: Feed parser instance
            store: Snapshot store instance
            lock_timeout: Seconds to wait for a run held by another process
        """
        self.fetcher = fetcher
        self.parser = parser
        self.store = store
        self.lock_timeout = lock_timeout

        self._lock = threading.Lock()
        self._in_flight: Optional[Future] = None
        self._file_lock = FileLock(store.lock_path)

    @property
    def is_running(self) -> bool:
        """True while a run started by this process is in progress."""
        with self._lock:
            return self._in_flight is not None

    def run(self) -> Dict[str, Any]:
        """
        Run the pipeline, or join the run already in progress.

        Returns:
            Run statistics: success, items, site_count, skipped_groups,
            snapshot_time, duration_seconds and error
        """
        with self._lock:
            future = self._in_flight
            is_leader = future is None
            if is_leader:
                future = Future()
                self._in_flight = future

        if not is_leader:
            logger.info("Ingestion already in progress, waiting for its result")
            return future.result()

        try:
            stats = self._run_exclusive()
        except Exception as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(stats)
            return stats
        finally:
            with self._lock:
                self._in_flight = None

    def _run_exclusive(self) -> Dict[str, Any]:
        """Execute under the lock file, or wait for the process that holds it."""
        os.makedirs(os.path.dirname(self.store.lock_path) or '.', exist_ok=True)

        try:
            self._file_lock.acquire(timeout=0)
        except Timeout:
            return self._wait_for_other_process()

        try:
            return self._execute()
        finally:
            self._file_lock.release()

    def _wait_for_other_process(self) -> Dict[str, Any]:
        """
        Wait for the ingestion running in another process and report its snapshot.

        Returns:
            Run statistics describing the snapshot on disk after the other
            run finished
        """
        logger.info(f"Ingestion already running in another process, waiting up to {self.lock_timeout}s")
        start_time = time.time()
        stats = _new_stats()

        try:
            with self._file_lock.acquire(timeout=self.lock_timeout):
                pass
        except Timeout:
            stats["error"] = f"Timed out after {self.lock_timeout}s waiting for ingestion in another process"
        else:
            try:
                snapshot = self.store.read()
            except StoreError as e:
                stats["error"] = f"Concurrent ingestion left no readable snapshot ({e.kind}): {e}"
            else:
                stats["success"] = True
                stats["items"] = len(snapshot.items)
                stats["site_count"] = len(snapshot.site_names)
                stats["snapshot_time"] = snapshot.time

        stats["duration_seconds"] = time.time() - start_time
        log_run_summary(logger, stats)
        return stats

    def _execute(self) -> Dict[str, Any]:
        """Perform one run. Only FetchError and StoreError are turned into a failed result."""
        start_time = time.time()
        logger.info("Starting ingestion run")

        stats = _new_stats()

        try:
            raw = self.fetcher.fetch_feed()

            snapshot = self.parser.parse(raw)
            stats["items"] = len(snapshot.items)
            stats["site_count"] = len(snapshot.site_names)
            stats["skipped_groups"] = snapshot.skipped_groups
            stats["snapshot_time"] = snapshot.time

            problems = snapshot.validate()
            if problems:
                stats["error"] = f"Parsed snapshot rejected: {'; '.join(problems)}"
            else:
                self.store.write(snapshot)
                stats["success"] = True

        except FetchError as e:
            stats["error"] = f"Fetch failed ({e.kind}): {e}"
        except StoreError as e:
            stats["error"] = f"Store failed ({e.kind}): {e}"

        stats["duration_seconds"] = time.time() - start_time
        log_run_summary(logger, stats)
        return stats


def _new_stats() -> Dict[str, Any]:
    return {
        "success": False,
        "items": 0,
        "site_count": 0,
        "skipped_groups": 0,
        "snapshot_time": None,
        "duration_seconds": 0.0,
        "error": None,
    }
