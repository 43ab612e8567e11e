"""
Staleness Gate: refresh the snapshot lazily when a consumer reads it.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

import pytz

from top1000.errors import StoreError
from top1000.models import Snapshot
from top1000.pipeline import IngestionPipeline
from top1000.snapshot_store import SnapshotStore
from top1000.utils.helpers import parse_feed_time
from top1000.utils.logging_utils import log_snapshot_age

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = timedelta(hours=24)


def _utc_now() -> datetime:
    return datetime.now(pytz.utc)


class StalenessGate:
    """
    Decides from the stored snapshot's embedded time whether a refresh is due.
    """

    def __init__(self, store: SnapshotStore, pipeline: IngestionPipeline,
                 max_age: timedelta = DEFAULT_MAX_AGE, source_timezone: str = "Asia/Shanghai",
                 clock: Callable[[], datetime] = _utc_now):
        """
        Initialize the staleness gate.

        Args:
            store: Snapshot store to inspect
            pipeline: Pipeline to run when the snapshot is stale
            max_age: Age beyond which the snapshot is stale
            source_timezone: Timezone the feed's timestamps are written in
            clock: Returns the current aware datetime
        """
        self.store = store
        self.pipeline = pipeline
        self.max_age = max_age
        self.source_timezone = source_timezone
        self.clock = clock

    def is_stale(self, snapshot: Snapshot, now: Optional[datetime] = None) -> bool:
        """
        Check whether a snapshot is older than the threshold.

        An unparsable timestamp counts as stale.

        Args:
            snapshot: Snapshot to check
            now: Reference time, defaults to the gate's clock

        Returns:
            True if the snapshot should be refreshed
        """
        now = now or self.clock()
        snapshot_time = parse_feed_time(snapshot.time, self.source_timezone)

        if snapshot_time is None:
            log_snapshot_age(logger, snapshot.time, None, True, self.max_age)
            return True

        age = now - snapshot_time
        stale = age > self.max_age
        log_snapshot_age(logger, snapshot.time, age, stale, self.max_age)
        return stale

    def needs_refresh(self) -> bool:
        """Return True if the stored snapshot is missing, unreadable or stale."""
        try:
            snapshot = self.store.read()
        except StoreError as e:
            logger.warning(f"Snapshot unavailable ({e.kind}), refresh required: {e}")
            return True

        return self.is_stale(snapshot)

    def ensure_fresh(self) -> bool:
        """
        Refresh the snapshot synchronously if it is stale.

        Returns:
            True if a pipeline run was triggered, False if the snapshot was fresh
        """
        if not self.needs_refresh():
            return False

        stats: Dict[str, Any] = self.pipeline.run()
        if not stats.get("success"):
            logger.warning("Refresh did not produce a new snapshot; previous snapshot (if any) is still served")
        return True
