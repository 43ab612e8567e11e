"""
Unit tests for the staleness gate.
"""

import unittest
import tempfile
import shutil
import os
import sys
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytz

# Add project root to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from top1000.models import SiteRecord, Snapshot
from top1000.snapshot_store import SnapshotStore
from top1000.staleness import StalenessGate


NOW = datetime(2025, 3, 10, 12, 0, tzinfo=pytz.utc)
SHANGHAI = pytz.timezone("Asia/Shanghai")


def feed_time(age: timedelta) -> str:
    """Format NOW - age the way the feed header does (Shanghai local time)."""
    return (NOW - age).astimezone(SHANGHAI).strftime("%Y-%m-%d %H:%M:%S")


def make_snapshot(time: str) -> Snapshot:
    return Snapshot(time=time, items=[SiteRecord("A", "1", "1", "1GB", 1)], site_names=["A"])


class TestStalenessGate(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures."""
        self.test_dir = tempfile.mkdtemp()
        self.store = SnapshotStore(base_dir=self.test_dir)
        self.pipeline = MagicMock()
        self.pipeline.run.return_value = {"success": True}
        self.gate = StalenessGate(self.store, self.pipeline, clock=lambda: NOW)

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def test_snapshot_older_than_threshold_triggers_run(self):
        """Test a 25 hour old snapshot is refreshed."""
        self.store.write(make_snapshot(feed_time(timedelta(hours=25))))

        self.assertTrue(self.gate.ensure_fresh())
        self.pipeline.run.assert_called_once()

    def test_snapshot_within_threshold_is_left_alone(self):
        """Test a 23 hour old snapshot is not refreshed."""
        self.store.write(make_snapshot(feed_time(timedelta(hours=23))))

        self.assertFalse(self.gate.ensure_fresh())
        self.pipeline.run.assert_not_called()

    def test_missing_snapshot_triggers_run(self):
        """Test a missing document counts as stale."""
        self.assertTrue(self.gate.ensure_fresh())
        self.pipeline.run.assert_called_once()

    def test_corrupt_snapshot_triggers_run(self):
        """Test an unreadable document counts as stale."""
        with open(self.store.path, 'w', encoding='utf-8') as f:
            f.write("not json")

        self.assertTrue(self.gate.ensure_fresh())
        self.pipeline.run.assert_called_once()

    def test_unparsable_time_is_stale(self):
        """Test a snapshot whose time cannot be parsed is refreshed."""
        self.assertTrue(self.gate.is_stale(make_snapshot("sometime yesterday-ish"), NOW))

    def test_time_without_date_is_stale(self):
        """Test a clock time alone is not completed with today's date."""
        # Read as today this would be 30 minutes in the future
        self.assertTrue(self.gate.is_stale(make_snapshot("20:30"), NOW))

    def test_naive_time_uses_source_timezone(self):
        """Test timestamps without offset are read in the source timezone."""
        # 20:30 in Shanghai is 12:30 UTC, 30 minutes after NOW: not stale
        self.assertFalse(self.gate.is_stale(make_snapshot("2025-03-10 20:30"), NOW))

        utc_gate = StalenessGate(self.store, self.pipeline, source_timezone="UTC", clock=lambda: NOW)
        # Same wall time read as UTC is in the future as well
        self.assertFalse(utc_gate.is_stale(make_snapshot("2025-03-10 20:30"), NOW))
        # 2025-03-09 11:00 UTC is 25 hours old
        self.assertTrue(utc_gate.is_stale(make_snapshot("2025-03-09 11:00"), NOW))

    def test_custom_max_age(self):
        """Test the threshold is configurable."""
        gate = StalenessGate(self.store, self.pipeline, max_age=timedelta(hours=1), clock=lambda: NOW)

        self.assertTrue(gate.is_stale(make_snapshot(feed_time(timedelta(hours=2))), NOW))
        self.assertFalse(gate.is_stale(make_snapshot(feed_time(timedelta(minutes=30))), NOW))

    def test_failed_refresh_still_reports_triggered(self):
        """Test a failed run is reported as triggered and does not raise."""
        self.pipeline.run.return_value = {"success": False, "error": "boom"}

        self.assertTrue(self.gate.ensure_fresh())


if __name__ == '__main__':
    unittest.main()
