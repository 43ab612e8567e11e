"""
Top1000 Ingest Package

Fetches the IYUU Top1000 plaintext feed, parses it into site listings and
publishes the result as a static top1000.json snapshot.
"""

__version__ = "1.0.0"

# Package-level imports for convenience
from .config_manager import ConfigManager
from .feed_fetcher import FeedFetcher
from .feed_parser import FeedParser, parse_feed
from .models import SiteRecord, Snapshot
from .pipeline import IngestionPipeline
from .scheduler import Scheduler
from .site_resolver import SiteResolver
from .snapshot_store import SnapshotStore
from .staleness import StalenessGate

__all__ = [
    'ConfigManager',
    'FeedFetcher',
    'FeedParser',
    'parse_feed',
    'SiteRecord',
    'Snapshot',
    'IngestionPipeline',
    'Scheduler',
    'SiteResolver',
    'SnapshotStore',
    'StalenessGate',
]
