"""
Main entry point for the Top1000 ingestion service.
Wires the components together and exposes the command line interface.
"""
import argparse
import json
import logging
import os
import sys
import time
from datetime import timedelta
from json.decoder import JSONDecodeError
from typing import Optional

import requests

from top1000 import __version__
from top1000.config_manager import ConfigManager
from top1000.feed_fetcher import FeedFetcher
from top1000.feed_parser import FeedParser
from top1000.pipeline import IngestionPipeline
from top1000.scheduler import initialize_scheduler
from top1000.site_resolver import SiteResolver
from top1000.snapshot_store import SnapshotStore
from top1000.staleness import StalenessGate
from top1000.utils.logging_utils import setup_logging

logger = logging.getLogger(__name__)


class Top1000App:
    """
    Builds and holds the pipeline components for one process.
    """

    def __init__(self, config_manager: ConfigManager):
        """
        Initialize all components from configuration.

        Args:
            config_manager: Loaded configuration
        """
        self.config_manager = config_manager
        get = config_manager.get_config_value

        self.fetcher = FeedFetcher(
            api_url=get("networking.api_url"),
            timeout=get("networking.timeout_seconds", 10),
            verify_ssl=get("networking.verify_ssl", True),
            proxy_url=get("networking.proxy_url"),
            user_agent=get("networking.user_agent"),
        )
        self.parser = FeedParser(lines_per_group=get("parser.lines_per_group", 3))
        self.store = SnapshotStore(
            base_dir=get("storage.static_dir", "./web-dist"),
            filename=get("storage.snapshot_file", "top1000.json"),
        )
        self.pipeline = IngestionPipeline(self.fetcher, self.parser, self.store)
        self.gate = StalenessGate(
            self.store,
            self.pipeline,
            max_age=timedelta(hours=get("freshness.max_age_hours", 24)),
            source_timezone=get("freshness.source_timezone", "Asia/Shanghai"),
        )

        logger.info("Top1000 components initialized successfully")

    def load_site_resolver(self) -> Optional[SiteResolver]:
        """
        Load the site URL table if a source is configured.

        Returns:
            SiteResolver, or None when no source is configured
        """
        source = self.config_manager.get_config_value("sites.source")
        if not source:
            logger.warning("No site table configured (sites.source)")
            return None

        timeout = self.config_manager.get_config_value("networking.timeout_seconds", 10)
        return SiteResolver.load(source, timeout=timeout, session=self.fetcher.session)


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Top1000 - fetch, parse and publish the IYUU Top1000 feed",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  top1000-ingest --run-now                 # Refresh the snapshot once
  top1000-ingest --schedule                # Refresh at start and then daily
  top1000-ingest --ensure-fresh            # Refresh only if the snapshot is stale
  top1000-ingest --resolve hdsky 12345     # Print the links for a listing
        """
    )
    parser.add_argument(
        "--config-dir",
        default="config",
        help="Path to configuration directory containing settings.json (default: config)"
    )
    parser.add_argument(
        "--run-now",
        action="store_true",
        help="Run the ingestion pipeline immediately"
    )
    parser.add_argument(
        "--schedule",
        action="store_true",
        help="Start the scheduler (runs at start and daily)"
    )
    parser.add_argument(
        "--ensure-fresh",
        action="store_true",
        help="Refresh the snapshot only if it is missing or stale"
    )
    parser.add_argument(
        "--resolve",
        nargs=2,
        metavar=("SITE", "ID"),
        help="Print details/download links for a listing"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Top1000 Ingest v{__version__}"
    )

    return parser, parser.parse_args(argv)


def _settings_path(config_dir: str) -> Optional[str]:
    path = os.path.join(config_dir, 'settings.json')
    return path if os.path.exists(path) else None


def main(argv=None):
    """
    Main entry point for the script.
    """
    parser, args = parse_arguments(argv)

    try:
        config_manager = ConfigManager(_settings_path(args.config_dir))
    except (FileNotFoundError, JSONDecodeError, ValueError, TypeError) as e:
        logging.basicConfig(level=logging.INFO)
        logger.critical(f"Invalid configuration: {e}")
        sys.exit(1)

    log_level = 'DEBUG' if args.debug else config_manager.get_config_value("logging.level", "INFO")
    setup_logging(log_level=log_level, log_dir=config_manager.get_config_value("logging.log_dir", "./logs"))

    if not (args.run_now or args.schedule or args.ensure_fresh or args.resolve):
        logger.warning("No action specified. Use --run-now, --schedule, --ensure-fresh or --resolve")
        parser.print_help()
        return

    try:
        app = Top1000App(config_manager)

        if args.resolve:
            site_name, torrent_id = args.resolve
            resolver = app.load_site_resolver()
            links = resolver.resolve(site_name, torrent_id) if resolver else None
            if links is None:
                logger.error(f"Cannot resolve links for site '{site_name}'")
                sys.exit(1)
            print(json.dumps({"details": links.details_url, "download": links.download_url}, indent=2))

        if args.run_now:
            logger.info("Running immediate ingestion")
            stats = app.pipeline.run()
            if not stats.get("success"):
                sys.exit(1)

        if args.ensure_fresh:
            refreshed = app.gate.ensure_fresh()
            logger.info("Snapshot refreshed" if refreshed else "Snapshot is fresh, nothing to do")

        if args.schedule:
            scheduler = initialize_scheduler(config_manager, app.pipeline.run)
            if scheduler is None:
                logger.error("Failed to initialize scheduler.")
                sys.exit(1)

            scheduler.start()
            if not scheduler.running:
                sys.exit(1)

            logger.info("Scheduler started - Press Ctrl+C to stop")
            try:
                while True:
                    time.sleep(1)
            except KeyboardInterrupt:
                logger.info("Scheduler stopped by user")
            finally:
                scheduler.stop()

    except requests.RequestException as e:
        logger.critical(f"Network error: {e}", exc_info=True)
        sys.exit(1)
    except (OSError, ValueError) as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
