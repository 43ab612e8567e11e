"""
Logging utilities for the Top1000 pipeline.
Contains helper functions for consistent logging across modules.
"""
import logging, os
from datetime import timedelta
from logging.handlers import TimedRotatingFileHandler
from typing import Optional

LOG_FILE_NAME = 'top1000.log'


def log_parse_results(logger: logging.Logger, parsed: int, skipped: int, leftover: int) -> None:
    """
    Log feed parsing results in a consistent format.

    Args:
        logger: Logger instance to use
        parsed: Number of records extracted
        skipped: Number of groups whose site line did not match
        leftover: Number of trailing lines that did not fill a whole group
    """
    logger.info(f"Feed parsed: {parsed} records")

    if skipped > 0:
        logger.warning(f"Skipped {skipped} malformed record groups")

    if leftover > 0:
        logger.warning(f"{leftover} trailing lines did not form a complete group")


def log_snapshot_age(logger: logging.Logger, snapshot_time: str, age: Optional[timedelta],
                     is_stale: bool, max_age: timedelta) -> None:
    """
    Log the age of the stored snapshot against the freshness threshold.

    Args:
        logger: Logger instance to use
        snapshot_time: Timestamp string stored in the snapshot
        age: Computed age, or None when the timestamp could not be parsed
        is_stale: Whether the snapshot is considered stale
        max_age: Freshness threshold
    """
    state = "stale" if is_stale else "fresh"
    age_text = format_duration(age.total_seconds()) if age is not None else "unknown"
    logger.info(f"Snapshot from '{snapshot_time}' is {state} (age {age_text}, threshold {format_duration(max_age.total_seconds())})")


def log_run_summary(logger: logging.Logger, stats: dict) -> None:
    """
    Log an ingestion run summary.

    Args:
        logger: Logger instance to use
        stats: Run statistics dictionary as returned by IngestionPipeline.run
    """
    duration = format_duration(stats.get('duration_seconds', 0.0))

    if stats.get('success'):
        logger.info(f"Ingestion completed in {duration}: {stats.get('items', 0)} records "
                    f"from {stats.get('site_count', 0)} sites ({stats.get('skipped_groups', 0)} skipped), "
                    f"feed time '{stats.get('snapshot_time', '')}'")
    else:
        logger.error(f"Ingestion failed after {duration}: {stats.get('error')}")


def format_duration(seconds: float) -> str:
    """
    Format duration in human-readable format.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string (e.g., "2m 30s", "1h 5m")
    """
    if seconds < 0:
        return "-" + format_duration(-seconds)

    if seconds < 60:
        return f"{seconds:.1f}s"

    minutes = int(seconds // 60)
    remaining_seconds = int(seconds % 60)

    if minutes < 60:
        return f"{minutes}m {remaining_seconds}s"

    hours = int(minutes // 60)
    remaining_minutes = int(minutes % 60)

    return f"{hours}h {remaining_minutes}m"


def setup_logging(log_level: str = "INFO", log_dir: Optional[str] = "logs") -> logging.Logger:
    """
    Configure console and file logging.

    Args:
        log_level: Minimum logging level (e.g., "INFO", "DEBUG")
        log_dir: Directory to store log files, or None for console only

    Returns:
        The configured root logger instance.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
    root_logger.addHandler(console_handler)

    # File handler (daily rotation)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = TimedRotatingFileHandler(os.path.join(log_dir, LOG_FILE_NAME), when='midnight',
                                                interval=1, backupCount=7, encoding='utf-8')
        file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        root_logger.addHandler(file_handler)

    root_logger.info(f"Logging configured to level {log_level.upper()}. Log files in {log_dir}")
    return root_logger
