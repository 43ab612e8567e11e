"""
Helper functions for the Top1000 ingestion pipeline.
Contains text normalization, feed field extraction and date handling.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytz
from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

# Full-width colon used by the upstream feed between label and value
FIELD_SEPARATOR = "："

# Two unrelated fill-in dates: any date part missing from a timestamp makes the parses differ
PARTIAL_DATE_DEFAULTS = (datetime(1900, 1, 1), datetime(1904, 2, 2))


def normalize_line_endings(text: str) -> str:
    """
    Convert CRLF and bare CR line endings to LF.

    Args:
        text: Raw text

    Returns:
        Text using only "\\n" as line terminator
    """
    return text.replace("\r\n", "\n").replace("\r", "\n")


def split_lines(text: str) -> List[str]:
    """Normalize line endings and split text into lines."""
    return normalize_line_endings(text).split("\n")


def extract_field_value(line: Optional[str], separator: str = FIELD_SEPARATOR) -> str:
    """
    Extract the value from a "label：value" line.

    Args:
        line: Line to split, may be None when the group is short
        separator: Label/value delimiter

    Returns:
        Trimmed value, or empty string when the line or separator is missing
    """
    if not line:
        return ""

    parts = line.split(separator)
    if len(parts) > 1:
        return parts[1].strip()
    return ""


def parse_feed_time(time_string: str, source_timezone: str = "Asia/Shanghai") -> Optional[datetime]:
    """
    Parse a snapshot timestamp into an aware datetime.

    The upstream feed writes local time without an offset, so naive values
    are localized to the source timezone. A timestamp without a full
    year, month and day is rejected rather than completed from defaults.

    Args:
        time_string: Timestamp as embedded in the feed header
        source_timezone: Timezone name the feed is written in

    Returns:
        Timezone-aware datetime, or None if parsing fails
    """
    if not time_string or not time_string.strip():
        return None

    try:
        parsed, check = [date_parser.parse(time_string, default=default) for default in PARTIAL_DATE_DEFAULTS]
    except (ValueError, OverflowError) as e:
        logger.warning(f"Failed to parse snapshot time '{time_string}': {e}")
        return None

    if parsed != check:
        logger.warning(f"Snapshot time '{time_string}' is missing part of its date")
        return None

    if parsed.tzinfo is None:
        try:
            tz = pytz.timezone(source_timezone)
        except pytz.exceptions.UnknownTimeZoneError:
            logger.warning(f"Unknown source timezone: {source_timezone}, assuming UTC")
            tz = pytz.utc
        parsed = tz.localize(parsed)

    return parsed


def validate_json_structure(data: Dict[str, Any], schema: Dict) -> bool:
    """
    Validate if a dictionary conforms to a simple schema (required keys and basic types).

    Args:
        data: Dictionary to validate
        schema: Schema dictionary with required keys and expected types

    Returns:
        True if data conforms to schema, False otherwise
    """
    if not isinstance(data, dict):
        logger.warning("Validation failed: Data is not a dictionary")
        return False

    for key, expected_type in schema.items():
        if key not in data:
            logger.warning(f"Validation failed: Missing required key '{key}'")
            return False
        value = data[key]
        # bool is an int subclass; an ordinal id must be a real integer
        if expected_type is int and isinstance(value, bool):
            logger.warning(f"Validation failed: Key '{key}' has wrong type. Expected int, got bool")
            return False
        if not isinstance(value, expected_type):
            logger.warning(f"Validation failed: Key '{key}' has wrong type. Expected {expected_type}, got {type(value)}")
            return False

    return True


# Expected layout of the published top1000.json document
SITE_RECORD_SCHEMA = {
    'siteName': str,
    'siteid': str,
    'duplication': str,
    'size': str,
    'id': int,  # 1-based ordinal
}

SNAPSHOT_SCHEMA = {
    'time': str,
    'items': list,  # List of dictionaries conforming to SITE_RECORD_SCHEMA
    'siteName': list,  # Distinct site names in first-seen order
}
