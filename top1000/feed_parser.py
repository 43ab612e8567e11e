"""
Feed Parser module for processing the Top1000 plaintext feed.
Extracts site listings from the raw text into a structured Snapshot.
"""
import logging
import re
from typing import List, Optional

from top1000.models import SiteRecord, Snapshot
from top1000.utils.helpers import extract_field_value, split_lines
from top1000.utils.logging_utils import log_parse_results

logger = logging.getLogger(__name__)

DEFAULT_LINES_PER_GROUP = 3

HEADER_LINE_INDEX = 0
DATA_START_LINE = 2
TIME_PREFIX = "create time "
TIME_SUFFIX = " by "

SITE_PATTERN = re.compile(r"站名：(.*?) 【ID：(\d+)】")


class FeedParser:
    """
    Parses the raw feed into a Snapshot.

    Each record occupies ``lines_per_group`` consecutive lines: the site
    line first, the duplication line second and the size line last.
    Groups whose first line does not match the site pattern are skipped.
    """

    def __init__(self, lines_per_group: int = DEFAULT_LINES_PER_GROUP):
        """
        Initialize the feed parser.

        Args:
            lines_per_group: Number of lines making up one record

        Raises:
            ValueError: If lines_per_group is smaller than 3
        """
        if lines_per_group < 3:
            raise ValueError(f"lines_per_group must be at least 3, got {lines_per_group}")

        self.lines_per_group = lines_per_group
        logger.debug(f"FeedParser initialized with {lines_per_group} lines per group")

    def parse(self, raw: str) -> Snapshot:
        """
        Parse raw feed text into a Snapshot.

        Args:
            raw: Feed body as returned by the upstream endpoint

        Returns:
            Snapshot with the matched records and skip statistics
        """
        lines = split_lines(raw)

        header = lines[HEADER_LINE_INDEX] if lines else ""
        data_lines = lines[DATA_START_LINE:]

        # A trailing newline would otherwise form a spurious partial group
        while data_lines and not data_lines[-1].strip():
            data_lines.pop()

        items: List[SiteRecord] = []
        site_names: List[str] = []
        seen_names = set()
        skipped = 0

        for start in range(0, len(data_lines), self.lines_per_group):
            group = data_lines[start:start + self.lines_per_group]

            record = self._parse_group(group, len(items) + 1)
            if record is None:
                skipped += 1
                continue

            items.append(record)
            if record.site_name not in seen_names:
                seen_names.add(record.site_name)
                site_names.append(record.site_name)

        leftover = len(data_lines) % self.lines_per_group
        snapshot = Snapshot(
            time=extract_time(header),
            items=items,
            site_names=site_names,
            skipped_groups=skipped,
            leftover_lines=leftover,
        )

        log_parse_results(logger, len(items), skipped, leftover)
        return snapshot

    def _parse_group(self, group: List[str], ordinal_id: int) -> Optional[SiteRecord]:
        """
        Parse a single record group.

        Args:
            group: Lines of the group; may be shorter than lines_per_group
            ordinal_id: Id to assign if the group matches

        Returns:
            SiteRecord, or None if the site line does not match
        """
        match = SITE_PATTERN.search(group[0])
        if not match or not match.group(1):
            logger.debug(f"Skipping group with unrecognized site line: {group[0]!r}")
            return None

        duplication_line = group[1] if len(group) > 1 else None
        size_line = group[self.lines_per_group - 1] if len(group) == self.lines_per_group else None

        return SiteRecord(
            site_name=match.group(1),
            site_id=match.group(2),
            duplication=extract_field_value(duplication_line),
            size=extract_field_value(size_line),
            ordinal_id=ordinal_id,
        )


def extract_time(header: str) -> str:
    """
    Extract the creation timestamp from the feed header line.

    "create time 2025-01-01 00:00 by http://api.iyuu.cn/ptgen/" becomes
    "2025-01-01 00:00". A header without the prefix or suffix is returned
    with only the parts that are present removed.
    """
    if header.startswith(TIME_PREFIX):
        header = header[len(TIME_PREFIX):]

    idx = header.find(TIME_SUFFIX)
    if idx != -1:
        header = header[:idx]

    return header


def parse_feed(raw: str, lines_per_group: int = DEFAULT_LINES_PER_GROUP) -> Snapshot:
    """Parse raw feed text with a one-off FeedParser."""
    return FeedParser(lines_per_group).parse(raw)
