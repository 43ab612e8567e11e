"""
Data model for parsed Top1000 feeds.
Field names on the wire follow the published top1000.json document.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List

from top1000.utils.helpers import SITE_RECORD_SCHEMA, SNAPSHOT_SCHEMA, validate_json_structure


@dataclass
class SiteRecord:
    """One successfully parsed listing."""

    site_name: str
    site_id: str
    duplication: str
    size: str
    ordinal_id: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "siteName": self.site_name,
            "siteid": self.site_id,
            "duplication": self.duplication,
            "size": self.size,
            "id": self.ordinal_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SiteRecord":
        """
        Build a record from its serialized form.

        Raises:
            ValueError: If the dictionary does not match the record layout
        """
        if not validate_json_structure(data, SITE_RECORD_SCHEMA):
            raise ValueError(f"Invalid site record: {data!r}")
        return cls(
            site_name=data["siteName"],
            site_id=data["siteid"],
            duplication=data["duplication"],
            size=data["size"],
            ordinal_id=data["id"],
        )


@dataclass
class Snapshot:
    """
    Structured result of parsing one feed.

    ``skipped_groups`` and ``leftover_lines`` describe what the parser dropped.
    They are diagnostic only and never written to disk.
    """

    time: str
    items: List[SiteRecord] = field(default_factory=list)
    site_names: List[str] = field(default_factory=list)
    skipped_groups: int = 0
    leftover_lines: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": self.time,
            "items": [item.to_dict() for item in self.items],
            "siteName": list(self.site_names),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Snapshot":
        """
        Build a snapshot from a deserialized top1000.json document.

        Args:
            data: Parsed JSON document

        Returns:
            Snapshot instance

        Raises:
            ValueError: If the document does not match the snapshot layout
        """
        if not validate_json_structure(data, SNAPSHOT_SCHEMA):
            raise ValueError("Invalid snapshot document")

        items = []
        for entry in data["items"]:
            if not isinstance(entry, dict):
                raise ValueError(f"Invalid site record: {entry!r}")
            items.append(SiteRecord.from_dict(entry))

        site_names = data["siteName"]
        if not all(isinstance(name, str) for name in site_names):
            raise ValueError("siteName must be a list of strings")

        return cls(time=data["time"], items=items, site_names=list(site_names))

    def validate(self) -> List[str]:
        """
        Check that the snapshot is worth publishing.

        Returns:
            List of problems, empty when the snapshot is valid
        """
        errors = []
        if not self.time.strip():
            errors.append("time is empty")
        if not self.items:
            errors.append("no items parsed")
        for item in self.items:
            if item.site_name not in self.site_names:
                errors.append(f"site name '{item.site_name}' missing from siteName")
        return errors
