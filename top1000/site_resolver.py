"""
Site URL resolver.

Maps a (site name, torrent id) pair from the snapshot to the tracker's
details and download pages, using the IYUU site-definition table. The
table is loaded once at startup and is read-only afterwards.
"""
import json
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional

import requests

logger = logging.getLogger(__name__)

ID_PLACEHOLDER = "{}"
# Credentials the client adds itself; they are stripped from download links
DOWNLOAD_CREDENTIAL_PARAMS = ("&passkey={passkey}", "&downhash={downHash}")
HOST_OVERRIDES = {"m-team": "kp.m-team.cc"}


@dataclass(frozen=True)
class SiteLinks:
    details_url: str
    download_url: Optional[str] = None


@dataclass(frozen=True)
class SiteDefinition:
    """URL templates for one tracker."""

    site: str
    base_url: str
    details_page: str
    download_page: str
    is_https: bool

    @property
    def root_url(self) -> str:
        protocol = "https" if self.is_https else "http"
        host = HOST_OVERRIDES.get(self.site, self.base_url)
        return f"{protocol}://{host}"

    def details_url(self, torrent_id: str) -> str:
        return f"{self.root_url}/{self.details_page.replace(ID_PLACEHOLDER, torrent_id)}"

    def download_url(self, torrent_id: str) -> Optional[str]:
        # Only direct download.php links can be built without site credentials
        if "download.php" not in self.download_page:
            return None

        page = self.download_page.replace(ID_PLACEHOLDER, torrent_id)
        for param in DOWNLOAD_CREDENTIAL_PARAMS:
            page = page.replace(param, "")
        return f"{self.root_url}/{page}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SiteDefinition":
        """
        Build a definition from one entry of the site table.

        Raises:
            ValueError: If a required field is missing
        """
        try:
            return cls(
                site=str(data["site"]),
                base_url=str(data["base_url"]),
                details_page=str(data.get("details_page") or ""),
                download_page=str(data.get("download_page") or ""),
                is_https=int(data.get("is_https") or 0) >= 1,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid site definition {data!r}: {e}") from e


class SiteResolver:
    """
    Immutable lookup from site name to URL templates.
    """

    def __init__(self, definitions: Iterable[SiteDefinition]):
        table = {}
        for definition in definitions:
            table[definition.site] = definition
        self._sites: Mapping[str, SiteDefinition] = MappingProxyType(table)

        logger.debug(f"SiteResolver initialized with {len(self._sites)} sites")

    @property
    def sites(self) -> Mapping[str, SiteDefinition]:
        """Read-only view of the site table."""
        return self._sites

    def __len__(self) -> int:
        return len(self._sites)

    def __contains__(self, site_name: str) -> bool:
        return site_name in self._sites

    def resolve(self, site_name: str, torrent_id: str) -> Optional[SiteLinks]:
        """
        Build the links for a listing.

        Args:
            site_name: Site name as stored in the snapshot
            torrent_id: Torrent id on that site

        Returns:
            SiteLinks, or None if the site is unknown
        """
        definition = self._sites.get(site_name)
        if definition is None:
            return None

        return SiteLinks(
            details_url=definition.details_url(str(torrent_id)),
            download_url=definition.download_url(str(torrent_id)),
        )

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "SiteResolver":
        """
        Build a resolver from the site-definition document.

        Accepts the IYUU response shape ``{"data": {"sites": [...]}}`` as
        well as a bare ``{"sites": [...]}`` or a plain list. Malformed
        entries are skipped with a warning.
        """
        if isinstance(document, list):
            entries = document
        elif isinstance(document, dict):
            container = document.get("data", document)
            entries = container.get("sites", []) if isinstance(container, dict) else []
        else:
            raise ValueError("Site table must be a JSON object or list")

        definitions = []
        for entry in entries:
            try:
                definitions.append(SiteDefinition.from_dict(entry))
            except ValueError as e:
                logger.warning(f"Skipping site definition: {e}")

        logger.info(f"Loaded {len(definitions)} site definitions")
        return cls(definitions)

    @classmethod
    def load(cls, source: str, timeout: float = 10, session: Optional[requests.Session] = None) -> "SiteResolver":
        """
        Load the site table from a local JSON file or an HTTP(S) URL.

        Args:
            source: File path or URL
            timeout: Request timeout for URLs
            session: Optional session to reuse for the request

        Raises:
            requests.RequestException: If the URL cannot be fetched
            OSError: If the file cannot be read
            ValueError: If the content is not a valid site table
        """
        if source.startswith(("http://", "https://")):
            logger.info(f"Loading site table from {source}")
            response = (session or requests).get(source, timeout=timeout)
            response.raise_for_status()
            document = response.json()
        else:
            logger.info(f"Loading site table from file {source}")
            with open(source, 'r', encoding='utf-8') as f:
                document = json.load(f)

        return cls.from_document(document)
