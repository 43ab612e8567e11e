"""
Snapshot Store module for persisting the parsed feed as top1000.json.
The same file is served to clients as a static asset.
"""
import json
import logging
import os
import tempfile
from typing import Optional

from top1000.errors import StoreError
from top1000.models import Snapshot

logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT_FILE = 'top1000.json'
# Held by whichever process is currently ingesting into this directory
LOCK_FILE = '.top1000.lock'

# Readable by the static file server
SNAPSHOT_FILE_MODE = 0o644


class SnapshotStore:
    """
    Reads and atomically replaces the snapshot document.
    """

    def __init__(self, base_dir: str = 'web-dist', filename: str = DEFAULT_SNAPSHOT_FILE):
        """
        Initialize the snapshot store.

        Args:
            base_dir: Directory holding the snapshot (the static asset root)
            filename: Snapshot file name
        """
        self.base_dir = base_dir
        self.path = os.path.join(base_dir, filename)
        self.lock_path = os.path.join(base_dir, LOCK_FILE)

        logger.debug(f"SnapshotStore initialized with path: {self.path}")

    def exists(self) -> bool:
        """Return True if a snapshot document is present."""
        return os.path.isfile(self.path)

    def read(self) -> Snapshot:
        """
        Load the current snapshot.

        Returns:
            Stored Snapshot

        Raises:
            StoreError: "missing" if there is no document, "corrupt" if it
                cannot be decoded into a Snapshot
        """
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise StoreError(StoreError.MISSING, f"No snapshot at {self.path}") from e
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise StoreError(StoreError.CORRUPT, f"Invalid JSON in {self.path}: {e}") from e
        except OSError as e:
            raise StoreError(StoreError.CORRUPT, f"Error reading {self.path}: {e}") from e

        try:
            snapshot = Snapshot.from_dict(data)
        except ValueError as e:
            raise StoreError(StoreError.CORRUPT, f"Unexpected snapshot layout in {self.path}: {e}") from e

        logger.debug(f"Loaded snapshot with {len(snapshot.items)} records from {self.path}")
        return snapshot

    def write(self, snapshot: Snapshot) -> None:
        """
        Replace the stored snapshot.

        The document is written to a temporary file in the same directory
        and renamed over the target, so readers see either the old or the
        new document and never a partial one.

        Args:
            snapshot: Snapshot to persist

        Raises:
            StoreError: "write" if the document could not be written; the
                previous document is left in place
        """
        tmp_path: Optional[str] = None

        try:
            os.makedirs(self.base_dir, exist_ok=True)

            fd, tmp_path = tempfile.mkstemp(dir=self.base_dir, prefix='.top1000-', suffix='.tmp')
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(snapshot.to_dict(), f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())

            os.chmod(tmp_path, SNAPSHOT_FILE_MODE)
            os.replace(tmp_path, self.path)
            tmp_path = None

        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error saving snapshot to {self.path}: {e}")
            raise StoreError(StoreError.WRITE, f"Failed to write snapshot to {self.path}: {e}") from e

        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError as e:
                    logger.warning(f"Could not remove temporary file {tmp_path}: {e}")

        logger.info(f"Saved snapshot with {len(snapshot.items)} records to {self.path}")
