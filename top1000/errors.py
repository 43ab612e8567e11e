"""
Exception types for the Top1000 ingestion pipeline.
"""
from typing import Optional


class Top1000Error(Exception):
    """Base exception for all pipeline failures."""


class FetchError(Top1000Error):
    """
    Raised when the upstream feed cannot be retrieved.

    Attributes:
        kind: One of "network", "timeout" or "status"
        status_code: HTTP status code when kind is "status"
    """

    NETWORK = "network"
    TIMEOUT = "timeout"
    STATUS = "status"

    def __init__(self, kind: str, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


class StoreError(Top1000Error):
    """
    Raised when the snapshot document cannot be read or written.

    Attributes:
        kind: One of "missing", "corrupt" or "write"
    """

    MISSING = "missing"
    CORRUPT = "corrupt"
    WRITE = "write"

    def __init__(self, kind: str, message: str):
        super().__init__(message)
        self.kind = kind
