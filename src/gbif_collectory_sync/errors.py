"""Error taxonomy shared by the HTTP clients, the mapper and the sync loop."""

from __future__ import annotations

from typing import Optional


class SyncError(Exception):
    """Base exception for everything that can fail while syncing one dataset."""


class NotFoundError(SyncError):
    """Raised when the GBIF registry has no dataset for the requested key."""


class UpstreamError(SyncError):
    """Raised when GBIF or the collectory answers with a non-success status."""

    def __init__(
        self, message: str, status_code: Optional[int] = None, url: Optional[str] = None
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class TransportError(SyncError):
    """Raised on network-level failures, including request timeouts."""


class MalformedInputError(SyncError):
    """Raised when a payload lacks data the mapping cannot do without."""


class DataIntegrityError(SyncError):
    """Raised when more than one collectory resource shares a dataset key."""

    def __init__(self, key: str, matches: int) -> None:
        super().__init__(f"Data resource guid {key} has {matches} entries")
        self.key = key
        self.matches = matches
