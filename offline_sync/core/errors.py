"""
Exception hierarchy for the offline synchronization engine.

Fatal errors abort a whole batch; fetch and artifact errors are per-item and
only ever logged by the sync engine.
"""

from __future__ import annotations

from typing import Optional


class OfflineSyncError(Exception):
    """Base class for all offline sync errors."""

    def __init__(self, message: str, *, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class FetchError(OfflineSyncError):
    """A single URL could not be retrieved."""


class TransportError(FetchError):
    """Network or transport failure (connection, DNS, timeout, bad URL)."""


class HTTPStatusError(FetchError):
    """The server answered with a non-2xx status."""

    def __init__(self, message: str, *, status_code: int, url: Optional[str] = None) -> None:
        super().__init__(message, url=url)
        self.status_code = status_code


class ContentDecodeError(FetchError):
    """The response body could not be decoded as text."""


class StorageError(OfflineSyncError):
    """The offline storage directory cannot be created or accessed."""


class IndexLoadError(OfflineSyncError):
    """The index file exists but cannot be read or parsed."""


class IndexPersistError(OfflineSyncError):
    """The index could not be serialized or written."""


class ArtifactWriteError(OfflineSyncError):
    """An offline artifact could not be written."""


class ArtifactReadError(OfflineSyncError):
    """An indexed artifact exists but could not be read back."""


class SyncInProgressError(OfflineSyncError):
    """Another sync run already owns this storage directory."""


class ConfigError(OfflineSyncError):
    """A settings file is malformed or holds invalid values."""


__all__ = [
    "OfflineSyncError",
    "FetchError",
    "TransportError",
    "HTTPStatusError",
    "ContentDecodeError",
    "StorageError",
    "IndexLoadError",
    "IndexPersistError",
    "ArtifactWriteError",
    "ArtifactReadError",
    "SyncInProgressError",
    "ConfigError",
]
