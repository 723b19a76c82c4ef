from __future__ import annotations


class PausewatchError(Exception):
    """Base class for errors raised by pausewatch."""


class ConfigError(PausewatchError):
    """Raised when settings from file or environment fail validation."""


class FetchError(PausewatchError):
    def __init__(self, url: str, *, status: int | None = None, reason: str = "") -> None:
        self.url = url
        self.status = status
        self.reason = reason
        detail = f"HTTP {status}" if status is not None else "transport error"
        message = f"Failed to fetch {url}: {detail}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class StorageError(PausewatchError):
    """Raised when snapshot blobs cannot be read or written."""


class SnapshotError(PausewatchError):
    """Raised on invalid snapshot arena operations."""
