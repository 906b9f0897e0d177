"""Fatal errors that abort a sync run."""

from __future__ import annotations

from typing import Any


class SyncError(Exception):
    """Base error for a sync run that cannot complete."""


class ConfigurationError(SyncError):
    """A mandatory credential is missing; raised before any network call."""


class SourceFetchError(SyncError):
    """The ingestion source answered with a non-2xx status or was unreachable."""

    def __init__(self, message: str, status: int | None = None, body: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class PersistenceError(SyncError):
    """The batch upsert into the job store failed."""
