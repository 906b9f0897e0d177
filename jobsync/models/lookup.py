"""Outcome type for best-effort external lookups."""

from __future__ import annotations

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class LookupStatus(str, Enum):
    OK = "ok"  # call succeeded and produced a value
    EMPTY = "empty"  # call succeeded, nothing usable came back
    SKIPPED = "skipped"  # no credential or no input; nothing was sent
    FAILED = "failed"  # network, status or payload error


class LookupResult(BaseModel, Generic[T]):
    """Result of a search, enrichment or classification call.

    Callers that only need the value read ``.value``; the status keeps the
    reason a value is missing visible in logs and tests.
    """

    status: LookupStatus
    value: T | None = None
    error: str | None = None

    @classmethod
    def ok(cls, value: T) -> "LookupResult[T]":
        return cls(status=LookupStatus.OK, value=value)

    @classmethod
    def empty(cls) -> "LookupResult[T]":
        return cls(status=LookupStatus.EMPTY)

    @classmethod
    def skipped(cls, reason: str | None = None) -> "LookupResult[T]":
        return cls(status=LookupStatus.SKIPPED, error=reason)

    @classmethod
    def failed(cls, error: str) -> "LookupResult[T]":
        return cls(status=LookupStatus.FAILED, error=error)
