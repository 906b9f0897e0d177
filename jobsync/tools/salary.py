"""Salary normalization across the many shapes the ingestion source emits.

Upstream listings carry salary information in three families of fields:

* flat fields (``salary_min``, ``salary_currency``, ...), possibly numeric strings
* a raw salary object (``salary_raw`` / ``salary`` / ``compensation``) in
  schema.org MonetaryAmount shape: ``{"currency": ..., "value": {"minValue",
  "maxValue", "value", "unitText"}}``
* AI-derived fields (``ai_salary_minvalue``, ``ai_salary_currency``, ...)

Each output field is resolved from an ordered candidate chain; the first
candidate that is not None wins. The chains are plain data so their order can
be asserted directly.
"""

from __future__ import annotations

import json
import logging
import math
import re
from enum import Enum
from typing import Any, Callable, NamedTuple

from pydantic import BaseModel

from jobsync.models.listing import RawListing

logger = logging.getLogger(__name__)

MAX_SALARY_LENGTH = 255


class SalarySource(str, Enum):
    FLAT = "flat"
    NESTED = "nested"
    AI = "ai"


class SalaryCandidate(NamedTuple):
    name: str
    source: SalarySource
    read: Callable[[RawListing], Any]


def _flat(field: str) -> SalaryCandidate:
    return SalaryCandidate(field, SalarySource.FLAT, lambda job: getattr(job, field, None))


def _ai(field: str) -> SalaryCandidate:
    return SalaryCandidate(field, SalarySource.AI, lambda job: getattr(job, field, None))


def _raw_object(job: RawListing) -> dict | None:
    raw = raw_salary(job)
    return raw if isinstance(raw, dict) else None


def _monetary_value(job: RawListing) -> dict | None:
    raw = _raw_object(job)
    value = raw.get("value") if raw else None
    return value if isinstance(value, dict) else None


def _nested(path: str) -> SalaryCandidate:
    """Candidate read from the raw salary object; 'value.minValue' style paths."""
    parts = path.split(".")

    def read(job: RawListing) -> Any:
        if parts[0] == "value":
            node = _monetary_value(job)
            return node.get(parts[1]) if node else None
        node = _raw_object(job)
        return node.get(parts[0]) if node else None

    return SalaryCandidate(f"raw.{path}", SalarySource.NESTED, read)


RAW_SALARY_FIELDS = ("salary_raw", "salary", "compensation")

SALARY_CHAINS: dict[str, tuple[SalaryCandidate, ...]] = {
    "min": (
        _flat("salary_min"),
        _flat("salary_min_derived"),
        _flat("salary_range_min"),
        _flat("salary_from"),
        _nested("value.minValue"),
        _ai("ai_salary_minvalue"),
    ),
    "max": (
        _flat("salary_max"),
        _flat("salary_max_derived"),
        _flat("salary_range_max"),
        _flat("salary_to"),
        _nested("value.maxValue"),
        _ai("ai_salary_maxvalue"),
    ),
    "value": (
        _nested("value.value"),
        _ai("ai_salary_value"),
    ),
    "currency": (
        _flat("salary_currency"),
        _flat("currency"),
        _flat("compensation_currency"),
        _nested("currency"),
        _ai("ai_salary_currency"),
    ),
    "period": (
        _flat("salary_period"),
        _flat("salary_unit"),
        _flat("compensation_period"),
        _nested("value.unitText"),
        _ai("ai_salary_unittext"),
    ),
}


class ResolvedField(BaseModel):
    value: Any = None
    candidate: str | None = None
    source: SalarySource | None = None


def raw_salary(job: RawListing) -> Any:
    for field in RAW_SALARY_FIELDS:
        value = getattr(job, field, None)
        if value is not None:
            return value
    return None


def resolve_field(job: RawListing, field: str) -> ResolvedField:
    """Walk one candidate chain and report which candidate answered."""
    for candidate in SALARY_CHAINS[field]:
        value = candidate.read(job)
        if value is not None:
            return ResolvedField(value=value, candidate=candidate.name, source=candidate.source)
    return ResolvedField()


def to_number(value: Any) -> int | float | None:
    """Coerce to a number by keeping only digits and '.'; None when unusable."""
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return value
    cleaned = re.sub(r"[^0-9.]", "", str(value))
    if not cleaned:
        return None
    try:
        number = float(cleaned)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def _dumps(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"), allow_nan=False, default=str)


def _is_plain(value: Any) -> bool:
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, (int, str))


def normalize_salary(job: RawListing) -> str | None:
    """Collapse every salary signal into one string, or None.

    Structured signals produce a compact JSON object holding only the populated
    fields plus the raw value. Without them the raw value is kept as-is
    (strings) or JSON-encoded (anything else), truncated. Never raises.
    """
    raw = raw_salary(job)
    try:
        minimum = resolve_field(job, "min").value
        if minimum is None:
            minimum = resolve_field(job, "value").value
        min_num = to_number(minimum)
        max_num = to_number(resolve_field(job, "max").value)
        currency = resolve_field(job, "currency").value
        period = resolve_field(job, "period").value
    except Exception as e:  # upstream shapes are unbounded
        logger.warning("Salary field resolution failed for job %s: %s", job.id, e)
        min_num = max_num = currency = period = None

    if min_num or max_num or currency or period:
        payload = {
            key: value
            for key, value in (
                ("min", min_num),
                ("max", max_num),
                ("currency", currency),
                ("period", period),
                ("raw", raw),
            )
            if value
        }
        try:
            return _dumps(payload)
        except (TypeError, ValueError, RecursionError):
            return _dumps(
                {key: value if _is_plain(value) else str(value) for key, value in payload.items()}
            )

    if raw is None:
        return None
    if isinstance(raw, str):
        return raw[:MAX_SALARY_LENGTH]
    try:
        return _dumps(raw)[:MAX_SALARY_LENGTH]
    except (TypeError, ValueError, RecursionError):
        return str(raw)[:MAX_SALARY_LENGTH]
