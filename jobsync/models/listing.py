"""Pydantic model for raw listings returned by the ingestion source."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class RawListing(BaseModel):
    """One job posting as returned upstream, before normalization.

    Every field is optional and untyped: the aggregation API guarantees no
    schema, so downstream code must tolerate absence and odd shapes.
    """

    model_config = ConfigDict(extra="allow")

    id: Any = None
    title: Any = None
    organization: Any = None
    organization_url: Any = None
    organization_logo: Any = None
    domain_derived: Any = None
    url: Any = None
    description_text: Any = None
    locations_alt_raw: Any = None
    location_type: Any = None
    remote_derived: Any = None
    employment_type: Any = None
    date_posted: Any = None
    date_created: Any = None
    source: Any = None

    # Salary signals, in every shape the upstream has been seen to use
    salary_raw: Any = None
    salary: Any = None
    compensation: Any = None
    salary_min: Any = None
    salary_min_derived: Any = None
    salary_range_min: Any = None
    salary_from: Any = None
    salary_max: Any = None
    salary_max_derived: Any = None
    salary_range_max: Any = None
    salary_to: Any = None
    salary_currency: Any = None
    currency: Any = None
    compensation_currency: Any = None
    salary_period: Any = None
    salary_unit: Any = None
    compensation_period: Any = None
    ai_salary_currency: Any = None
    ai_salary_value: Any = None
    ai_salary_minvalue: Any = None
    ai_salary_maxvalue: Any = None
    ai_salary_unittext: Any = None

    def text(self, field: str) -> str:
        """Return a field as a string, or "" when absent or not a string."""
        value = getattr(self, field, None)
        return value if isinstance(value, str) else ""

    def first_item(self, field: str) -> Any:
        """Return the first element of a list field, or None."""
        value = getattr(self, field, None)
        if isinstance(value, list) and value:
            return value[0]
        return None
