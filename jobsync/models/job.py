"""Pydantic models for normalized jobs and company records."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class JobCategory(str, Enum):
    INTERNSHIPS = "INTERNSHIPS"
    DEVSECOPS = "DEVSECOPS"
    SECURITY_ENGINEER = "SECURITY-ENGINEER"
    INFOSEC = "INFOSEC"
    ANALYST = "ANALYST"
    CLOUD_SECURITY = "CLOUD-SECURITY"
    GRC = "GRC"
    PENETRATION_TESTING = "PENETRATION-TESTING"
    SALES = "SALES"


class NormalizedJob(BaseModel):
    """Canonical job row, keyed by external_job_id across runs."""

    title: str = Field(max_length=255)
    company: str | None = Field(default=None, max_length=100)
    company_slug: str | None = None
    job_slug: str
    category: JobCategory | None = None
    location: str = "Remote"
    is_remote: bool = False
    apply_url: str
    source: str = "active-jobs-db"
    external_job_id: str
    posted_at: str
    last_updated: str
    salary: str | None = None
    job_type: str = "FULL_TIME"
    description_snippet: str | None = None
    organization_url: str | None = None
    organization_logo_url: str | None = None
    created_at: str
    updated_at: str


class CompanyRecord(BaseModel):
    """Company row, keyed by organization_url."""

    organization_url: str
    company_name: str | None = Field(default=None, max_length=100)
    company_slug: str | None = None
    about: str | None = None
    long_description: str | None = None
    founded_year: str | None = None  # YYYY-01-01
    industries: list[Any] | None = None
    socials: Any = None
    logo_url: str | None = None
    size: Any = None
    website: str | None = None
    location: str | None = None
    jobs_count: int = 0
    updated_at: str


class SyncReport(BaseModel):
    """Counts reported by a successful sync run."""

    fetched: int
    filtered: int
    upserted: int
