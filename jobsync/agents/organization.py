"""Resolve an organization's website and logo for a listing."""

from __future__ import annotations

import logging

import httpx
from pydantic import BaseModel

from jobsync.models.listing import RawListing
from jobsync.models.lookup import LookupResult, LookupStatus
from jobsync.tools.search import search_organization_url
from jobsync.tools.text import build_favicon_url, extract_domain

logger = logging.getLogger(__name__)


class OrganizationInfo(BaseModel):
    url: str | None = None
    logo_url: str | None = None
    lookup: LookupStatus = LookupStatus.SKIPPED


def resolve_organization(
    job: RawListing,
    serpapi_key: str | None,
    client: httpx.Client | None = None,
) -> OrganizationInfo:
    """Return the organization URL and logo for a listing.

    A URL already on the listing is used as-is. Otherwise SerpAPI is asked for
    the official website when a key is configured. The listing's own logo
    always wins over a favicon-service URL. Search failures degrade to a null
    URL; they never raise.
    """
    provided_logo = job.text("organization_logo") or None
    org_url = job.text("organization_url") or None

    if org_url:
        return OrganizationInfo(
            url=org_url,
            logo_url=provided_logo or build_favicon_url(extract_domain(org_url)),
            lookup=LookupStatus.SKIPPED,
        )

    result: LookupResult[str] = search_organization_url(job.text("organization"), serpapi_key, client=client)
    if result.status is LookupStatus.FAILED:
        logger.debug("Organization lookup failed for %s: %s", job.text("organization"), result.error)

    found_url = result.value
    return OrganizationInfo(
        url=found_url,
        logo_url=provided_logo or build_favicon_url(extract_domain(found_url)),
        lookup=result.status,
    )
