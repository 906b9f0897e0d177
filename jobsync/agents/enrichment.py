"""Company enrichment via the CompanyEnrich API."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import httpx

from jobsync.errors import PersistenceError
from jobsync.models.job import CompanyRecord
from jobsync.models.lookup import LookupResult, LookupStatus

if TYPE_CHECKING:
    from jobsync.storage.database import JobRepository

logger = logging.getLogger(__name__)

COMPANY_ENRICH_URL = "https://api.companyenrich.com/companies/enrich"
DEFAULT_TIMEOUT = 15.0


def fetch_company_details(
    domain: str | None,
    api_key: str | None,
    client: httpx.Client | None = None,
) -> LookupResult[dict]:
    """Look a company up by domain. Failures are logged and returned, not raised."""
    if not api_key:
        return LookupResult.skipped("COMPANY_ENRICH_API_KEY not configured")
    if not domain:
        return LookupResult.skipped("no company domain")

    http = client or httpx
    try:
        response = http.get(
            COMPANY_ENRICH_URL,
            params={"domain": domain},
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=DEFAULT_TIMEOUT,
        )
        response.raise_for_status()
        data = response.json()
    except httpx.TimeoutException:
        logger.warning("CompanyEnrich request timed out for %s", domain)
        return LookupResult.failed("timeout")
    except httpx.HTTPStatusError as e:
        logger.warning(
            "CompanyEnrich lookup failed for %s: %d %s",
            domain, e.response.status_code, e.response.text[:200],
        )
        return LookupResult.failed(f"HTTP {e.response.status_code}")
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("CompanyEnrich lookup failed for %s: %s", domain, e)
        return LookupResult.failed(str(e))

    if not isinstance(data, dict) or not data:
        return LookupResult.empty()
    return LookupResult.ok(data)


def format_location(location: Any) -> str | None:
    """Join address, city, state and country names, skipping absent parts."""
    if not isinstance(location, dict):
        return None

    def name_of(part: Any) -> Any:
        return part.get("name") if isinstance(part, dict) else None

    parts = [
        location.get("address"),
        name_of(location.get("city")),
        name_of(location.get("state")),
        name_of(location.get("country")),
    ]
    parts = [str(p) for p in parts if p]
    return ", ".join(parts) if parts else None


def build_company_record(
    organization_url: str,
    company_name: str | None,
    company_slug: str | None,
    details: dict | None,
    now: str | None = None,
) -> CompanyRecord:
    """Map a CompanyEnrich payload onto a CompanyRecord.

    With no details only the locally known fields are filled.
    """
    data = details or {}

    founded = data.get("founded_year")
    industries = data.get("industries")
    if not isinstance(industries, list):
        industries = [data["industry"]] if data.get("industry") else None

    return CompanyRecord(
        organization_url=organization_url,
        company_name=company_name[:100] if company_name else None,
        company_slug=company_slug,
        about=_text(data.get("description")),
        founded_year=f"{founded}-01-01" if isinstance(founded, (int, str)) and str(founded).isdigit() else None,
        industries=industries,
        socials=data.get("socials") or None,
        logo_url=_text(data.get("logo_url")),
        location=format_location(data.get("location")),
        long_description=_text(data.get("seo_description")),
        size=data.get("employees") or None,
        website=_text(data.get("website")),
        updated_at=now or datetime.now(timezone.utc).isoformat(),
    )


def enrich_company(
    repo: "JobRepository",
    organization_url: str | None,
    company_name: str | None,
    company_domain: str | None,
    company_slug: str | None,
    api_key: str | None,
    client: httpx.Client | None = None,
    now: str | None = None,
) -> LookupResult[dict]:
    """Fetch company details and upsert the company keyed by organization URL.

    Skipped entirely without an organization URL or an API key. A failed
    lookup still upserts the locally known name, slug and URL.
    """
    if not organization_url:
        return LookupResult.skipped("no organization URL")
    if not api_key:
        return LookupResult.skipped("COMPANY_ENRICH_API_KEY not configured")

    result = fetch_company_details(company_domain, api_key, client=client)
    record = build_company_record(
        organization_url,
        company_name,
        company_slug,
        result.value if result.status is LookupStatus.OK else None,
        now=now,
    )

    try:
        repo.upsert_company(record)
    except PersistenceError as e:
        logger.warning("Company upsert failed for %s: %s", organization_url, e)

    return result


def _text(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return value if isinstance(value, str) else str(value)
