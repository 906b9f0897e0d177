"""LangGraph workflow — five-node job sync pipeline.

fetch_jobs → filter_jobs → process_jobs → upsert_jobs → update_counts

A fatal error in fetch_jobs or upsert_jobs propagates out of ``invoke`` and
aborts the run; every other external call degrades to a null value.
"""

from __future__ import annotations

import logging
import secrets
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, TypedDict

import httpx
from langgraph.graph import END, StateGraph

from jobsync.agents.classifier import classify_job_category
from jobsync.agents.enrichment import enrich_company
from jobsync.agents.organization import resolve_organization
from jobsync.config import Settings
from jobsync.errors import PersistenceError, SyncError
from jobsync.models.job import NormalizedJob, SyncReport
from jobsync.models.listing import RawListing
from jobsync.models.lookup import LookupStatus
from jobsync.rate_limit import FixedIntervalGate, RateGate
from jobsync.storage.database import JobRepository
from jobsync.tools.salary import normalize_salary
from jobsync.tools.source import SourceQuery, fetch_listings, parse_listings
from jobsync.tools.text import (
    extract_domain,
    generate_slug,
    is_cybersecurity_job,
    is_valid_apply_url,
    load_keywords,
)

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 255
MAX_COMPANY_LENGTH = 100
ID_SUFFIX_LENGTH = 8
MAX_COUNT_WORKERS = 8


# =============================================================================
# Pipeline State & Dependencies
# =============================================================================


class PipelineState(TypedDict, total=False):
    """State passed between nodes in the LangGraph pipeline."""

    # Data
    raw_items: list[Any]
    listings: list[RawListing]
    filtered_jobs: list[RawListing]
    normalized_jobs: list[NormalizedJob]
    processed_companies: set[str]  # organization URLs enriched in this run only

    # Stats
    total_fetched: int
    total_filtered: int
    total_upserted: int
    lookup_stats: dict[str, dict[str, int]]
    errors: list[str]


class SyncDependencies:
    """Everything a run talks to. Built once per run, never shared between runs."""

    def __init__(
        self,
        settings: Settings,
        repo: JobRepository,
        client: httpx.Client | None = None,
        gate: RateGate | None = None,
        clock: Callable[[], datetime] | None = None,
        query: SourceQuery | None = None,
    ) -> None:
        self.settings = settings
        self.repo = repo
        self.client = client
        self.gate = gate or FixedIntervalGate(settings.classify_interval_secs)
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.query = query or SourceQuery()
        self.include_keywords, self.exclude_keywords = load_keywords(settings.keywords_path)


# =============================================================================
# Node 1: Fetch
# =============================================================================


def fetch_jobs_node(state: PipelineState, deps: SyncDependencies) -> dict:
    """Single call to the ingestion source. Errors here are fatal."""
    logger.info("=== Node 1: Fetching Jobs ===")

    raw_items = fetch_listings(deps.settings.rapidapi_key, deps.query, client=deps.client)
    listings = parse_listings(raw_items)

    sample = next((item for item in raw_items if isinstance(item, dict)), None)
    if sample:
        logger.debug("Sample job keys: %s", sorted(sample))

    return {"raw_items": raw_items, "listings": listings, "total_fetched": len(raw_items)}


# =============================================================================
# Node 2: Filter
# =============================================================================


def has_required_fields(job: RawListing) -> bool:
    return bool(job.text("title").strip() and job.text("organization").strip() and job.text("url").strip())


def passes_filter(job: RawListing, deps: SyncDependencies) -> bool:
    """Required fields, topical keywords and a valid apply URL."""
    if not has_required_fields(job):
        return False
    if not deps.settings.strict_filter:
        return True
    return is_cybersecurity_job(
        job.text("title"),
        job.text("description_text"),
        deps.include_keywords,
        deps.exclude_keywords,
    ) and is_valid_apply_url(job.text("url"))


def filter_jobs_node(state: PipelineState, deps: SyncDependencies) -> dict:
    logger.info("=== Node 2: Filtering Jobs ===")

    listings = state.get("listings", [])
    filtered = [job for job in listings if passes_filter(job, deps)]

    logger.info(
        "Filter%s: %d → %d jobs (%d removed)",
        "" if deps.settings.strict_filter else " (upstream-trusted)",
        len(listings), len(filtered), len(listings) - len(filtered),
    )
    return {"filtered_jobs": filtered, "total_filtered": len(filtered)}


# =============================================================================
# Node 3: Per-item processing (sequential)
# =============================================================================


def build_job_slug(company_slug: str | None, title_slug: str | None, external_id: str) -> str:
    """company-title-<id suffix>, or title-<id suffix> without a company slug."""
    suffix = external_id[-ID_SUFFIX_LENGTH:]
    if company_slug and title_slug:
        return f"{company_slug}-{title_slug}-{suffix}"
    return f"{title_slug or company_slug or 'job'}-{suffix}"


def process_jobs_node(state: PipelineState, deps: SyncDependencies) -> dict:
    """Resolve, enrich, classify and normalize each listing, one at a time.

    Sequential on purpose: the classifier shares one rate quota, paced by
    ``deps.gate`` between iterations.
    """
    logger.info("=== Node 3: Processing Jobs ===")

    filtered = state.get("filtered_jobs", [])
    processed_companies: set[str] = set(state.get("processed_companies", set()))
    stats: dict[str, dict[str, int]] = {"organization": {}, "enrichment": {}, "classification": {}}
    settings = deps.settings
    normalized: list[NormalizedJob] = []

    for i, job in enumerate(filtered):
        title = job.text("title")
        company_name = job.text("organization")[:MAX_COMPANY_LENGTH] or None
        if not title or not company_name:
            raise ValueError(f"Listing {job.id!r} reached processing without a title or organization")

        logger.info("Processing job %d/%d: %s", i + 1, len(filtered), title[:50])

        org = resolve_organization(job, settings.serpapi_key, client=deps.client)
        _count(stats, "organization", org.lookup)

        company_domain = job.text("domain_derived") or extract_domain(org.url)
        company_slug = generate_slug(company_name)
        title_slug = generate_slug(title)
        external_id = str(job.id) if job.id is not None and str(job.id) else secrets.token_hex(4)

        if org.url and org.url not in processed_companies:
            processed_companies.add(org.url)
            enriched = enrich_company(
                deps.repo,
                org.url,
                company_name,
                company_domain,
                company_slug,
                settings.company_enrich_api_key,
                client=deps.client,
                now=deps.clock().isoformat(),
            )
            _count(stats, "enrichment", enriched.status)

        description = job.text("description_text") or None
        category = classify_job_category(title, description, settings.groq_api_key, client=deps.client)
        _count(stats, "classification", category.status)
        if settings.groq_api_key and i < len(filtered) - 1:
            deps.gate.wait()

        now = deps.clock().isoformat()
        location = job.first_item("locations_alt_raw")
        job_type = job.first_item("employment_type")
        if job_type is None and isinstance(job.employment_type, str):
            job_type = job.employment_type

        normalized.append(
            NormalizedJob(
                title=title[:MAX_TITLE_LENGTH],
                company=company_name,
                company_slug=company_slug,
                job_slug=build_job_slug(company_slug, title_slug, external_id),
                category=category.value,
                location=location if isinstance(location, str) and location else "Remote",
                is_remote=job.location_type == "TELECOMMUTE" or job.remote_derived is True,
                apply_url=job.text("url"),
                source=job.text("source") or "active-jobs-db",
                external_job_id=external_id,
                posted_at=_normalize_date(job.date_posted) or _normalize_date(job.date_created) or now,
                last_updated=_normalize_date(job.date_created) or now,
                salary=normalize_salary(job),
                job_type=job_type if isinstance(job_type, str) and job_type else "FULL_TIME",
                description_snippet=description,
                organization_url=org.url,
                organization_logo_url=org.logo_url,
                created_at=now,
                updated_at=now,
            )
        )

    logger.info("Processed %d jobs, %d companies seen; lookups: %s", len(normalized), len(processed_companies), stats)
    return {
        "normalized_jobs": normalized,
        "processed_companies": processed_companies,
        "lookup_stats": stats,
    }


# =============================================================================
# Node 4: Batch upsert
# =============================================================================


def upsert_jobs_node(state: PipelineState, deps: SyncDependencies) -> dict:
    """One batch write keyed by external_job_id. PersistenceError is fatal."""
    logger.info("=== Node 4: Upserting Jobs ===")

    rows = deps.repo.upsert_jobs(state.get("normalized_jobs", []))
    logger.info("Upserted %d jobs into database", len(rows))
    return {"total_upserted": len(rows)}


# =============================================================================
# Node 5: Aggregate update
# =============================================================================


def update_counts_node(state: PipelineState, deps: SyncDependencies) -> dict:
    """Recompute jobs_count for every organization touched in this run.

    Organizations are independent, so the updates fan out over a thread pool.
    Each failure is logged and recorded; none aborts the run.
    """
    logger.info("=== Node 5: Updating Company Job Counts ===")

    organizations = sorted(state.get("processed_companies", set()))
    errors = list(state.get("errors", []))
    if not organizations:
        return {"errors": errors}

    def update(organization_url: str) -> str | None:
        try:
            count = deps.repo.update_company_jobs_count(organization_url)
        except PersistenceError as e:
            logger.warning("Jobs count update failed for %s: %s", organization_url, e)
            return f"Jobs count update failed for {organization_url}: {e}"
        logger.debug("jobs_count=%d for %s", count, organization_url)
        return None

    with ThreadPoolExecutor(max_workers=min(MAX_COUNT_WORKERS, len(organizations))) as pool:
        errors.extend(e for e in pool.map(update, organizations) if e)

    return {"errors": errors}


# =============================================================================
# Build the Graph
# =============================================================================


def build_pipeline(deps: SyncDependencies):
    """Build and compile the LangGraph pipeline bound to one run's dependencies."""

    graph = StateGraph(PipelineState)

    graph.add_node("fetch_jobs", lambda state: fetch_jobs_node(state, deps))
    graph.add_node("filter_jobs", lambda state: filter_jobs_node(state, deps))
    graph.add_node("process_jobs", lambda state: process_jobs_node(state, deps))
    graph.add_node("upsert_jobs", lambda state: upsert_jobs_node(state, deps))
    graph.add_node("update_counts", lambda state: update_counts_node(state, deps))

    graph.set_entry_point("fetch_jobs")
    graph.add_edge("fetch_jobs", "filter_jobs")
    graph.add_edge("filter_jobs", "process_jobs")
    graph.add_edge("process_jobs", "upsert_jobs")
    graph.add_edge("upsert_jobs", "update_counts")
    graph.add_edge("update_counts", END)

    return graph.compile()


def run_sync(
    settings: Settings,
    repo: JobRepository,
    trigger: str = "manual",
    client: httpx.Client | None = None,
    gate: RateGate | None = None,
    clock: Callable[[], datetime] | None = None,
) -> SyncReport:
    """Run one fetch-transform-load pass and log it to the runs table.

    Raises:
        SyncError: ConfigurationError, SourceFetchError or PersistenceError.
    """
    logger.info("Starting job sync (%s)...", trigger)
    start_time = time.time()
    run_date = datetime.now(timezone.utc).strftime("%Y-%m-%d")

    own_client = client is None
    http = client or httpx.Client(follow_redirects=True)
    deps = SyncDependencies(settings, repo, client=http, gate=gate, clock=clock)

    try:
        result = build_pipeline(deps).invoke({"errors": [], "processed_companies": set()})
    except SyncError as e:
        repo.log_run(run_date, trigger, errors=[str(e)], duration_secs=time.time() - start_time)
        raise
    finally:
        if own_client:
            http.close()

    report = SyncReport(
        fetched=result.get("total_fetched", 0),
        filtered=result.get("total_filtered", 0),
        upserted=result.get("total_upserted", 0),
    )
    repo.log_run(
        run_date,
        trigger,
        total_fetched=report.fetched,
        total_filtered=report.filtered,
        total_upserted=report.upserted,
        errors=result.get("errors"),
        duration_secs=time.time() - start_time,
    )
    if result.get("errors"):
        logger.warning("Errors: %s", result["errors"])
    logger.info("Sync complete in %.1fs: %s", time.time() - start_time, report.model_dump())
    return report


# =============================================================================
# Helpers
# =============================================================================


def _count(stats: dict[str, dict[str, int]], kind: str, status: LookupStatus) -> None:
    bucket = stats[kind]
    bucket[status.value] = bucket.get(status.value, 0) + 1


def _normalize_date(value: Any) -> str | None:
    """Normalize an upstream timestamp to ISO 8601 in UTC; None if unusable."""
    if value is None or value == "" or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        # epoch seconds, or milliseconds when implausibly large
        seconds = value / 1000 if value > 1e11 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()
        except (OverflowError, OSError, ValueError):
            return None

    if not isinstance(value, str):
        return None

    try:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        formats = [
            "%a, %d %b %Y %H:%M:%S %z",  # RFC 822
            "%Y-%m-%d %H:%M:%S",
            "%Y-%m-%d",
        ]
        for fmt in formats:
            try:
                dt = datetime.strptime(value.strip(), fmt)
                break
            except ValueError:
                continue
        else:
            logger.debug("Could not parse date: %s", value)
            return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()
