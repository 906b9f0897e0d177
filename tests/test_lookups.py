"""Tests for the best-effort external lookups: search, organization, enrichment, classification."""

from __future__ import annotations

import httpx
import pytest

from jobsync.agents.classifier import JOB_CATEGORIES, build_prompt, classify_job_category, parse_category
from jobsync.agents.enrichment import build_company_record, enrich_company, format_location
from jobsync.agents.organization import resolve_organization
from jobsync.models.job import JobCategory
from jobsync.models.listing import RawListing
from jobsync.models.lookup import LookupStatus
from jobsync.tools.search import search_organization_url


def _timeout_client() -> httpx.Client:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    return httpx.Client(transport=httpx.MockTransport(handler))


class TestSearch:
    """Test suite for the SerpAPI organization lookup."""

    def test_first_organic_link(self, upstream, http_client) -> None:
        upstream.search_results["Acme"] = [{"title": "no link"}, {"link": "https://acme.example/"}]

        result = search_organization_url("Acme", "serp-key", client=http_client)

        assert result.status is LookupStatus.OK
        assert result.value == "https://acme.example/"
        params = upstream.calls_to("serpapi.com")[0].url.params
        assert params["q"] == "Acme official website"
        assert params["api_key"] == "serp-key"
        assert params["num"] == "3"

    def test_no_results_is_empty(self, upstream, http_client) -> None:
        result = search_organization_url("Nobody", "serp-key", client=http_client)
        assert result.status is LookupStatus.EMPTY
        assert result.value is None

    def test_http_error_is_failed(self, upstream, http_client) -> None:
        upstream.search_status = 401
        result = search_organization_url("Acme", "serp-key", client=http_client)
        assert result.status is LookupStatus.FAILED

    def test_timeout_is_failed(self) -> None:
        with _timeout_client() as client:
            result = search_organization_url("Acme", "serp-key", client=client)
        assert result.status is LookupStatus.FAILED

    def test_malformed_body_is_failed(self) -> None:
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200, text="<html>")))
        with client:
            result = search_organization_url("Acme", "serp-key", client=client)
        assert result.status is LookupStatus.FAILED

    def test_no_key_skips(self, upstream, http_client) -> None:
        result = search_organization_url("Acme", "", client=http_client)
        assert result.status is LookupStatus.SKIPPED
        assert upstream.requests == []


class TestResolveOrganization:
    """Test suite for organization URL and logo resolution."""

    def test_explicit_url_never_searches(self, upstream, http_client) -> None:
        job = RawListing(organization="Acme", organization_url="https://www.acme.example/about")

        org = resolve_organization(job, "serp-key", client=http_client)

        assert org.url == "https://www.acme.example/about"
        assert org.logo_url == "https://www.google.com/s2/favicons?domain=acme.example&sz=256"
        assert upstream.requests == []

    def test_listing_logo_preferred(self, http_client) -> None:
        job = RawListing(organization_url="https://acme.example", organization_logo="https://cdn/logo.png")
        org = resolve_organization(job, "serp-key", client=http_client)
        assert org.logo_url == "https://cdn/logo.png"

    def test_no_url_no_key(self, upstream, http_client) -> None:
        """Without a search key: null URL, the listing's own logo, no network."""
        job = RawListing(organization="Acme", organization_logo="https://cdn/logo.png")

        org = resolve_organization(job, "", client=http_client)

        assert org.url is None
        assert org.logo_url == "https://cdn/logo.png"
        assert org.lookup is LookupStatus.SKIPPED
        assert upstream.requests == []

    def test_no_url_no_key_no_logo(self, http_client) -> None:
        org = resolve_organization(RawListing(organization="Acme"), "", client=http_client)
        assert org.url is None
        assert org.logo_url is None

    def test_search_fallback(self, upstream, http_client) -> None:
        upstream.search_results["Acme"] = [{"link": "https://www.acme.example/"}]

        org = resolve_organization(RawListing(organization="Acme"), "serp-key", client=http_client)

        assert org.url == "https://www.acme.example/"
        assert org.logo_url == "https://www.google.com/s2/favicons?domain=acme.example&sz=256"
        assert org.lookup is LookupStatus.OK

    def test_search_failure_degrades(self, upstream, http_client) -> None:
        upstream.search_status = 500
        job = RawListing(organization="Acme", organization_logo="https://cdn/logo.png")

        org = resolve_organization(job, "serp-key", client=http_client)

        assert org.url is None
        assert org.logo_url == "https://cdn/logo.png"
        assert org.lookup is LookupStatus.FAILED


COMPANY_PAYLOAD = {
    "name": "Acme",
    "description": "We secure things.",
    "seo_description": "Acme builds security tooling for everyone.",
    "founded_year": 2011,
    "industry": "Computer & Network Security",
    "socials": {"linkedin_url": "https://linkedin.com/company/acme"},
    "logo_url": "https://logo.example/acme.png",
    "employees": "51-200",
    "website": "https://acme.example",
    "location": {
        "address": "1 Main St",
        "city": {"name": "Austin"},
        "state": {"name": "Texas"},
        "country": {"name": "United States"},
    },
}


class TestCompanyEnrichment:
    """Test suite for CompanyEnrich mapping and upsert."""

    def test_format_location_skips_missing(self) -> None:
        assert format_location({"city": {"name": "Austin"}, "country": {"name": "US"}}) == "Austin, US"
        assert format_location({}) is None
        assert format_location(None) is None

    def test_build_record_maps_fields(self) -> None:
        record = build_company_record("https://acme.example", "Acme", "acme", COMPANY_PAYLOAD, now="t")

        assert record.about == "We secure things."
        assert record.long_description.startswith("Acme builds")
        assert record.founded_year == "2011-01-01"
        assert record.industries == ["Computer & Network Security"]
        assert record.location == "1 Main St, Austin, Texas, United States"
        assert record.size == "51-200"
        assert record.updated_at == "t"

    def test_enrich_upserts_company(self, upstream, http_client, repo) -> None:
        upstream.companies["acme.example"] = COMPANY_PAYLOAD

        result = enrich_company(
            repo, "https://acme.example", "Acme", "acme.example", "acme", "enrich-key", client=http_client
        )

        assert result.status is LookupStatus.OK
        request = upstream.calls_to("api.companyenrich.com")[0]
        assert request.headers["Authorization"] == "Bearer enrich-key"
        assert request.url.params["domain"] == "acme.example"
        company = repo.get_company("https://acme.example")
        assert company["company_name"] == "Acme"
        assert company["industries"] == ["Computer & Network Security"]
        assert company["socials"]["linkedin_url"].endswith("/acme")

    def test_enrich_failure_keeps_local_fields(self, upstream, http_client, repo) -> None:
        upstream.enrich_status = 404

        result = enrich_company(
            repo, "https://acme.example", "Acme", "acme.example", "acme", "enrich-key", client=http_client
        )

        assert result.status is LookupStatus.FAILED
        company = repo.get_company("https://acme.example")
        assert company["company_name"] == "Acme"
        assert company["company_slug"] == "acme"
        assert company["about"] is None

    def test_skipped_without_key(self, upstream, http_client, repo) -> None:
        result = enrich_company(repo, "https://acme.example", "Acme", "acme.example", "acme", "", client=http_client)

        assert result.status is LookupStatus.SKIPPED
        assert upstream.requests == []
        assert repo.get_company("https://acme.example") is None

    def test_skipped_without_org_url(self, upstream, http_client, repo) -> None:
        result = enrich_company(repo, None, "Acme", "acme.example", "acme", "enrich-key", client=http_client)
        assert result.status is LookupStatus.SKIPPED
        assert upstream.requests == []


class TestCategoryClassifier:
    """Test suite for LLM category classification."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("ANALYST", JobCategory.ANALYST),
            ("  grc\n", JobCategory.GRC),
            ("Category: CLOUD-SECURITY.", JobCategory.CLOUD_SECURITY),
            ("penetration-testing", JobCategory.PENETRATION_TESTING),
            ("I think this is a red team role", None),
            ("", None),
            (None, None),
        ],
    )
    def test_parse_category(self, raw, expected) -> None:
        assert parse_category(raw) is expected

    def test_prompt_lists_categories_and_truncates(self) -> None:
        prompt = build_prompt("SOC Analyst", "d" * 900)
        assert ", ".join(JOB_CATEGORIES) in prompt
        assert "Job Title: SOC Analyst" in prompt
        assert "d" * 500 in prompt
        assert "d" * 501 not in prompt

    def test_classify_request_shape(self, upstream, http_client) -> None:
        upstream.category = "security-engineer"

        result = classify_job_category("AppSec Engineer", "desc", "groq-key", client=http_client)

        assert result.value is JobCategory.SECURITY_ENGINEER
        request = upstream.calls_to("api.groq.com")[0]
        body = request.read()
        assert request.headers["Authorization"] == "Bearer groq-key"
        assert b'"temperature":0.1' in body.replace(b" ", b"")
        assert b'"max_tokens":30' in body.replace(b" ", b"")

    def test_no_key_no_call(self, upstream, http_client) -> None:
        result = classify_job_category("SOC Analyst", "desc", "", client=http_client)
        assert result.status is LookupStatus.SKIPPED
        assert result.value is None
        assert upstream.requests == []

    def test_rate_limited_is_null(self, upstream, http_client) -> None:
        upstream.groq_status = 429
        result = classify_job_category("SOC Analyst", "desc", "groq-key", client=http_client)
        assert result.status is LookupStatus.FAILED
        assert result.value is None

    def test_malformed_body_is_null(self) -> None:
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"choices": []})))
        with client:
            result = classify_job_category("SOC Analyst", "desc", "groq-key", client=client)
        assert result.value is None

    def test_unrecognized_answer_is_empty(self, upstream, http_client) -> None:
        upstream.category = "BLUE TEAM"
        result = classify_job_category("SOC Analyst", "desc", "groq-key", client=http_client)
        assert result.status is LookupStatus.EMPTY
        assert result.value is None
