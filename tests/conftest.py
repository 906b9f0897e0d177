"""Shared fixtures: a fake upstream for every external API and a temp repository."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from jobsync.config import Settings
from jobsync.rate_limit import FixedIntervalGate
from jobsync.storage.database import JobRepository


class FakeUpstream:
    """Routes requests by host to canned responses and records every call."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.listings: Any = []
        self.listings_status = 200
        self.search_results: dict[str, list[dict]] = {}
        self.search_status = 200
        self.companies: dict[str, dict] = {}
        self.enrich_status = 200
        self.category = "ANALYST"
        self.groq_status = 200

    def calls_to(self, host: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host

        if host == "active-jobs-db.p.rapidapi.com":
            if self.listings_status != 200:
                return httpx.Response(self.listings_status, json={"message": "quota exceeded"})
            return httpx.Response(200, json=self.listings)

        if host == "serpapi.com":
            if self.search_status != 200:
                return httpx.Response(self.search_status, json={"error": "bad key"})
            query = request.url.params.get("q", "")
            org = query.removesuffix(" official website")
            return httpx.Response(200, json={"organic_results": self.search_results.get(org, [])})

        if host == "api.companyenrich.com":
            if self.enrich_status != 200:
                return httpx.Response(self.enrich_status, json={"error": "not found"})
            domain = request.url.params.get("domain", "")
            return httpx.Response(200, json=self.companies.get(domain, {}))

        if host == "api.groq.com":
            if self.groq_status != 200:
                return httpx.Response(self.groq_status, json={"error": {"message": "rate limited"}})
            return httpx.Response(200, json={"choices": [{"message": {"content": self.category}}]})

        return httpx.Response(404, json={"error": f"unexpected host {host}"})

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    def groq_prompts(self) -> list[str]:
        return [json.loads(r.content)["messages"][0]["content"] for r in self.calls_to("api.groq.com")]


def make_listing(**overrides: Any) -> dict:
    listing = {
        "id": "1000000001",
        "title": "SOC Analyst",
        "organization": "Acme Security",
        "organization_url": "https://www.acme.example/",
        "url": "https://jobs.acme.example/apply/1",
        "description_text": "Monitor SIEM alerts in our security operations center.",
        "locations_alt_raw": ["Austin, TX"],
        "location_type": "TELECOMMUTE",
        "employment_type": ["FULL_TIME"],
        "date_posted": "2026-10-01T12:00:00",
        "date_created": "2026-10-01T10:00:00",
        "source": "greenhouse",
    }
    listing.update(overrides)
    return listing


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def http_client(upstream: FakeUpstream):
    client = upstream.client()
    yield client
    client.close()


@pytest.fixture
def repo(tmp_path: Path):
    repository = JobRepository(str(tmp_path / "test_jobs.db"))
    yield repository
    repository.close()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        rapidapi_key="rapid-key",
        db_path=str(tmp_path / "test_jobs.db"),
        keywords_path=str(tmp_path / "missing-keywords.yaml"),
    )


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def gate(sleeps: list[float]) -> FixedIntervalGate:
    """Real gate with the default interval; sleeps are recorded, not taken."""
    return FixedIntervalGate(sleep=sleeps.append)


@pytest.fixture
def ticking_clock() -> Callable[[], datetime]:
    """Clock that advances one second per call."""
    start = datetime(2026, 10, 17, tzinfo=timezone.utc)
    ticks = {"n": 0}

    def now() -> datetime:
        ticks["n"] += 1
        return start + timedelta(seconds=ticks["n"])

    return now


@pytest.fixture
def listing() -> Callable[..., dict]:
    """Factory for raw listing payloads; keyword overrides replace fields."""
    return make_listing
