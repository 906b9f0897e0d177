"""Ingestion source client — Active Jobs DB on RapidAPI."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from jobsync.errors import ConfigurationError, SourceFetchError
from jobsync.models.listing import RawListing

logger = logging.getLogger(__name__)

RAPIDAPI_HOST = "active-jobs-db.p.rapidapi.com"
SOURCE_URL = f"https://{RAPIDAPI_HOST}/active-ats-7d"
DEFAULT_TIMEOUT = 30.0


class SourceQuery(BaseModel):
    """Fixed query parameters for one fetch."""

    limit: int = 150
    offset: int = 0
    title_filter: str = "cybersecurity"
    description_type: str = "text"
    remote: bool = True
    include_ai: bool = True
    ai_has_salary: bool = True

    def to_params(self) -> dict[str, Any]:
        params = self.model_dump()
        # RapidAPI expects lowercase booleans
        return {k: str(v).lower() if isinstance(v, bool) else v for k, v in params.items()}


def fetch_listings(
    api_key: str | None,
    query: SourceQuery | None = None,
    client: httpx.Client | None = None,
) -> list[Any]:
    """Fetch one page of raw listing payloads.

    Returns the decoded JSON array unchanged; use :func:`parse_listings` to
    turn it into ``RawListing`` objects.

    Raises:
        ConfigurationError: ``api_key`` is empty. No request is made.
        SourceFetchError: Transport failure, non-2xx status or a body that is
            not a JSON array. Carries the upstream status and body.
    """
    if not api_key:
        raise ConfigurationError("RAPIDAPI_KEY is missing")

    query = query or SourceQuery()
    http = client or httpx

    try:
        response = http.get(
            SOURCE_URL,
            headers={
                "X-RapidAPI-Key": api_key,
                "X-RapidAPI-Host": RAPIDAPI_HOST,
            },
            params=query.to_params(),
            timeout=DEFAULT_TIMEOUT,
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        body = _response_body(e.response)
        logger.error("RapidAPI error: %d %s", e.response.status_code, body)
        raise SourceFetchError("RapidAPI error", status=e.response.status_code, body=body) from e
    except httpx.HTTPError as e:
        logger.error("RapidAPI request failed: %s", e)
        raise SourceFetchError(f"RapidAPI request failed: {e}") from e

    try:
        data = response.json()
    except ValueError as e:
        raise SourceFetchError("RapidAPI returned invalid JSON", status=response.status_code, body=response.text) from e

    if not isinstance(data, list):
        raise SourceFetchError("RapidAPI returned a non-array payload", status=response.status_code, body=data)

    logger.info("Fetched %d jobs from RapidAPI", len(data))
    return data


def parse_listings(items: list[Any]) -> list[RawListing]:
    """Wrap each JSON object as a RawListing; other shapes are dropped."""
    listings: list[RawListing] = []
    for item in items:
        if not isinstance(item, dict):
            logger.warning("Skipping non-object listing: %r", item)
            continue
        try:
            listings.append(RawListing.model_validate(item))
        except ValidationError as e:
            logger.warning("Failed to parse listing %s: %s", item.get("id"), e)
    return listings


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text
