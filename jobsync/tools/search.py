"""SerpAPI web search wrapper for locating an organization's official website."""

from __future__ import annotations

import logging

import httpx

from jobsync.models.lookup import LookupResult

logger = logging.getLogger(__name__)

SERPAPI_URL = "https://serpapi.com/search.json"
DEFAULT_TIMEOUT = 10.0


def search_serpapi(
    query: str,
    api_key: str,
    max_results: int = 3,
    client: httpx.Client | None = None,
) -> list[dict]:
    """Query SerpAPI (Google engine) and return its organic results.

    Args:
        query: Free-text search query.
        api_key: SerpAPI key, sent as a query parameter.
        max_results: Result-count cap passed as ``num``.
        client: Optional shared httpx client.

    Returns:
        List of organic result dicts in the order SerpAPI ranked them.

    Raises:
        httpx.HTTPError: On transport failure or non-2xx status.
        ValueError: When the body is not a JSON object.
    """
    http = client or httpx
    response = http.get(
        SERPAPI_URL,
        params={
            "q": query,
            "engine": "google",
            "api_key": api_key,
            "num": max_results,
        },
        timeout=DEFAULT_TIMEOUT,
    )
    response.raise_for_status()
    data = response.json()
    if not isinstance(data, dict):
        raise ValueError("SerpAPI response is not a JSON object")

    organic = data.get("organic_results") or []
    return [r for r in organic if isinstance(r, dict)] if isinstance(organic, list) else []


def search_organization_url(
    organization: str | None,
    api_key: str | None,
    client: httpx.Client | None = None,
) -> LookupResult[str]:
    """Return the first organic link for "<organization> official website"."""
    if not api_key:
        return LookupResult.skipped("SERPAPI_KEY not configured")
    if not organization:
        return LookupResult.skipped("no organization name")

    query = f"{organization} official website"
    try:
        results = search_serpapi(query, api_key, client=client)
    except httpx.TimeoutException:
        logger.warning("SerpAPI request timed out for query: %s", query)
        return LookupResult.failed("timeout")
    except httpx.HTTPStatusError as e:
        logger.warning("SerpAPI HTTP error %d for query: %s", e.response.status_code, query)
        return LookupResult.failed(f"HTTP {e.response.status_code}")
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("SerpAPI search failed for query '%s': %s", query, e)
        return LookupResult.failed(str(e))

    for result in results:
        link = result.get("link")
        if isinstance(link, str) and link:
            return LookupResult.ok(link)

    logger.debug("SerpAPI returned no organic link for %s", organization)
    return LookupResult.empty()
