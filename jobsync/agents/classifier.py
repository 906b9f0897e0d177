"""LLM-based job category classification using Groq (OpenAI-compatible API)."""

from __future__ import annotations

import logging

import httpx

from jobsync.models.job import JobCategory
from jobsync.models.lookup import LookupResult

logger = logging.getLogger(__name__)

GROQ_CHAT_URL = "https://api.groq.com/openai/v1/chat/completions"
GROQ_MODEL = "llama-3.3-70b-versatile"
DEFAULT_TIMEOUT = 30.0
DESCRIPTION_PROMPT_CHARS = 500

JOB_CATEGORIES = [category.value for category in JobCategory]

CLASSIFY_PROMPT = """Classify this cybersecurity job into exactly ONE category.

Categories: {categories}

Job Title: {title}
Description: {description}

Respond with ONLY the category name, nothing else."""


def build_prompt(title: str | None, description: str | None) -> str:
    return CLASSIFY_PROMPT.format(
        categories=", ".join(JOB_CATEGORIES),
        title=title or "N/A",
        description=(description or "")[:DESCRIPTION_PROMPT_CHARS],
    )


def parse_category(raw: str | None) -> JobCategory | None:
    """Match model output against the closed category set.

    The answer is trimmed and uppercased, then accepted if it equals or
    contains a known category. Categories are checked in declaration order.
    """
    if not raw or not isinstance(raw, str):
        return None
    answer = raw.strip().upper()
    if not answer:
        return None
    for category in JobCategory:
        if answer == category.value or category.value in answer:
            return category
    return None


def classify_job_category(
    title: str | None,
    description: str | None,
    api_key: str | None,
    client: httpx.Client | None = None,
    model: str = GROQ_MODEL,
) -> LookupResult[JobCategory]:
    """Ask the LLM for one category. Never raises; failures map to no category."""
    if not api_key:
        return LookupResult.skipped("GROQ_API_KEY not configured")

    response_text = _call_groq(build_prompt(title, description), api_key, model, client)
    if response_text is None:
        return LookupResult.failed("classification request failed")

    category = parse_category(response_text)
    if category is None:
        logger.info("Unrecognized category %r for job '%s'", response_text[:50], title)
        return LookupResult.empty()
    return LookupResult.ok(category)


# =============================================================================
# Internal helpers
# =============================================================================


def _call_groq(prompt: str, api_key: str, model: str, client: httpx.Client | None) -> str | None:
    """Call the chat completions endpoint and return the first choice's text."""
    http = client or httpx
    try:
        response = http.post(
            GROQ_CHAT_URL,
            json={
                "model": model,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": 0.1,
                "max_tokens": 30,
            },
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=DEFAULT_TIMEOUT,
        )
        response.raise_for_status()
        data = response.json()
        content = data["choices"][0]["message"]["content"]
        return content if isinstance(content, str) else ""
    except httpx.HTTPStatusError as e:
        logger.warning("Groq classification failed: %d %s", e.response.status_code, _error_message(e.response))
        return None
    except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as e:
        logger.warning("Groq classification failed: %s", e)
        return None


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return response.text[:200]
