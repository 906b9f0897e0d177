"""Pure text helpers: topical keyword filter, URL checks, slugs and favicons."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from urllib.parse import quote, urlsplit

import yaml

logger = logging.getLogger(__name__)

CYBER_KEYWORDS = [
    "cybersecurity", "information security", "infosec", "soc", "siem", "grc", "iam",
    "appsec", "cloud security", "pentest", "security engineer", "security analyst",
]

EXCLUDE_KEYWORDS = [
    "physical security", "security guard", "surveillance",
]

ORG_LOGO_SIZE = 256
FAVICON_SERVICE = "https://www.google.com/s2/favicons"

_NON_LETTERS = re.compile(r"[^a-z]+")


def load_keywords(filepath: str | None) -> tuple[list[str], list[str]]:
    """Load include/exclude keyword lists from a YAML file.

    Missing file or missing keys fall back to the built-in lists.
    """
    include, exclude = list(CYBER_KEYWORDS), list(EXCLUDE_KEYWORDS)
    if not filepath or not Path(filepath).exists():
        return include, exclude

    with open(filepath) as f:
        data = yaml.safe_load(f) or {}

    if data.get("include"):
        include = [str(kw).lower() for kw in data["include"]]
    if data.get("exclude"):
        exclude = [str(kw).lower() for kw in data["exclude"]]
    logger.info("Loaded %d include / %d exclude keywords from %s", len(include), len(exclude), filepath)
    return include, exclude


def is_cybersecurity_job(
    title: str | None,
    description: str | None,
    include: list[str] | None = None,
    exclude: list[str] | None = None,
) -> bool:
    """Exclusion wins over inclusion; otherwise one include hit is enough."""
    include = CYBER_KEYWORDS if include is None else include
    exclude = EXCLUDE_KEYWORDS if exclude is None else exclude

    text = f"{title or ''} {description or ''}".lower()
    if any(kw in text for kw in exclude):
        return False
    return any(kw in text for kw in include)


def is_valid_apply_url(url: str | None) -> bool:
    """Syntactic check: parseable, http(s) scheme, non-empty host."""
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlsplit(url.strip())
        host = parsed.hostname
        parsed.port  # raises on an out-of-range or non-numeric port
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(host)


def generate_slug(text: str | None) -> str | None:
    """Lowercase, collapse every run of non-letters to '-', trim dashes.

    Digits count as non-letters, so "Agent007" becomes "agent".
    """
    if not text:
        return None
    return _NON_LETTERS.sub("-", str(text).lower()).strip("-")


def extract_domain(url: str | None) -> str | None:
    """Hostname of a URL without a leading 'www.'."""
    if not url or not isinstance(url, str):
        return None
    try:
        host = urlsplit(url.strip()).hostname
    except ValueError:
        return None
    if not host:
        return None
    return re.sub(r"^www\.", "", host)


def build_favicon_url(domain: str | None) -> str | None:
    if not domain:
        return None
    return f"{FAVICON_SERVICE}?domain={quote(domain, safe='')}&sz={ORG_LOGO_SIZE}"
