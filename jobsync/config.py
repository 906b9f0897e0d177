"""Runtime settings read from environment variables (populated by .env)."""

from __future__ import annotations

import os

from pydantic import BaseModel

from jobsync.rate_limit import GROQ_CLASSIFY_INTERVAL_SECS


def _env(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def _env_bool(name: str, default: bool) -> bool:
    value = _env(name)
    if not value:
        return default
    return value.lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Credentials and knobs for a sync run. Empty credentials mean "not configured"."""

    rapidapi_key: str = ""
    serpapi_key: str = ""
    company_enrich_api_key: str = ""
    groq_api_key: str = ""

    db_path: str = "jobs.db"
    keywords_path: str = "keywords.yaml"
    strict_filter: bool = True
    classify_interval_secs: float = GROQ_CLASSIFY_INTERVAL_SECS
    sync_cron_hour: int = 0
    sync_cron_minute: int = 0

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            rapidapi_key=_env("RAPIDAPI_KEY"),
            serpapi_key=_env("SERPAPI_KEY"),
            company_enrich_api_key=_env("COMPANY_ENRICH_API_KEY"),
            groq_api_key=_env("GROQ_API_KEY"),
            db_path=_env("DB_PATH", "jobs.db"),
            keywords_path=_env("KEYWORDS_PATH", "keywords.yaml"),
            strict_filter=_env_bool("STRICT_FILTER", True),
            classify_interval_secs=float(_env("CLASSIFY_INTERVAL_SECS", str(GROQ_CLASSIFY_INTERVAL_SECS))),
            sync_cron_hour=int(_env("SYNC_CRON_HOUR", "0")),
            sync_cron_minute=int(_env("SYNC_CRON_MINUTE", "0")),
        )
