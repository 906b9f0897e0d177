"""SQLite storage for jobs, companies and run metadata."""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from jobsync.errors import PersistenceError
from jobsync.models.job import CompanyRecord, NormalizedJob

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS jobs (
    id                    INTEGER PRIMARY KEY AUTOINCREMENT,
    external_job_id       TEXT NOT NULL UNIQUE,
    title                 TEXT NOT NULL,
    company               TEXT,
    company_slug          TEXT,
    job_slug              TEXT NOT NULL,
    category              TEXT,
    location              TEXT,
    is_remote             INTEGER DEFAULT 0,
    apply_url             TEXT NOT NULL,
    source                TEXT,
    posted_at             TEXT,
    last_updated          TEXT,
    salary                TEXT,
    job_type              TEXT,
    description_snippet   TEXT,
    organization_url      TEXT,
    organization_logo_url TEXT,
    created_at            TEXT NOT NULL,
    updated_at            TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_jobs_posted_at ON jobs(posted_at);
CREATE INDEX IF NOT EXISTS idx_jobs_organization_url ON jobs(organization_url);
CREATE INDEX IF NOT EXISTS idx_jobs_job_slug ON jobs(job_slug);

CREATE TABLE IF NOT EXISTS companies (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    organization_url  TEXT NOT NULL UNIQUE,
    company_name      TEXT,
    company_slug      TEXT,
    about             TEXT,
    long_description  TEXT,
    founded_year      TEXT,
    industries        TEXT,  -- JSON list
    socials           TEXT,  -- JSON
    logo_url          TEXT,
    location          TEXT,
    size              TEXT,
    website           TEXT,
    jobs_count        INTEGER DEFAULT 0,
    updated_at        TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS runs (
    run_id        INTEGER PRIMARY KEY AUTOINCREMENT,
    run_date      TEXT NOT NULL,
    trigger       TEXT NOT NULL,
    total_fetched INTEGER DEFAULT 0,
    total_filtered INTEGER DEFAULT 0,
    total_upserted INTEGER DEFAULT 0,
    errors        TEXT,  -- JSON list
    duration_secs REAL,
    created_at    TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

JOB_COLUMNS = [
    "external_job_id", "title", "company", "company_slug", "job_slug", "category",
    "location", "is_remote", "apply_url", "source", "posted_at", "last_updated",
    "salary", "job_type", "description_snippet", "organization_url",
    "organization_logo_url", "created_at", "updated_at",
]

COMPANY_COLUMNS = [
    "organization_url", "company_name", "company_slug", "about", "long_description",
    "founded_year", "industries", "socials", "logo_url", "location", "size",
    "website", "updated_at",
]

# created_at keeps the first-seen time; everything else follows the latest sync
_JOB_UPDATE_COLUMNS = [c for c in JOB_COLUMNS if c not in ("external_job_id", "created_at")]

UPSERT_JOB_SQL = f"""
INSERT INTO jobs ({", ".join(JOB_COLUMNS)})
VALUES ({", ".join("?" for _ in JOB_COLUMNS)})
ON CONFLICT(external_job_id) DO UPDATE SET
    {", ".join(f"{c} = excluded.{c}" for c in _JOB_UPDATE_COLUMNS)}
"""

UPSERT_COMPANY_SQL = f"""
INSERT INTO companies ({", ".join(COMPANY_COLUMNS)})
VALUES ({", ".join("?" for _ in COMPANY_COLUMNS)})
ON CONFLICT(organization_url) DO UPDATE SET
    {", ".join(f"{c} = excluded.{c}" for c in COMPANY_COLUMNS if c != "organization_url")}
"""


class JobRepository:
    """SQLite-backed repository for jobs and companies.

    One connection is shared across threads; every statement runs under a
    lock so aggregate updates can be fanned out from a thread pool.
    """

    def __init__(self, db_path: str = "jobs.db") -> None:
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._init_schema()

    def _init_schema(self) -> None:
        with self._lock:
            self._conn.executescript(SCHEMA_SQL)
            self._conn.commit()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # -- Jobs -------------------------------------------------------------------

    def upsert_jobs(self, jobs: list[NormalizedJob]) -> list[dict]:
        """Insert or overwrite jobs keyed by external_job_id, in one transaction.

        Returns the stored rows for the batch.

        Raises:
            PersistenceError: The batch could not be written; nothing is committed.
        """
        if not jobs:
            return []

        rows = [_job_params(job) for job in jobs]
        external_ids = list(dict.fromkeys(job.external_job_id for job in jobs))
        try:
            with self._lock, self._conn:
                self._conn.executemany(UPSERT_JOB_SQL, rows)
            return self._jobs_by_external_ids(external_ids)
        except sqlite3.Error as e:
            raise PersistenceError(f"Database error: {e}") from e

    def _jobs_by_external_ids(self, external_ids: list[str]) -> list[dict]:
        stored: list[dict] = []
        # SQLite caps bound parameters per statement
        for start in range(0, len(external_ids), 500):
            chunk = external_ids[start : start + 500]
            with self._lock:
                result = self._conn.execute(
                    f"SELECT * FROM jobs WHERE external_job_id IN ({', '.join('?' for _ in chunk)})",
                    chunk,
                ).fetchall()
            stored.extend(_job_row(row) for row in result)
        return stored

    def list_jobs(self) -> list[dict]:
        """All jobs, most recently posted first."""
        with self._lock:
            rows = self._conn.execute("SELECT * FROM jobs ORDER BY posted_at DESC, id DESC").fetchall()
        return [_job_row(row) for row in rows]

    def get_job(self, job_id: int) -> dict | None:
        with self._lock:
            row = self._conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
        return _job_row(row) if row else None

    # -- Companies --------------------------------------------------------------

    def upsert_company(self, company: CompanyRecord) -> None:
        """Insert or fully refresh a company keyed by organization_url."""
        data = company.model_dump()
        params = [
            _json_or_none(data[c]) if c in ("industries", "socials")
            else (str(data[c]) if c == "size" and data[c] is not None else data[c])
            for c in COMPANY_COLUMNS
        ]
        try:
            with self._lock, self._conn:
                self._conn.execute(UPSERT_COMPANY_SQL, params)
        except sqlite3.Error as e:
            raise PersistenceError(f"Company upsert failed: {e}") from e

    def get_company(self, organization_url: str) -> dict | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM companies WHERE organization_url = ?", (organization_url,)
            ).fetchone()
        if row is None:
            return None
        company = dict(row)
        for field in ("industries", "socials"):
            if company[field] is not None:
                company[field] = json.loads(company[field])
        return company

    def update_company_jobs_count(self, organization_url: str) -> int:
        """Recompute jobs_count for one organization from the jobs table.

        Returns the new count. Raises PersistenceError on database failure.
        """
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self._lock, self._conn:
                count = self._conn.execute(
                    "SELECT COUNT(*) FROM jobs WHERE organization_url = ?", (organization_url,)
                ).fetchone()[0]
                self._conn.execute(
                    "UPDATE companies SET jobs_count = ?, updated_at = ? WHERE organization_url = ?",
                    (count, now, organization_url),
                )
        except sqlite3.Error as e:
            raise PersistenceError(f"Jobs count update failed: {e}") from e
        return int(count)

    # -- Run logging ------------------------------------------------------------

    def log_run(
        self,
        run_date: str,
        trigger: str,
        total_fetched: int = 0,
        total_filtered: int = 0,
        total_upserted: int = 0,
        errors: list[str] | None = None,
        duration_secs: float | None = None,
    ) -> None:
        """Log a sync run. Failures are logged and never raised."""
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    """
                    INSERT INTO runs (run_date, trigger, total_fetched, total_filtered,
                                      total_upserted, errors, duration_secs)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        run_date,
                        trigger,
                        total_fetched,
                        total_filtered,
                        total_upserted,
                        json.dumps(errors or []),
                        duration_secs,
                    ),
                )
        except sqlite3.Error as e:
            logger.warning("Could not log %s run for %s: %s", trigger, run_date, e)

    def get_runs(self) -> list[dict]:
        with self._lock:
            rows = self._conn.execute("SELECT * FROM runs ORDER BY run_id").fetchall()
        return [dict(row) for row in rows]


def _job_params(job: NormalizedJob) -> list[Any]:
    data = job.model_dump(mode="json")
    data["is_remote"] = int(job.is_remote)
    return [data[c] for c in JOB_COLUMNS]


def _job_row(row: sqlite3.Row) -> dict:
    job = dict(row)
    job["is_remote"] = bool(job["is_remote"])
    return job


def _json_or_none(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, default=str)
