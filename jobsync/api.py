"""HTTP surface: read API, on-demand sync and the daily scheduled sync."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

from jobsync.config import Settings
from jobsync.errors import SourceFetchError
from jobsync.graph import run_sync
from jobsync.models.job import SyncReport
from jobsync.storage.database import JobRepository

logger = logging.getLogger(__name__)

SyncRunner = Callable[[str], SyncReport]


def run_scheduled_sync(runner: SyncRunner) -> SyncReport | None:
    """Scheduled trigger: failures are logged and go nowhere else."""
    logger.info("Running scheduled job sync...")
    try:
        report = runner("scheduled")
    except Exception as e:
        logger.error("Scheduled sync failed: %s", e, exc_info=True)
        return None
    logger.info("Scheduled sync completed: %s", report.model_dump())
    return report


def create_app(
    settings: Settings | None = None,
    repo: JobRepository | None = None,
    runner: SyncRunner | None = None,
    enable_scheduler: bool = True,
) -> FastAPI:
    """Build the FastAPI app.

    ``runner`` defaults to a real sync against ``repo``; tests inject their own.
    """
    settings = settings or Settings.from_env()
    own_repo = repo is None
    repository = repo or JobRepository(settings.db_path)
    sync_runner: SyncRunner = runner or (lambda trigger: run_sync(settings, repository, trigger=trigger))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler = None
        if enable_scheduler:
            scheduler = BackgroundScheduler(timezone="UTC")
            scheduler.add_job(
                run_scheduled_sync,
                CronTrigger(hour=settings.sync_cron_hour, minute=settings.sync_cron_minute, timezone="UTC"),
                args=[sync_runner],
                id="daily_sync",
                max_instances=1,
                coalesce=True,
            )
            scheduler.start()
            logger.info(
                "Cron job scheduled: daily at %02d:%02d UTC",
                settings.sync_cron_hour, settings.sync_cron_minute,
            )
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.shutdown(wait=False)
            if own_repo:
                repository.close()

    app = FastAPI(title="Cybersecurity Job Sync", version="1.0.0", lifespan=lifespan)
    app.state.repository = repository

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.get("/sync")
    def sync():
        try:
            report = sync_runner("manual")
        except SourceFetchError as e:
            logger.error("Sync error: %s %s %s", e, e.status or "", e.body or "")
            if e.status:
                return JSONResponse(
                    status_code=502,
                    content={"error": "Sync failed", "status": e.status, "details": e.body},
                )
            return JSONResponse(status_code=500, content={"error": "Sync failed", "details": str(e)})
        except Exception as e:
            logger.error("Sync error: %s", e, exc_info=True)
            return JSONResponse(status_code=500, content={"error": "Sync failed", "details": str(e)})
        return {"message": "Sync completed", **report.model_dump()}

    @app.get("/jobs")
    def list_jobs() -> list[dict]:
        return app.state.repository.list_jobs()

    @app.get("/jobs/{job_id}")
    def get_job(job_id: int) -> dict:
        job = app.state.repository.get_job(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail="Job not found")
        return job

    return app
