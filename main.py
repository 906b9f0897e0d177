"""Cybersecurity Job Sync — CLI entrypoint."""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv


def setup_logging(log_level: str = "INFO") -> None:
    """Configure logging to both console and log file."""
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    run_date = datetime.now().strftime("%Y-%m-%d")
    log_file = log_dir / f"run_{run_date}.log"

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
    )


def main() -> None:
    """Main CLI entrypoint for the job sync service."""
    parser = argparse.ArgumentParser(
        description="Cybersecurity job sync — fetch, enrich, classify and store job listings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --mode sync                # Run one sync pass and exit
  python main.py --mode serve               # Serve the read API with the daily sync scheduled
  python main.py --mode serve --port 8080   # Same, on another port
        """,
    )
    parser.add_argument(
        "--mode",
        choices=["sync", "serve"],
        default="sync",
        help="'sync' runs one pass; 'serve' starts the API and scheduler. Default: sync",
    )
    parser.add_argument(
        "--host",
        default=os.getenv("HOST", "0.0.0.0"),
        help="Bind address for serve mode. Default: 0.0.0.0",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for serve mode. Default: $PORT or 3000",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override (DEBUG, INFO, WARNING, ERROR)",
    )

    args = parser.parse_args()

    # Load environment variables
    load_dotenv()

    log_level = args.log_level or os.getenv("LOG_LEVEL", "INFO")
    setup_logging(log_level)

    logger = logging.getLogger("jobsync")

    from jobsync.config import Settings
    from jobsync.storage.database import JobRepository

    settings = Settings.from_env()

    if args.mode == "serve":
        import uvicorn

        from jobsync.api import create_app

        port = args.port or int(os.getenv("PORT", "3000"))
        logger.info("Server starting on %s:%d", args.host, port)
        uvicorn.run(create_app(settings), host=args.host, port=port, log_level=log_level.lower())
        return

    from jobsync.graph import run_sync

    logger.info("=" * 60)
    logger.info("Job Sync — Starting")
    logger.info("=" * 60)

    repo = JobRepository(settings.db_path)
    start_time = time.time()
    try:
        report = run_sync(settings, repo, trigger="cli")
        logger.info("=" * 60)
        logger.info("Pipeline complete in %.1f seconds", time.time() - start_time)
        logger.info(
            "Results: fetched=%d, filtered=%d, upserted=%d",
            report.fetched, report.filtered, report.upserted,
        )
        logger.info("=" * 60)
    except Exception as e:
        duration = time.time() - start_time
        logger.error("Pipeline failed after %.1f seconds: %s", duration, e, exc_info=True)
        sys.exit(1)
    finally:
        repo.close()


if __name__ == "__main__":
    main()
