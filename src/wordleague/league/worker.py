"""League arq worker — runs the league job at the top of every hour.

Import path for arq CLI: arq wordleague.league.worker.LeagueWorkerSettings

Single run from the command line:
    python -m wordleague.league.worker --once [--force]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime, timezone

from arq import cron
from arq.connections import RedisSettings

from wordleague.config import get_settings
from wordleague.database import close_db, get_session_factory, init_db
from wordleague.league.jobs import run_league_jobs
from wordleague.league.tiers import validate_league_config
from wordleague.middleware.logging import setup_logging

logger = logging.getLogger(__name__)


async def league_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Validate league config and open the database on worker startup."""
    settings = get_settings()
    setup_logging(settings)
    validate_league_config(settings)
    await init_db(settings.database_url, command_timeout=settings.db_command_timeout_seconds)
    ctx["settings"] = settings
    logger.info("League worker started")


async def league_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    await close_db()
    logger.info("League worker shut down")


async def run_league_jobs_task(ctx: dict, force: bool = False) -> dict[str, object]:  # type: ignore[type-arg]
    """arq entry point for the hourly league job."""
    settings = ctx.get("settings") or get_settings()
    now = datetime.now(timezone.utc)
    async with get_session_factory()() as db:
        try:
            return await run_league_jobs(db, now, settings, force=force)
        except Exception:
            logger.exception("League job failed")
            await db.rollback()
            raise


class LeagueWorkerSettings:
    """arq worker settings for the league scheduler."""

    functions = [run_league_jobs_task]
    cron_jobs = [
        cron(run_league_jobs_task, minute={0}, run_at_startup=False),
    ]
    on_startup = league_startup
    on_shutdown = league_shutdown
    max_jobs = 1
    job_timeout = get_settings().league_job_timeout_seconds
    redis_settings = RedisSettings.from_dsn(get_settings().arq_redis_url)


async def _run_once(force: bool) -> dict[str, object]:
    ctx: dict = {}  # type: ignore[type-arg]
    await league_startup(ctx)
    try:
        return await run_league_jobs_task(ctx, force=force)
    finally:
        await league_shutdown(ctx)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Word League scheduled job")
    parser.add_argument("--once", action="store_true", help="run the league job once and exit")
    parser.add_argument("--force", action="store_true", help="transition even if the period has not ended")
    args = parser.parse_args(argv)

    if not args.once:
        parser.error("use the arq CLI to run the scheduler, or pass --once")
    summary = asyncio.run(_run_once(args.force))
    logger.info("League job summary: %s", summary)


if __name__ == "__main__":
    main()
