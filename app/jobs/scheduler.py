"""APScheduler setup and job registration."""

from __future__ import annotations

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from app.config import settings
from app.jobs.daily_reset import daily_ledger_reset
from app.jobs.session_sweep import sweep_idle_sessions
from app.services.session_service import SessionRegistry

scheduler = AsyncIOScheduler(timezone=settings.timezone)


def register_jobs(registry: SessionRegistry) -> None:
    """Register all periodic jobs if not already present.

    Per-session mining jobs are added and removed by the mining loop itself.
    """
    if scheduler.get_job("daily_reset") is None:
        scheduler.add_job(
            daily_ledger_reset,
            # ledger days are UTC days, whatever the scheduler timezone
            CronTrigger(hour=0, minute=0, timezone="UTC"),
            args=[registry],
            id="daily_reset",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    if scheduler.get_job("session_sweep") is None:
        scheduler.add_job(
            sweep_idle_sessions,
            IntervalTrigger(seconds=settings.session_sweep_interval_seconds),
            args=[registry, settings.session_idle_seconds],
            id="session_sweep",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
