"""Daily refresh scheduling."""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from trendfeed.jobs import RefreshService

logger = logging.getLogger(__name__)

DAILY_REFRESH_JOB_ID = "daily_refresh"


def build_scheduler(service: RefreshService, hour: int) -> AsyncIOScheduler:
    """Create a scheduler that force-refreshes every day at ``hour``:00 local time.

    The scheduler is returned unstarted; start it from inside the running
    event loop.
    """
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        service.run_scheduled_refresh,
        trigger=CronTrigger(hour=hour, minute=0),
        id=DAILY_REFRESH_JOB_ID,
        name="Daily feed refresh",
        replace_existing=True,
        coalesce=True,
        misfire_grace_time=60 * 60,
    )
    logger.info("Daily refresh scheduled at %02d:00", hour)
    return scheduler
