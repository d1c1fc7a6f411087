"""APScheduler setup for the periodic sync workers."""

import logging
from typing import TYPE_CHECKING
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

if TYPE_CHECKING:
    from healthbridge.core.services import Services

logger = logging.getLogger(__name__)


async def run_scheduled_daily(services: "Services"):
    """Run the daily window sync job."""
    logger.info("Starting scheduled daily sync job")
    try:
        result = await services.run_and_log(services.daily_worker())
        logger.info(f"Scheduled daily sync finished: {result.status.value}")
    except Exception as e:
        logger.error(f"Scheduled daily sync failed: {e}")


async def run_scheduled_intraday(services: "Services"):
    """Run the intraday sync job."""
    logger.info("Starting scheduled intraday sync job")
    try:
        result = await services.run_and_log(services.intraday_worker())
        logger.info(f"Scheduled intraday sync finished: {result.status.value}")
    except Exception as e:
        logger.error(f"Scheduled intraday sync failed: {e}")


def create_scheduler(services: "Services") -> AsyncIOScheduler:
    """Create a scheduler with the intraday and daily jobs registered.

    A job never overlaps with itself: ``max_instances=1`` skips a tick while
    the previous run is still going and ``coalesce`` folds missed ticks into one.
    """
    settings = services.settings
    scheduler = AsyncIOScheduler()

    scheduler.add_job(
        run_scheduled_intraday,
        IntervalTrigger(minutes=settings.intraday_interval_minutes),
        args=[services],
        id="intraday_sync",
        name="Intraday sync of today",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.add_job(
        run_scheduled_daily,
        IntervalTrigger(hours=settings.daily_interval_hours),
        args=[services],
        id="daily_sync",
        name=f"Daily sync of the last {settings.daily_window_days} days",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    return scheduler


def start_scheduler(services: "Services") -> AsyncIOScheduler:
    """Create and start the scheduler."""
    scheduler = create_scheduler(services)
    scheduler.start()
    logger.info(
        f"Scheduler started - intraday every {services.settings.intraday_interval_minutes} min, "
        f"daily every {services.settings.daily_interval_hours} h"
    )
    return scheduler


def stop_scheduler(scheduler: AsyncIOScheduler | None):
    """Stop the scheduler."""
    if scheduler is not None and scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")
