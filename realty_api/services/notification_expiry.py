"""Notification Expiry - periodic removal of expired notifications

Expired rows are already invisible to every query; this job reclaims the space.
Scheduled from the application lifespan with APScheduler.
"""

import logging
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import async_sessionmaker

from realty_api.config import settings
from realty_api.database import AsyncSessionLocal
from realty_api.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

PURGE_JOB_ID = "purge_expired_notifications"


async def purge_expired_notifications(
    session_factory: async_sessionmaker = AsyncSessionLocal, now: datetime | None = None
) -> int:
    """Delete expired notifications in a fresh session and return how many were removed

    Failures propagate; APScheduler logs them for the scheduled job.
    """
    async with session_factory() as db:
        return await NotificationService(db).purge_expired(now)


def schedule_expiry_job(scheduler: AsyncIOScheduler, interval_seconds: int | None = None) -> bool:
    """Register the purge job on a scheduler

    Returns:
        False when the interval is 0 (job disabled), True otherwise
    """
    interval_seconds = settings.NOTIFICATION_PURGE_INTERVAL_SECONDS if interval_seconds is None else interval_seconds
    if interval_seconds <= 0:
        logger.info("Expired notification purge disabled")
        return False

    scheduler.add_job(
        purge_expired_notifications,
        IntervalTrigger(seconds=interval_seconds),
        id=PURGE_JOB_ID,
        name="Purge expired notifications",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    logger.info(f"Expired notification purge scheduled every {interval_seconds}s")
    return True
