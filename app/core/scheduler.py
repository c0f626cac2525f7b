from __future__ import annotations

import datetime as dt
import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings
from app.core.db import get_sessionmaker
from app.core.errors import ArticleServiceError
from app.services.media import refresh_signed_urls
from app.services.storage import ObjectStore

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler(timezone=dt.timezone.utc)

async def run_media_refresh_job(store: ObjectStore) -> int:
    async with get_sessionmaker()() as session:
        try:
            return await refresh_signed_urls(session, store, settings)
        except ArticleServiceError as e:
            # Next run retries; the URLs still have the refresh margin left
            logger.error("Media URL refresh failed: %s", e)
            return 0

def start_scheduler(store: ObjectStore) -> None:
    scheduler.add_job(
        run_media_refresh_job,
        IntervalTrigger(minutes=settings.media_refresh_interval_minutes),
        args=[store],
        id="media_refresh",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
        next_run_time=dt.datetime.now(dt.timezone.utc),
    )
    if not scheduler.running:
        scheduler.start()

def shutdown_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
