"""APScheduler wrapper that runs the outage scrape on startup and every interval."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger(__name__)


class ScrapeScheduler:
    """Owns one BackgroundScheduler with a single interval job.

    The job fires immediately on start(), then every interval_minutes. A tick
    never overlaps the previous one (max_instances=1); a late tick is
    coalesced instead of queued.
    """

    def __init__(
        self,
        job: Callable[[], Awaitable],
        interval_minutes: int,
        job_id: str = "water_outage_scrape",
    ):
        self._job = job
        self._interval_minutes = interval_minutes
        self._job_id = job_id
        self._scheduler: BackgroundScheduler | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def interval_minutes(self) -> int:
        return self._interval_minutes

    def start(self):
        if self._scheduler is not None:
            logger.warning("Scrape scheduler already running, ignoring start()")
            return

        self._scheduler = BackgroundScheduler(timezone="UTC")
        self._scheduler.add_job(
            self._run,
            "interval",
            minutes=self._interval_minutes,
            id=self._job_id,
            name="Water outage scrape",
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(timezone.utc),
        )
        self._scheduler.start()
        logger.info("Scrape scheduler started: every %d min", self._interval_minutes)

    def stop(self):
        # In-flight runs finish on their own
        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            logger.info("Scrape scheduler stopped")
            self._scheduler = None

    def _run(self):
        logger.info("Running scheduled water outage scrape")
        loop = asyncio.new_event_loop()
        try:
            result = loop.run_until_complete(self._job())
            if result is not None:
                logger.info("Scheduled scrape completed with %d outages found", len(result))
        except Exception as e:
            logger.error("Scheduled scrape failed: %s", e)
        finally:
            loop.close()
