from __future__ import annotations

import logging
from functools import lru_cache
from uuid import uuid4

from apscheduler.jobstores.base import JobLookupError
from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from src.config import Settings, get_settings
from src.engine.ports.scheduler import JobCallback
from src.engine.services.cron import validate_cron

logger = logging.getLogger("etl_engine")


def build_trigger(cron_expr: str, timezone: str) -> CronTrigger:
    """5 полей -> стандартный crontab, 6 полей -> первое поле это секунды."""
    fields = validate_cron(cron_expr).split()
    if len(fields) == 5:
        return CronTrigger.from_crontab(" ".join(fields), timezone=timezone)

    second, minute, hour, day, month, day_of_week = fields
    return CronTrigger(
        second=second,
        minute=minute,
        hour=hour,
        day=day,
        month=month,
        day_of_week=day_of_week,
        timezone=timezone,
    )


class APSchedulerAdapter:
    """Cron timers on top of APScheduler's AsyncIOScheduler; handles are APScheduler jobs.

    AsyncIOScheduler.shutdown() completes on the next loop iteration, so the adapter
    tracks its own started state and builds a fresh scheduler after shutdown.
    """

    def __init__(
        self,
        scheduler: AsyncIOScheduler | None = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._owned = scheduler is None
        self._scheduler = scheduler or self._build()
        self._started = False

    def _build(self) -> AsyncIOScheduler:
        return AsyncIOScheduler(
            timezone=self._settings.scheduler_timezone,
            job_defaults={
                "coalesce": True,
                # overlapping firings queue on the pipeline lock instead of being dropped
                "max_instances": self._settings.scheduler_max_instances,
                "misfire_grace_time": self._settings.scheduler_misfire_grace_time,
            },
        )

    @property
    def running(self) -> bool:
        return self._started

    def schedule(self, cron_expr: str, callback: JobCallback) -> Job:
        trigger = build_trigger(cron_expr, self._settings.scheduler_timezone)
        job = self._scheduler.add_job(
            callback,
            trigger=trigger,
            id=str(uuid4()),
            name=f"cron[{cron_expr}]",
        )
        if not self._started:
            self._scheduler.start()
            self._started = True
            logger.info("Scheduler started tz=%s", self._settings.scheduler_timezone)

        logger.info("Scheduled job id=%s cron=%r", job.id, cron_expr)
        return job

    def cancel(self, handle: Job) -> None:
        try:
            self._scheduler.remove_job(handle.id)
        except JobLookupError:
            logger.info("Job id=%s already removed", handle.id)
            return
        logger.info("Cancelled job id=%s", handle.id)

    def shutdown(self, wait: bool = False) -> None:
        if not self._started:
            return
        self._scheduler.shutdown(wait=wait)
        self._started = False
        if self._owned:
            self._scheduler = self._build()
        logger.info("Scheduler stopped")


@lru_cache
def get_scheduler() -> APSchedulerAdapter:
    return APSchedulerAdapter()
