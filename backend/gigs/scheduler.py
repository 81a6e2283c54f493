from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from functools import partial
from typing import Any

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session, sessionmaker

from gigs.config import Settings, settings
from gigs.services.job_cache import JobCache
from gigs.services.lifecycle import (
    DEDUP_KEEP_RULES,
    INACTIVITY_TARGETS,
    expire_aged_jobs,
    expire_inactive_jobs,
    mark_duplicate_jobs,
    record_scraper_health,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduledTask:
    name: str
    cron: str
    handler: Callable[[Session], Any]
    timezone: str = "UTC"
    mutates_jobs: bool = True

    def trigger(self) -> CronTrigger:
        return CronTrigger.from_crontab(self.cron, timezone=self.timezone)


def build_lifecycle_tasks(config: Settings = settings) -> list[ScheduledTask]:
    if config.inactivity_target_status not in INACTIVITY_TARGETS:
        raise ValueError(f"INACTIVITY_TARGET_STATUS must be one of {INACTIVITY_TARGETS}")
    if config.dedup_keep not in DEDUP_KEEP_RULES:
        raise ValueError(f"DEDUP_KEEP must be one of {DEDUP_KEEP_RULES}")

    tz = config.scheduler_timezone
    return [
        ScheduledTask(
            name="expire-inactive-jobs",
            cron=config.expire_jobs_cron,
            timezone=tz,
            handler=partial(
                expire_inactive_jobs,
                threshold_hours=config.inactivity_threshold_hours,
                target_status=config.inactivity_target_status,
            ),
        ),
        ScheduledTask(
            name="expire-aged-jobs",
            cron=config.expire_jobs_cron,
            timezone=tz,
            handler=partial(expire_aged_jobs, max_age_days=config.max_job_age_days),
        ),
        ScheduledTask(
            name="mark-duplicate-jobs",
            cron=config.dedup_jobs_cron,
            timezone=tz,
            handler=partial(mark_duplicate_jobs, keep=config.dedup_keep, chunk_size=config.dedup_chunk_size),
        ),
        ScheduledTask(
            name="record-scraper-health",
            cron=config.health_log_cron,
            timezone=tz,
            handler=partial(record_scraper_health, window_hours=config.health_window_hours),
            mutates_jobs=False,
        ),
    ]


class LifecycleScheduler:
    def __init__(
        self,
        session_factory: sessionmaker,
        cache: JobCache,
        tasks: Iterable[ScheduledTask] = (),
        timezone: str = "UTC",
    ) -> None:
        self.session_factory = session_factory
        self.cache = cache
        self.tasks = list(tasks)
        self.scheduler = BackgroundScheduler(timezone=timezone)

    def run_task(self, task: ScheduledTask) -> Any | None:
        """Run one task in its own session; failures are logged, never raised."""
        db = self.session_factory()
        try:
            result = task.handler(db)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Lifecycle task %s failed", task.name)
            return None
        finally:
            db.close()

        if task.mutates_jobs and isinstance(result, int) and result > 0:
            self.cache.invalidate()
        logger.info("Lifecycle task %s finished: %s", task.name, result)
        return result

    def start(self) -> None:
        for task in self.tasks:
            self.scheduler.add_job(
                self.run_task,
                trigger=task.trigger(),
                args=[task],
                id=task.name,
                name=task.name,
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )
            logger.info("Scheduled %s (%s %s)", task.name, task.cron, task.timezone)
        self.scheduler.start()

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
