"""
Scheduler engine for deferred pipeline jobs.

Wraps an APScheduler scheduler behind a small capability interface
(schedule_at / exists / delete / cancel) so services never touch the
engine directly and tests can run it paused. The process-wide instance is
managed with init_scheduler() / get_scheduler() / shutdown_scheduler().
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from enum import Enum

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.date import DateTrigger

from ats.config import settings

logger = logging.getLogger(__name__)


class MisfirePolicy(Enum):
    """What to do with a trigger whose fire time passed while the engine was down."""

    FIRE_NOW = "fire_now"  # run once on recovery, however late
    DO_NOTHING = "do_nothing"  # drop the missed run

    @property
    def grace_time(self) -> int | None:
        return None if self is MisfirePolicy.FIRE_NOW else 1


class SchedulerEngineError(Exception):
    """The underlying engine rejected or failed an operation."""


class JobScheduler:
    """Named, grouped one-shot jobs on top of an APScheduler instance."""

    def __init__(self, engine: BaseScheduler):
        self.engine = engine

    @staticmethod
    def job_id(job_name: str, group: str) -> str:
        return f"{group}.{job_name}"

    def schedule_at(
        self,
        job_name: str,
        group: str,
        func: Callable | str,
        payload: dict,
        fire_at: datetime,
        misfire: MisfirePolicy = MisfirePolicy.FIRE_NOW,
        replace: bool = False,
    ) -> None:
        """Register func(**payload) to run once at fire_at.

        With replace, a job of the same identity is overwritten in one step;
        otherwise an existing identity is an engine error.

        func may be a "module:function" reference; persistent job stores
        need one of those (or a module-level function) to reload the job.
        """
        job_id = self.job_id(job_name, group)
        try:
            self.engine.add_job(
                func,
                trigger=DateTrigger(run_date=fire_at),
                id=job_id,
                name=job_name,
                kwargs=payload,
                misfire_grace_time=misfire.grace_time,
                coalesce=True,
                replace_existing=replace,
            )
        except Exception as e:
            raise SchedulerEngineError(f"Cannot schedule {job_id}: {e}") from e
        logger.debug(f"Scheduled {job_id} at {fire_at.isoformat()}")

    def exists(self, job_name: str, group: str) -> bool:
        try:
            return self.engine.get_job(self.job_id(job_name, group)) is not None
        except Exception as e:
            raise SchedulerEngineError(f"Cannot look up {job_name}: {e}") from e

    def delete(self, job_name: str, group: str) -> bool:
        """Remove a job. Returns False when it did not exist."""
        job_id = self.job_id(job_name, group)
        try:
            self.engine.remove_job(job_id)
        except JobLookupError:
            return False
        except Exception as e:
            raise SchedulerEngineError(f"Cannot delete {job_id}: {e}") from e
        return True

    def cancel(self, trigger_name: str, group: str) -> bool:
        """Cancel a one-shot trigger. Triggers and jobs share identities here."""
        return self.delete(trigger_name, group)

    def next_fire_time(self, job_name: str, group: str) -> datetime | None:
        try:
            job = self.engine.get_job(self.job_id(job_name, group))
        except Exception as e:
            raise SchedulerEngineError(f"Cannot look up {job_name}: {e}") from e
        if job is None:
            return None
        # Jobs added before the engine starts have no next_run_time yet
        return getattr(job, "next_run_time", None) or job.trigger.run_date


def build_engine(jobstore_url: str = "") -> BackgroundScheduler:
    """Create an unstarted APScheduler engine from settings."""
    if jobstore_url:
        jobstore = SQLAlchemyJobStore(url=jobstore_url, tablename="scheduler_jobs")
    else:
        jobstore = MemoryJobStore()

    return BackgroundScheduler(
        jobstores={"default": jobstore},
        executors={"default": ThreadPoolExecutor(settings.scheduler_max_workers)},
        job_defaults={"coalesce": True, "max_instances": 1},
        timezone=settings.scheduler_timezone,
    )


_scheduler: JobScheduler | None = None


def init_scheduler(start: bool = True, paused: bool = False) -> JobScheduler:
    """Create and start the process-wide scheduler. Call once at app startup.

    A paused scheduler accepts and stores jobs without running any.
    """
    global _scheduler
    if _scheduler is not None:
        return _scheduler

    jobstore_url = settings.scheduler_jobstore_url or settings.database_url
    if not jobstore_url:
        logger.warning("No job store configured, scheduled jobs will not survive restarts")

    engine = build_engine(jobstore_url)
    if start:
        engine.start(paused=paused)
    _scheduler = JobScheduler(engine)
    return _scheduler


def get_scheduler() -> JobScheduler:
    """Get the active scheduler. Raises if not initialized."""
    if _scheduler is None:
        raise RuntimeError("Scheduler not initialized, call init_scheduler() first")
    return _scheduler


def set_scheduler(scheduler: JobScheduler | None) -> None:
    """Install a scheduler built elsewhere (tests, CLI)."""
    global _scheduler
    _scheduler = scheduler


def shutdown_scheduler(wait: bool = False) -> None:
    """Stop the scheduler. Call at app shutdown."""
    global _scheduler
    if _scheduler is not None and _scheduler.engine.running:
        _scheduler.engine.shutdown(wait=wait)
    _scheduler = None
