"""
Scheduling for the screening pipeline.

- scheduler: JobScheduler adapter and process-wide APScheduler lifecycle
- jobs: scoring and filtering callables fired by the scheduler
"""

from ats.scheduling.scheduler import (
    JobScheduler,
    MisfirePolicy,
    SchedulerEngineError,
    get_scheduler,
    init_scheduler,
    shutdown_scheduler,
)

__all__ = [
    "JobScheduler",
    "MisfirePolicy",
    "SchedulerEngineError",
    "get_scheduler",
    "init_scheduler",
    "shutdown_scheduler",
]
