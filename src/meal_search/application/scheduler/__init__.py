"""Application scheduler – job scheduling ports, in-memory fake and maintenance jobs."""
from meal_search.application.scheduler.job import Job
from meal_search.application.scheduler.scheduler import (
    JobExecutedEvent,
    JobExecutionContext,
    Scheduler,
)
from meal_search.application.scheduler.in_memory import InMemoryScheduler
from meal_search.application.scheduler.apscheduler import APSchedulerAdapter
from meal_search.application.scheduler.jobs import build_maintenance_jobs

__all__ = [
    "APSchedulerAdapter",
    "InMemoryScheduler",
    "Job",
    "JobExecutedEvent",
    "JobExecutionContext",
    "Scheduler",
    "build_maintenance_jobs",
]
