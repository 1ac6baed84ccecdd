"""Application scheduler – InMemoryScheduler for unit tests."""
from __future__ import annotations

from meal_search.application.scheduler.job import Job
from meal_search.application.scheduler.scheduler import JobExecutedEvent, JobExecutionContext

__all__ = ["InMemoryScheduler"]


class InMemoryScheduler:
    """Scheduler that stores jobs in memory; ``trigger`` fires a job manually."""

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._running: bool = False
        self.execution_log: list[JobExecutedEvent] = []

    def add_job(self, job: Job) -> None:
        self._jobs[job.id] = job

    def remove_job(self, job_id: str) -> None:
        self._jobs.pop(job_id, None)

    async def start(self) -> None:
        self._running = True

    async def stop(self) -> None:
        self._running = False

    def list_jobs(self) -> list[Job]:
        return list(self._jobs.values())

    async def trigger(self, job_id: str) -> JobExecutedEvent:
        """Manually fire a job's handler and record the result."""
        job = self._jobs[job_id]
        event = await JobExecutionContext(job=job).run()
        self.execution_log.append(event)
        return event

    async def trigger_all(self) -> list[JobExecutedEvent]:
        return [await self.trigger(job.id) for job in self.list_jobs() if job.enabled]

    @property
    def is_running(self) -> bool:
        return self._running
