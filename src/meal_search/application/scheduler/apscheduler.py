"""Application scheduler – APSchedulerAdapter (APScheduler 3.x AsyncIOScheduler)."""
from __future__ import annotations

from typing import Any

from meal_search.application.scheduler.job import Job
from meal_search.application.scheduler.scheduler import JobExecutionContext
from meal_search.observability.logging import get_logger

__all__ = ["APSchedulerAdapter"]

_log = get_logger(__name__)


def _require_apscheduler() -> Any:  # pragma: no cover
    try:
        import apscheduler  # noqa: PLC0415
        return apscheduler
    except ImportError as exc:
        raise ImportError(
            "APScheduler 3.x is required. "
            "Install it with: pip install 'apscheduler>=3.10,<4'"
        ) from exc


class APSchedulerAdapter:
    """Scheduler backed by APScheduler's ``AsyncIOScheduler``.

    Jobs run on the event loop that is current when :meth:`start` is awaited.
    Each firing is wrapped in a :class:`JobExecutionContext` so handler errors
    are logged instead of reaching APScheduler.
    """

    def __init__(self, timezone: str = "UTC") -> None:
        self._jobs: dict[str, Job] = {}
        self._scheduler: Any | None = None
        self._timezone = timezone

    def _get_scheduler(self) -> Any:
        if self._scheduler is None:
            _require_apscheduler()
            from apscheduler.schedulers.asyncio import AsyncIOScheduler  # noqa: PLC0415
            self._scheduler = AsyncIOScheduler(timezone=self._timezone)
        return self._scheduler

    def add_job(self, job: Job) -> None:
        self._jobs[job.id] = job
        if self._scheduler is not None and self._scheduler.running:
            self._register_job(self._scheduler, job)

    def remove_job(self, job_id: str) -> None:
        self._jobs.pop(job_id, None)
        if self._scheduler is not None and self._scheduler.get_job(job_id) is not None:
            self._scheduler.remove_job(job_id)

    def _trigger_for(self, job: Job) -> Any:
        from apscheduler.triggers.cron import CronTrigger  # noqa: PLC0415
        from apscheduler.triggers.interval import IntervalTrigger  # noqa: PLC0415

        if job.cron:
            return CronTrigger.from_crontab(job.cron, timezone=self._timezone)
        return IntervalTrigger(seconds=job.interval_seconds, timezone=self._timezone)

    def _register_job(self, scheduler: Any, job: Job) -> None:
        if not job.enabled:
            return

        async def _handler() -> None:
            await JobExecutionContext(job=job).run()

        scheduler.add_job(
            _handler,
            trigger=self._trigger_for(job),
            id=job.id,
            name=job.name,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )

    async def start(self) -> None:
        scheduler = self._get_scheduler()
        for job in self._jobs.values():
            self._register_job(scheduler, job)
        scheduler.start()
        _log.info("scheduler_started", jobs=sorted(self._jobs))

    async def stop(self) -> None:
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            _log.info("scheduler_stopped")

    def list_jobs(self) -> list[Job]:
        return list(self._jobs.values())

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running
