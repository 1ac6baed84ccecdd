"""Bootstrap – wire the search subsystem from :class:`SearchSettings`."""
from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable

from meal_search.adapters.mongodb import MongoTextStore, MongoTrendStore
from meal_search.adapters.redis import RedisNamedCache, create_client
from meal_search.application.cache import (
    AUTOCOMPLETE,
    FACETS,
    SEARCH_RESULTS,
    TRENDING,
    CacheRegistry,
)
from meal_search.application.scheduler import (
    APSchedulerAdapter,
    Scheduler,
    build_maintenance_jobs,
)
from meal_search.application.search import SearchOrchestrator, TextStore
from meal_search.application.trends import TrendStore, TrendTracker
from meal_search.config import EnvSettingsLoader, SearchSettings, SettingsFactory
from meal_search.kernel.time import Clock
from meal_search.observability.logging import JsonLoggerFactory, get_logger

__all__ = ["SearchApplication"]

_log = get_logger(__name__)


def _require_motor() -> Any:
    try:
        from motor.motor_asyncio import AsyncIOMotorClient  # noqa: PLC0415
        return AsyncIOMotorClient
    except ImportError as exc:
        raise ImportError("Install 'meal-search[mongodb]' to use the MongoDB adapter") from exc


def _cache_ttls(settings: SearchSettings) -> dict[str, int]:
    # an entry never needs to outlive the next scheduled clear of its cache
    return {
        SEARCH_RESULTS: settings.results_cache_clear_seconds,
        AUTOCOMPLETE: settings.autocomplete_cache_clear_seconds,
        TRENDING: settings.trending_cache_clear_seconds,
        FACETS: settings.facet_cache_clear_seconds,
    }


class SearchApplication:
    """The assembled subsystem: stores, caches, tracker, orchestrator, scheduler.

    Usage::

        app = SearchApplication.from_settings()
        async with app:
            result = await app.orchestrator.search(app.orchestrator.criteria(query="pasta"))
    """

    def __init__(
        self,
        settings: SearchSettings,
        orchestrator: SearchOrchestrator,
        tracker: TrendTracker,
        caches: CacheRegistry,
        scheduler: Scheduler,
        trend_store: TrendStore,
        closers: list[Callable[[], Any]] | None = None,
    ) -> None:
        self.settings = settings
        self.orchestrator = orchestrator
        self.tracker = tracker
        self.caches = caches
        self.scheduler = scheduler
        self.trend_store = trend_store
        self._closers = closers or []
        self._started = False

    @classmethod
    def from_settings(
        cls,
        settings: SearchSettings | None = None,
        text_store: TextStore | None = None,
        trend_store: TrendStore | None = None,
        caches: CacheRegistry | None = None,
        scheduler: Scheduler | None = None,
        clock: Clock | None = None,
    ) -> "SearchApplication":
        """Build the application; stores and caches not supplied come from *settings*."""
        settings = settings or SettingsFactory.create(SearchSettings, [EnvSettingsLoader()])
        closers: list[Callable[[], Any]] = []

        if text_store is None or trend_store is None:
            client = _require_motor()(settings.mongo_url, tz_aware=True)
            closers.append(client.close)
            database = client[settings.mongo_database]
            text_store = text_store or MongoTextStore(database)
            trend_store = trend_store or MongoTrendStore(database[MongoTrendStore.COLLECTION_NAME])

        if caches is None:
            if settings.redis_url:
                redis_client = create_client(settings.redis_url)
                closers.append(redis_client.aclose)
                ttls = _cache_ttls(settings)
                caches = CacheRegistry.build(
                    lambda name: RedisNamedCache(redis_client, name, ttl_seconds=ttls.get(name))
                )
            else:
                caches = CacheRegistry.in_memory()

        tracker = TrendTracker.from_settings(trend_store, settings, clock=clock)
        orchestrator = SearchOrchestrator.from_settings(text_store, tracker, caches, settings)

        scheduler = scheduler or APSchedulerAdapter()
        for job in build_maintenance_jobs(
            caches,
            tracker,
            results_clear_seconds=settings.results_cache_clear_seconds,
            autocomplete_clear_seconds=settings.autocomplete_cache_clear_seconds,
            trending_clear_seconds=settings.trending_cache_clear_seconds,
            facets_clear_seconds=settings.facet_cache_clear_seconds,
            daily_clear_cron=settings.daily_cache_clear_cron,
            trend_sweep_cron=settings.trend_sweep_cron,
        ):
            scheduler.add_job(job)

        return cls(settings, orchestrator, tracker, caches, scheduler, trend_store, closers)

    async def start(self, configure_logging: bool = True) -> None:
        if self._started:
            return
        if configure_logging:
            JsonLoggerFactory.configure(self.settings.log_level_number, json=self.settings.log_json)
        ensure_indexes: Callable[[], Awaitable[None]] | None = getattr(
            self.trend_store, "ensure_indexes", None
        )
        if ensure_indexes is not None:
            await ensure_indexes()
        await self.scheduler.start()
        self._started = True
        _log.info("search_application_started", jobs=[j.id for j in self.scheduler.list_jobs()])

    async def stop(self) -> None:
        await self.orchestrator.drain()
        await self.scheduler.stop()
        for close in self._closers:
            result = close()
            if inspect.isawaitable(result):
                await result
        self._closers = []
        self._started = False
        _log.info("search_application_stopped")

    async def __aenter__(self) -> "SearchApplication":
        await self.start()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.stop()
