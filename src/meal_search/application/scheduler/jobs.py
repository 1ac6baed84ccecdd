"""Application scheduler – maintenance jobs of the search subsystem."""
from __future__ import annotations

from meal_search.application.cache import (
    AUTOCOMPLETE,
    FACETS,
    SEARCH_RESULTS,
    TRENDING,
    CacheRegistry,
)
from meal_search.application.scheduler.job import Job
from meal_search.application.trends import TrendTracker

__all__ = ["build_maintenance_jobs"]


def _clear(caches: CacheRegistry, name: str):
    async def handler() -> None:
        await caches.clear(name)

    return handler


def build_maintenance_jobs(
    caches: CacheRegistry,
    tracker: TrendTracker,
    results_clear_seconds: int = 300,
    autocomplete_clear_seconds: int = 900,
    trending_clear_seconds: int = 3600,
    facets_clear_seconds: int = 3600,
    daily_clear_cron: str = "0 0 * * *",
    trend_sweep_cron: str = "0 * * * *",
) -> list[Job]:
    """Cache clears on their own cadence, a daily clear-all and the trend sweep."""

    async def sweep() -> None:
        await tracker.update_trending_status()

    return [
        Job(
            id="clear-search-results",
            name="Clear search results cache",
            handler=_clear(caches, SEARCH_RESULTS),
            interval_seconds=results_clear_seconds,
        ),
        Job(
            id="clear-autocomplete",
            name="Clear autocomplete cache",
            handler=_clear(caches, AUTOCOMPLETE),
            interval_seconds=autocomplete_clear_seconds,
        ),
        Job(
            id="clear-trending",
            name="Clear trending cache",
            handler=_clear(caches, TRENDING),
            interval_seconds=trending_clear_seconds,
        ),
        Job(
            id="clear-facets",
            name="Clear facet cache",
            handler=_clear(caches, FACETS),
            interval_seconds=facets_clear_seconds,
        ),
        Job(
            id="clear-all-caches",
            name="Clear every named cache",
            handler=caches.clear_all,
            cron=daily_clear_cron,
        ),
        Job(
            id="trend-sweep",
            name="Re-evaluate trend popularity",
            handler=sweep,
            cron=trend_sweep_cron,
        ),
    ]
