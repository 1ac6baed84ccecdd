"""Application trends – TrendTracker.

Owns the lifecycle of :class:`SearchTrend` records: every search and click
event flows through here, and the hourly sweep re-evaluates popularity.
Recording is best-effort telemetry; failures are logged and swallowed so
they never reach a search caller.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, TypeVar

from meal_search.application.trends.model import SearchTrend, normalise_term
from meal_search.application.trends.store import RankField, TrendStore
from meal_search.kernel.errors import DependencyFailureError
from meal_search.kernel.time import Clock, SystemClock, days_ago, whole_days_between
from meal_search.observability.logging import get_logger

__all__ = ["PopularityWeights", "SweepResult", "TrendTracker"]

T = TypeVar("T")

_log = get_logger(__name__)


@dataclass(frozen=True)
class PopularityWeights:
    """Heuristic mix of the popularity score; tune freely."""

    recency: float = 0.3
    click_through: float = 0.4
    volume: float = 0.3
    min_recency: float = 0.1
    scale: float = 100.0


@dataclass(frozen=True)
class SweepResult:
    examined: int = 0
    promoted: int = 0
    demoted: int = 0
    rescored: int = 0
    conflicts: int = 0
    purged: int = 0


class TrendTracker:
    """Computes and updates popularity and trend metrics."""

    def __init__(
        self,
        store: TrendStore,
        clock: Clock | None = None,
        popularity_threshold: int = 10,
        relevance_threshold: float = 0.7,
        window_days: int = 7,
        trending_limit: int = 10,
        effective_limit: int = 10,
        retention_days: int = 0,
        weights: PopularityWeights | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self.popularity_threshold = popularity_threshold
        self.relevance_threshold = relevance_threshold
        self.window_days = window_days
        self.trending_limit = trending_limit
        self.effective_limit = effective_limit
        self.retention_days = retention_days
        self.weights = weights or PopularityWeights()

    @classmethod
    def from_settings(cls, store: TrendStore, settings: object, clock: Clock | None = None) -> "TrendTracker":
        return cls(
            store,
            clock=clock,
            popularity_threshold=settings.popularity_threshold,  # type: ignore[attr-defined]
            relevance_threshold=settings.relevance_threshold,  # type: ignore[attr-defined]
            window_days=settings.trending_window_days,  # type: ignore[attr-defined]
            trending_limit=settings.trending_limit,  # type: ignore[attr-defined]
            effective_limit=settings.effective_limit,  # type: ignore[attr-defined]
            retention_days=settings.trend_retention_days,  # type: ignore[attr-defined]
        )

    # ------------------------------------------------------------------
    # Scores
    # ------------------------------------------------------------------

    def qualifies_as_popular(self, trend: SearchTrend) -> bool:
        return (
            trend.search_count >= self.popularity_threshold
            and trend.average_relevance_score >= self.relevance_threshold
        )

    def popularity_score(self, trend: SearchTrend, now: datetime | None = None) -> float:
        now = now or self._clock.now()
        w = self.weights
        days = whole_days_between(trend.last_searched, now)
        recency = max(w.min_recency, 1.0 / (1 + days))
        volume = math.log10(trend.search_count + 1)
        raw = w.recency * recency + w.click_through * trend.click_through_rate + w.volume * volume
        return raw * w.scale

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def record_search(
        self,
        term: str,
        search_type: str,
        result_count: int,
        relevance_score: float,
    ) -> SearchTrend | None:
        """Upsert the trend of ``(term, search_type)``; never raises."""
        key = normalise_term(term)
        if not key:
            return None
        score = relevance_score if math.isfinite(relevance_score) else 0.0
        score = min(1.0, max(0.0, score))
        now = self._clock.now()

        def mutate(current: SearchTrend | None) -> SearchTrend:
            if current is None:
                trend = SearchTrend(
                    search_term=key,
                    search_type=search_type,
                    first_searched=now,
                    last_searched=now,
                    result_count=max(0, result_count),
                    average_relevance_score=score,
                )
                trend.popularity_score = self.popularity_score(trend, now)
            else:
                trend = current
                count = trend.search_count
                trend.average_relevance_score = (
                    trend.average_relevance_score * count + score
                ) / (count + 1)
                trend.search_count = count + 1
                trend.result_count = max(0, result_count)
                trend.last_searched = max(now, trend.last_searched)
            trend.is_popular = self.qualifies_as_popular(trend)
            return trend

        try:
            trend = await self._store.upsert(key, search_type, mutate)
        except Exception:  # noqa: BLE001
            _log.exception("trend_tracking_failed", term=key, search_type=search_type, event_type="search")
            return None
        if trend is not None:
            _log.debug(
                "search_recorded",
                term=key,
                search_type=search_type,
                search_count=trend.search_count,
                is_popular=trend.is_popular,
            )
        return trend

    async def record_click_through(
        self, term: str, search_type: str, result_id: str | None = None
    ) -> SearchTrend | None:
        """Count a click on a result of ``term``; unknown terms are ignored."""
        key = normalise_term(term)
        if not key:
            return None
        now = self._clock.now()

        def mutate(current: SearchTrend | None) -> SearchTrend | None:
            if current is None:
                return None
            current.click_through_count += 1
            current.popularity_score = self.popularity_score(current, now)
            return current

        try:
            trend = await self._store.upsert(key, search_type, mutate)
        except Exception:  # noqa: BLE001
            _log.exception("trend_tracking_failed", term=key, search_type=search_type, event_type="click")
            return None
        if trend is None:
            _log.info("click_through_ignored", term=key, search_type=search_type, result_id=result_id)
        else:
            _log.debug(
                "click_through_recorded",
                term=key,
                search_type=search_type,
                result_id=result_id,
                click_through_count=trend.click_through_count,
            )
        return trend

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def _read(self, operation: str, func: Callable[[], Awaitable[T]]) -> T:
        try:
            return await func()
        except Exception as exc:
            raise DependencyFailureError(
                "trend_store", f"Trend store {operation} failed", cause=exc
            ) from exc

    async def _top(
        self, field: RankField, limit: int, search_type: str | None = None, since: datetime | None = None
    ) -> list[SearchTrend]:
        return await self._read(
            "top_by", lambda: self._store.top_by(field, limit, search_type=search_type, since=since)
        )

    async def get_trending_searches(
        self, search_type: str | None = None, limit: int | None = None
    ) -> list[SearchTrend]:
        """Most searched terms seen within the trending window (all types when None)."""
        since = days_ago(self._clock, self.window_days)
        return await self._top("search_count", limit or self.trending_limit, search_type, since)

    async def get_popular_searches(self) -> list[SearchTrend]:
        trends = await self._read("find_popular", self._store.find_popular)
        return sorted(trends, key=lambda t: t.search_count, reverse=True)

    async def get_most_effective_searches(self, limit: int | None = None) -> list[SearchTrend]:
        return await self._top("click_through_count", limit or self.effective_limit)

    async def get_top_trends(self, limit: int = 10) -> list[SearchTrend]:
        return await self._top("popularity_score", limit)

    async def get_recent_trends(self) -> list[SearchTrend]:
        """Terms first seen within the trending window, newest first."""
        since = days_ago(self._clock, self.window_days)
        trends = await self._read(
            "find_first_searched_since", lambda: self._store.find_first_searched_since(since)
        )
        return sorted(trends, key=lambda t: t.first_searched, reverse=True)

    async def get_popular_search_terms(self, limit: int = 20) -> list[str]:
        return [t.search_term for t in await self._top("search_count", limit)]

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def update_trending_status(self) -> SweepResult:
        """Re-evaluate popularity of every record touched within the window.

        Demotes as well as promotes. Records updated concurrently with the
        sweep are skipped and picked up by the next run.
        """
        now = self._clock.now()
        since = days_ago(self._clock, self.window_days)
        trends = await self._store.find_searched_since(since)

        changed: list[SearchTrend] = []
        promoted = demoted = rescored = 0
        for trend in trends:
            popular = self.qualifies_as_popular(trend)
            score = self.popularity_score(trend, now)
            if popular == trend.is_popular and math.isclose(score, trend.popularity_score):
                continue
            if popular and not trend.is_popular:
                promoted += 1
            elif trend.is_popular and not popular:
                demoted += 1
            else:
                rescored += 1
            trend.is_popular = popular
            trend.popularity_score = score
            changed.append(trend)

        written = await self._store.save_all(changed) if changed else 0
        purged = await self.purge_stale()
        result = SweepResult(
            examined=len(trends),
            promoted=promoted,
            demoted=demoted,
            rescored=rescored,
            conflicts=len(changed) - written,
            purged=purged,
        )
        _log.info(
            "trend_sweep_completed",
            examined=result.examined,
            promoted=result.promoted,
            demoted=result.demoted,
            rescored=result.rescored,
            conflicts=result.conflicts,
            purged=result.purged,
        )
        return result

    async def purge_stale(self) -> int:
        """Delete records not searched within ``retention_days`` (0 disables)."""
        if self.retention_days <= 0:
            return 0
        cutoff = days_ago(self._clock, self.retention_days)
        purged = await self._store.delete_last_searched_before(cutoff)
        if purged:
            _log.info("trends_purged", purged=purged, cutoff=cutoff.isoformat())
        return purged
