"""Unit tests for SearchTrend, InMemoryTrendStore and TrendTracker."""
from __future__ import annotations

import asyncio
import math
from datetime import timedelta

import pytest

from meal_search.application.trends import (
    InMemoryTrendStore,
    SearchTrend,
    TrendStore,
    TrendTracker,
    normalise_term,
)
from meal_search.kernel.errors import DependencyFailureError
from meal_search.kernel.time import FrozenClock


def _trend(term: str, now, **fields) -> SearchTrend:
    return SearchTrend(search_term=term, search_type="recipe", first_searched=now, last_searched=now, **fields)


class _RacingStore(InMemoryTrendStore):
    """Every record read by the sweep is updated again before the sweep writes."""

    async def find_searched_since(self, since):
        trends = await super().find_searched_since(since)
        for t in trends:
            await self.upsert(t.search_term, t.search_type, lambda current: current)
        return trends


class _BrokenStore(InMemoryTrendStore):
    async def upsert(self, term, search_type, mutate):
        raise ConnectionError("down")

    async def find_popular(self):
        raise ConnectionError("down")


# ---------------------------------------------------------------------------
# SearchTrend
# ---------------------------------------------------------------------------


class TestSearchTrend:
    def test_normalise_term(self) -> None:
        assert normalise_term("  Pasta   NIGHT ") == "pasta night"
        assert normalise_term(None) == ""

    def test_click_through_rate(self, clock: FrozenClock) -> None:
        assert _trend("x", clock.now(), search_count=4, click_through_count=1).click_through_rate == 0.25
        assert _trend("x", clock.now(), search_count=0).click_through_rate == 0.0

    def test_document_round_trip_keeps_identity(self, clock: FrozenClock) -> None:
        doc = _trend("x", clock.now(), id="abc").to_document()
        assert "id" not in doc
        restored = SearchTrend.from_document({**doc, "_id": "abc", "unknown": 1})
        assert restored.id == "abc"
        assert restored.key == ("x", "recipe")


# ---------------------------------------------------------------------------
# InMemoryTrendStore
# ---------------------------------------------------------------------------


class TestInMemoryTrendStore:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(InMemoryTrendStore(), TrendStore)

    def test_upsert_bumps_version_and_isolates_state(self, clock: FrozenClock) -> None:
        store = InMemoryTrendStore()

        async def scenario():
            created = await store.upsert("x", "recipe", lambda cur: _trend("x", clock.now()))
            created.search_count = 99
            fetched = await store.get("x", "recipe")
            skipped = await store.upsert("y", "recipe", lambda cur: None)
            return created, fetched, skipped

        created, fetched, skipped = asyncio.run(scenario())
        assert created.version == 1
        assert fetched.search_count == 1
        assert skipped is None
        assert len(store) == 1

    def test_save_all_skips_records_that_moved_on(self, clock: FrozenClock) -> None:
        store = InMemoryTrendStore()

        async def scenario():
            await store.upsert("x", "recipe", lambda cur: _trend("x", clock.now()))
            await store.upsert("y", "recipe", lambda cur: _trend("y", clock.now()))
            stale_x = await store.get("x", "recipe")
            fresh_y = await store.get("y", "recipe")
            await store.upsert("x", "recipe", lambda cur: cur.copy(search_count=cur.search_count + 1))
            written = await store.save_all([stale_x.copy(is_popular=True), fresh_y.copy(is_popular=True)])
            return written, await store.get("x", "recipe"), await store.get("y", "recipe")

        written, x, y = asyncio.run(scenario())
        assert written == 1
        assert x.is_popular is False
        assert x.search_count == 2
        assert y.is_popular is True
        assert y.version == 2

    def test_top_by_filters_type_and_window(self, clock: FrozenClock) -> None:
        store = InMemoryTrendStore()
        now = clock.now()

        async def scenario():
            await store.upsert("a", "recipe", lambda cur: _trend("a", now, search_count=5))
            await store.upsert("b", "recipe", lambda cur: _trend("b", now - timedelta(days=30), search_count=50))
            await store.upsert("c", "user", lambda cur: _trend("c", now, search_count=9).copy(search_type="user"))
            return (
                await store.top_by("search_count", 10),
                await store.top_by("search_count", 10, search_type="recipe", since=now - timedelta(days=7)),
            )

        everything, windowed = asyncio.run(scenario())
        assert [t.search_term for t in everything] == ["b", "c", "a"]
        assert [t.search_term for t in windowed] == ["a"]

    def test_delete_last_searched_before(self, clock: FrozenClock) -> None:
        store = InMemoryTrendStore()
        now = clock.now()

        async def scenario():
            await store.upsert("old", "recipe", lambda cur: _trend("old", now - timedelta(days=40)))
            await store.upsert("new", "recipe", lambda cur: _trend("new", now))
            return await store.delete_last_searched_before(now - timedelta(days=30))

        assert asyncio.run(scenario()) == 1
        assert len(store) == 1


# ---------------------------------------------------------------------------
# TrendTracker – events
# ---------------------------------------------------------------------------


class TestRecordSearch:
    def test_becomes_popular_once_average_clears_threshold(
        self, tracker: TrendTracker, trend_store: InMemoryTrendStore
    ) -> None:
        async def scenario():
            first = await tracker.record_search("kimchi", "recipe", 0, 0.0)
            for _ in range(9):
                last = await tracker.record_search("kimchi", "recipe", 3, 0.8)
            return first, last

        first, last = asyncio.run(scenario())
        assert first.search_count == 1
        assert first.is_popular is False
        assert last.search_count == 10
        assert last.average_relevance_score == pytest.approx(0.72)
        assert last.result_count == 3
        assert last.is_popular is True

    def test_nine_searches_are_not_enough(self, tracker: TrendTracker) -> None:
        async def scenario():
            trend = None
            for _ in range(9):
                trend = await tracker.record_search("ramen", "recipe", 1, 1.0)
            return trend

        assert asyncio.run(scenario()).is_popular is False

    def test_initial_popularity_score(self, tracker: TrendTracker) -> None:
        trend = asyncio.run(tracker.record_search("Pasta", "recipe", 2, 0.6))
        assert trend.search_term == "pasta"
        assert trend.popularity_score == pytest.approx(100 * (0.3 + 0.3 * math.log10(2)))

    @pytest.mark.parametrize("score, expected", [(1.7, 1.0), (-0.2, 0.0), (float("nan"), 0.0)])
    def test_relevance_is_clamped(self, tracker: TrendTracker, score: float, expected: float) -> None:
        trend = asyncio.run(tracker.record_search("x", "recipe", 1, score))
        assert trend.average_relevance_score == expected

    def test_blank_term_is_ignored(self, tracker: TrendTracker, trend_store: InMemoryTrendStore) -> None:
        assert asyncio.run(tracker.record_search("   ", "recipe", 1, 0.5)) is None
        assert len(trend_store) == 0

    def test_timestamps(self, tracker: TrendTracker, clock: FrozenClock) -> None:
        start = clock.now()

        async def scenario():
            await tracker.record_search("x", "recipe", 1, 0.5)
            clock.advance(days=1)
            return await tracker.record_search("x", "recipe", 1, 0.5)

        trend = asyncio.run(scenario())
        assert trend.first_searched == start
        assert trend.last_searched == start + timedelta(days=1)

    def test_concurrent_recordings_are_not_lost(
        self, tracker: TrendTracker, trend_store: InMemoryTrendStore
    ) -> None:
        async def scenario():
            await asyncio.gather(*(tracker.record_search("tacos", "recipe", 1, 0.5) for _ in range(50)))
            return await trend_store.get("tacos", "recipe")

        trend = asyncio.run(scenario())
        assert trend.search_count == 50
        assert trend.version == 50
        assert trend.average_relevance_score == pytest.approx(0.5)

    def test_types_are_tracked_separately(self, tracker: TrendTracker, trend_store: InMemoryTrendStore) -> None:
        async def scenario():
            await tracker.record_search("pasta", "recipe", 1, 0.5)
            await tracker.record_search("pasta", "user", 1, 0.5)

        asyncio.run(scenario())
        assert len(trend_store) == 2

    def test_store_failure_is_swallowed(self, clock: FrozenClock) -> None:
        tracker = TrendTracker(_BrokenStore(), clock=clock)
        assert asyncio.run(tracker.record_search("x", "recipe", 1, 0.5)) is None
        assert asyncio.run(tracker.record_click_through("x", "recipe", "r1")) is None


class TestRecordClickThrough:
    def test_click_updates_count_and_popularity(self, tracker: TrendTracker) -> None:
        async def scenario():
            await tracker.record_search("pasta", "recipe", 2, 0.6)
            return await tracker.record_click_through("pasta", "recipe", "r1")

        trend = asyncio.run(scenario())
        assert trend.click_through_count == 1
        assert trend.search_count == 1
        assert trend.popularity_score == pytest.approx(79.0309, abs=1e-3)

    def test_unknown_term_creates_nothing(self, tracker: TrendTracker, trend_store: InMemoryTrendStore) -> None:
        assert asyncio.run(tracker.record_click_through("ghost", "recipe", "r9")) is None
        assert len(trend_store) == 0


# ---------------------------------------------------------------------------
# TrendTracker – queries
# ---------------------------------------------------------------------------


class TestQueries:
    def _seed(self, tracker: TrendTracker, clock: FrozenClock):
        async def seed():
            for term, count in (("pasta", 12), ("rice", 3), ("soup", 6)):
                for _ in range(count):
                    await tracker.record_search(term, "recipe", 1, 0.9)
            await tracker.record_search("bob", "user", 1, 0.9)
            for _ in range(2):
                await tracker.record_click_through("rice", "recipe")
            clock.advance(hours=1)
            await tracker.record_search("tofu", "recipe", 1, 0.9)

        return seed()

    def test_trending_by_type_and_limit(self, tracker: TrendTracker, clock: FrozenClock) -> None:
        async def scenario():
            await self._seed(tracker, clock)
            return (
                await tracker.get_trending_searches("recipe"),
                await tracker.get_trending_searches(limit=2),
            )

        by_type, limited = asyncio.run(scenario())
        assert [t.search_term for t in by_type][:3] == ["pasta", "soup", "rice"]
        assert "bob" not in [t.search_term for t in by_type]
        assert [t.search_term for t in limited] == ["pasta", "soup"]

    def test_trending_window(self, tracker: TrendTracker, clock: FrozenClock) -> None:
        async def scenario():
            await tracker.record_search("old", "recipe", 1, 0.5)
            clock.advance(days=8)
            await tracker.record_search("new", "recipe", 1, 0.5)
            return await tracker.get_trending_searches()

        assert [t.search_term for t in asyncio.run(scenario())] == ["new"]

    def test_popular_and_effective(self, tracker: TrendTracker, clock: FrozenClock) -> None:
        async def scenario():
            await self._seed(tracker, clock)
            return (
                await tracker.get_popular_searches(),
                await tracker.get_most_effective_searches(limit=1),
                await tracker.get_popular_search_terms(limit=2),
                await tracker.get_top_trends(limit=1),
            )

        popular, effective, terms, top = asyncio.run(scenario())
        assert [t.search_term for t in popular] == ["pasta"]
        assert [t.search_term for t in effective] == ["rice"]
        assert terms == ["pasta", "soup"]
        # two clicks on three searches outweigh the volume of the others
        assert [t.search_term for t in top] == ["rice"]

    def test_recent_trends_newest_first(self, tracker: TrendTracker, clock: FrozenClock) -> None:
        async def scenario():
            await self._seed(tracker, clock)
            return await tracker.get_recent_trends()

        recent = asyncio.run(scenario())
        assert recent[0].search_term == "tofu"
        assert len(recent) == 5

    def test_read_failure_is_dependency_failure(self, clock: FrozenClock) -> None:
        tracker = TrendTracker(_BrokenStore(), clock=clock)
        with pytest.raises(DependencyFailureError) as exc_info:
            asyncio.run(tracker.get_popular_searches())
        assert exc_info.value.dependency == "trend_store"


# ---------------------------------------------------------------------------
# TrendTracker – sweep
# ---------------------------------------------------------------------------


class TestSweep:
    def test_promotes_records_that_qualify(
        self, tracker: TrendTracker, trend_store: InMemoryTrendStore, clock: FrozenClock
    ) -> None:
        async def scenario():
            await trend_store.upsert(
                "tofu",
                "recipe",
                lambda cur: _trend("tofu", clock.now(), search_count=12, average_relevance_score=0.9),
            )
            result = await tracker.update_trending_status()
            return result, await trend_store.get("tofu", "recipe")

        result, trend = asyncio.run(scenario())
        assert result.examined == 1
        assert result.promoted == 1
        assert result.conflicts == 0
        assert trend.is_popular is True
        assert trend.popularity_score > 0

    def test_demotes_when_threshold_rises(self, trend_store: InMemoryTrendStore, clock: FrozenClock) -> None:
        tracker = TrendTracker(trend_store, clock=clock)
        stricter = TrendTracker(trend_store, clock=clock, popularity_threshold=20)

        async def scenario():
            for _ in range(10):
                await tracker.record_search("pasta", "recipe", 1, 0.9)
            before = await tracker.get_popular_searches()
            result = await stricter.update_trending_status()
            return before, result, await tracker.get_popular_searches()

        before, result, after = asyncio.run(scenario())
        assert [t.search_term for t in before] == ["pasta"]
        assert result.demoted == 1
        assert after == []

    def test_rescores_as_records_age(
        self, tracker: TrendTracker, trend_store: InMemoryTrendStore, clock: FrozenClock
    ) -> None:
        async def scenario():
            await tracker.record_search("pasta", "recipe", 1, 0.5)
            clock.advance(days=2)
            result = await tracker.update_trending_status()
            again = await tracker.update_trending_status()
            return result, again, await trend_store.get("pasta", "recipe")

        result, again, trend = asyncio.run(scenario())
        assert result.rescored == 1
        assert again.rescored == 0
        assert trend.popularity_score == pytest.approx(100 * (0.3 / 3 + 0.3 * math.log10(2)))

    def test_records_outside_window_are_not_examined(
        self, tracker: TrendTracker, clock: FrozenClock
    ) -> None:
        async def scenario():
            await tracker.record_search("pasta", "recipe", 1, 0.5)
            clock.advance(days=10)
            return await tracker.update_trending_status()

        assert asyncio.run(scenario()).examined == 0

    def test_concurrent_updates_are_counted_as_conflicts(self, clock: FrozenClock) -> None:
        store = _RacingStore()
        tracker = TrendTracker(store, clock=clock)

        async def scenario():
            await store.upsert(
                "tofu",
                "recipe",
                lambda cur: _trend("tofu", clock.now(), search_count=12, average_relevance_score=0.9),
            )
            return await tracker.update_trending_status(), await store.get("tofu", "recipe")

        result, trend = asyncio.run(scenario())
        assert result.promoted == 1
        assert result.conflicts == 1
        assert trend.is_popular is False

    def test_retention_purge(self, trend_store: InMemoryTrendStore, clock: FrozenClock) -> None:
        tracker = TrendTracker(trend_store, clock=clock, retention_days=30)

        async def scenario():
            await tracker.record_search("old", "recipe", 1, 0.5)
            clock.advance(days=31)
            await tracker.record_search("fresh", "recipe", 1, 0.5)
            return await tracker.update_trending_status()

        result = asyncio.run(scenario())
        assert result.purged == 1
        assert asyncio.run(trend_store.get("old", "recipe")) is None

    def test_retention_disabled_by_default(self, tracker: TrendTracker, clock: FrozenClock) -> None:
        async def scenario():
            await tracker.record_search("old", "recipe", 1, 0.5)
            clock.advance(days=400)
            return await tracker.purge_stale()

        assert asyncio.run(scenario()) == 0
