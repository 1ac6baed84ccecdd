"""Application trends – TrendStore protocol and InMemoryTrendStore."""
from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable, Iterable, Literal, Protocol, runtime_checkable

from meal_search.application.trends.model import SearchTrend, TrendKey

__all__ = ["InMemoryTrendStore", "RankField", "TrendMutator", "TrendStore"]

RankField = Literal["search_count", "click_through_count", "popularity_score"]

# Receives a private copy of the current record (None when absent) and
# returns the record to store, or None to leave the store untouched.
TrendMutator = Callable[[SearchTrend | None], SearchTrend | None]


@runtime_checkable
class TrendStore(Protocol):
    """Port: persistence of trend records keyed by ``(term, type)``."""

    async def get(self, term: str, search_type: str) -> SearchTrend | None: ...

    async def upsert(self, term: str, search_type: str, mutate: TrendMutator) -> SearchTrend | None:
        """Apply *mutate* atomically for the key and return the stored record."""
        ...

    async def save_all(self, trends: Iterable[SearchTrend]) -> int:
        """Bulk write; a record whose ``version`` moved on meanwhile is skipped.

        Returns the number of records written.
        """
        ...

    async def find_popular(self) -> list[SearchTrend]: ...
    async def find_searched_since(self, since: datetime) -> list[SearchTrend]: ...
    async def find_first_searched_since(self, since: datetime) -> list[SearchTrend]: ...

    async def top_by(
        self,
        field: RankField,
        limit: int,
        search_type: str | None = None,
        since: datetime | None = None,
    ) -> list[SearchTrend]: ...

    async def delete_last_searched_before(self, cutoff: datetime) -> int: ...


class InMemoryTrendStore:
    """Dict-backed TrendStore.

    Updates of one key are serialised with a per-key ``asyncio.Lock``; reads
    hand out copies so callers can never mutate stored state.
    """

    def __init__(self) -> None:
        self._records: dict[TrendKey, SearchTrend] = {}
        self._locks: dict[TrendKey, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._records)

    def _lock(self, key: TrendKey) -> asyncio.Lock:
        return self._locks.setdefault(key, asyncio.Lock())

    async def get(self, term: str, search_type: str) -> SearchTrend | None:
        record = self._records.get((term, search_type))
        return record.copy() if record is not None else None

    async def upsert(self, term: str, search_type: str, mutate: TrendMutator) -> SearchTrend | None:
        key = (term, search_type)
        async with self._lock(key):
            current = self._records.get(key)
            updated = mutate(current.copy() if current is not None else None)
            if updated is None:
                return None
            updated.version = (current.version if current is not None else 0) + 1
            self._records[key] = updated.copy()
            return updated

    async def save_all(self, trends: Iterable[SearchTrend]) -> int:
        written = 0
        for trend in trends:
            current = self._records.get(trend.key)
            if current is None or current.version != trend.version:
                continue
            self._records[trend.key] = trend.copy(version=trend.version + 1)
            written += 1
        return written

    async def find_popular(self) -> list[SearchTrend]:
        return [t.copy() for t in self._records.values() if t.is_popular]

    async def find_searched_since(self, since: datetime) -> list[SearchTrend]:
        return [t.copy() for t in self._records.values() if t.last_searched >= since]

    async def find_first_searched_since(self, since: datetime) -> list[SearchTrend]:
        return [t.copy() for t in self._records.values() if t.first_searched >= since]

    async def top_by(
        self,
        field: RankField,
        limit: int,
        search_type: str | None = None,
        since: datetime | None = None,
    ) -> list[SearchTrend]:
        candidates = [
            t for t in self._records.values()
            if (search_type is None or t.search_type == search_type)
            and (since is None or t.last_searched >= since)
        ]
        candidates.sort(key=lambda t: getattr(t, field), reverse=True)
        return [t.copy() for t in candidates[:limit]]

    async def delete_last_searched_before(self, cutoff: datetime) -> int:
        stale = [key for key, t in self._records.items() if t.last_searched < cutoff]
        for key in stale:
            del self._records[key]
            self._locks.pop(key, None)
        return len(stale)
