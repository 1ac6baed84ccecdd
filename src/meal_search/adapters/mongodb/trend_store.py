"""MongoDB adapter – MongoTrendStore."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Iterable

from meal_search.application.trends.model import SearchTrend
from meal_search.application.trends.store import RankField, TrendMutator
from meal_search.kernel.errors import ConcurrentUpdateError
from meal_search.observability.logging import get_logger

_log = get_logger(__name__)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


class MongoTrendStore:
    """MongoDB-backed trend store.

    Each ``(search_term, search_type)`` pair is one document.  Updates use
    optimistic concurrency: the write only lands when ``version`` still
    holds the value that was read, otherwise the read-modify-write is
    retried up to ``max_retries`` times.  Call :meth:`create_indexes` once
    on startup.
    """

    COLLECTION_NAME = "search_trends"

    def __init__(self, collection: Any, max_retries: int = 5) -> None:
        self._col = collection
        self.max_retries = max_retries

    # ------------------------------------------------------------------
    # Index management
    # ------------------------------------------------------------------

    @classmethod
    async def create_indexes(cls, collection: Any) -> None:
        """Create the key and query indexes.  Idempotent."""
        await collection.create_index(
            [("search_term", 1), ("search_type", 1)],
            unique=True,
            name="uq_trend_term_type",
        )
        await collection.create_index("last_searched", name="idx_trend_last_searched")
        await collection.create_index(
            "is_popular",
            partialFilterExpression={"is_popular": True},
            name="idx_trend_popular",
        )

    async def ensure_indexes(self) -> None:
        await self.create_indexes(self._col)

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    @staticmethod
    def _key(term: str, search_type: str) -> dict[str, Any]:
        return {"search_term": term, "search_type": search_type}

    @staticmethod
    def _from_doc(doc: dict[str, Any]) -> SearchTrend:
        trend = SearchTrend.from_document(doc)
        trend.first_searched = _aware(trend.first_searched)
        trend.last_searched = _aware(trend.last_searched)
        return trend

    async def _find(self, filter_dict: dict[str, Any]) -> list[SearchTrend]:
        return [self._from_doc(doc) async for doc in self._col.find(filter_dict)]

    # ------------------------------------------------------------------
    # TrendStore interface
    # ------------------------------------------------------------------

    async def get(self, term: str, search_type: str) -> SearchTrend | None:
        doc = await self._col.find_one(self._key(term, search_type))
        return self._from_doc(doc) if doc is not None else None

    async def upsert(self, term: str, search_type: str, mutate: TrendMutator) -> SearchTrend | None:
        from pymongo.errors import DuplicateKeyError  # noqa: PLC0415

        key = self._key(term, search_type)
        for attempt in range(1, self.max_retries + 1):
            current = await self.get(term, search_type)
            expected = current.version if current is not None else 0
            updated = mutate(current)
            if updated is None:
                return None
            updated.version = expected + 1
            if current is None:
                try:
                    result = await self._col.insert_one(updated.to_document())
                except DuplicateKeyError:
                    _log.debug("trend_insert_raced", term=term, search_type=search_type, attempt=attempt)
                    continue
                updated.id = str(result.inserted_id)
                return updated
            result = await self._col.replace_one({**key, "version": expected}, updated.to_document())
            if result.matched_count == 1:
                return updated
            _log.debug("trend_update_raced", term=term, search_type=search_type, attempt=attempt)
        raise ConcurrentUpdateError(f"{search_type}:{term}", self.max_retries)

    async def save_all(self, trends: Iterable[SearchTrend]) -> int:
        from pymongo import ReplaceOne  # noqa: PLC0415

        ops = [
            ReplaceOne(
                {**self._key(t.search_term, t.search_type), "version": t.version},
                t.copy(version=t.version + 1).to_document(),
            )
            for t in trends
        ]
        if not ops:
            return 0
        result = await self._col.bulk_write(ops, ordered=False)
        return result.matched_count

    async def find_popular(self) -> list[SearchTrend]:
        return await self._find({"is_popular": True})

    async def find_searched_since(self, since: datetime) -> list[SearchTrend]:
        return await self._find({"last_searched": {"$gte": since}})

    async def find_first_searched_since(self, since: datetime) -> list[SearchTrend]:
        return await self._find({"first_searched": {"$gte": since}})

    async def top_by(
        self,
        field: RankField,
        limit: int,
        search_type: str | None = None,
        since: datetime | None = None,
    ) -> list[SearchTrend]:
        filter_dict: dict[str, Any] = {}
        if search_type is not None:
            filter_dict["search_type"] = search_type
        if since is not None:
            filter_dict["last_searched"] = {"$gte": since}
        cursor = self._col.find(filter_dict).sort(field, -1).limit(limit)
        return [self._from_doc(doc) async for doc in cursor]

    async def delete_last_searched_before(self, cutoff: datetime) -> int:
        result = await self._col.delete_many({"last_searched": {"$lt": cutoff}})
        return result.deleted_count


__all__ = ["MongoTrendStore"]
