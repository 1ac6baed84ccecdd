"""MongoDB adapter – MongoTextStore."""

from __future__ import annotations

import re
from typing import Any, Sequence

from meal_search.application.search.query import Constraint, SortDirection, TextQuery
from meal_search.application.search.store import matches_text, sort_documents

_OPS = {"ne": "$ne", "gt": "$gt", "gte": "$gte", "lt": "$lt", "lte": "$lte"}


def constraint_filter(c: Constraint) -> dict[str, Any]:
    """Translate one constraint into a MongoDB filter clause.

    Equality and ``in`` match array elements natively, so list fields such
    as ``tags`` need no special casing.
    """
    match c.op:
        case "eq":
            return {c.field: c.value}
        case "in":
            return {c.field: {"$in": list(c.value)}}
        case "exists":
            if c.value:
                return {c.field: {"$exists": True, "$ne": None}}
            return {c.field: None}
        case op if op in _OPS:
            return {c.field: {_OPS[op]: c.value}}
        case _:
            return {}


def text_filter(query: TextQuery) -> dict[str, Any]:
    """Match-any of the escaped terms, case-insensitively, over the text fields."""
    if query.is_empty_text or query.min_similarity is not None:
        return {}
    clauses = [
        {field: {"$regex": re.escape(term), "$options": "i"}}
        for field in query.text_fields
        for term in query.terms
    ]
    return {"$or": clauses} if clauses else {}


def build_filter(query: TextQuery, constraints: Sequence[Constraint] | None = None) -> dict[str, Any]:
    parts = [constraint_filter(c) for c in (query.constraints if constraints is None else constraints)]
    parts.append(text_filter(query))
    parts = [p for p in parts if p]
    if not parts:
        return {}
    if len(parts) == 1:
        return parts[0]
    return {"$and": parts}


def _from_document(doc: dict[str, Any]) -> dict[str, Any]:
    out = dict(doc)
    raw_id = out.pop("_id", None)
    if raw_id is not None:
        out.setdefault("id", str(raw_id))
    return out


class MongoTextStore:
    """TextStore over a motor database.

    Constraints and term regexes are pushed down to MongoDB.  Relevance
    ranking and fuzzy matching happen in Python on a scan capped at
    ``max_scan`` documents, with the same helpers as the in-memory store.
    """

    def __init__(self, database: Any, max_scan: int = 1000) -> None:
        self._db = database
        self.max_scan = max_scan

    def _col(self, collection: str) -> Any:
        return self._db[collection]

    def _needs_scan(self, query: TextQuery) -> bool:
        return query.min_similarity is not None or (query.by_relevance and not query.is_empty_text)

    async def _scan(self, collection: str, query: TextQuery) -> list[dict[str, Any]]:
        cursor = self._col(collection).find(build_filter(query)).limit(self.max_scan)
        docs = [_from_document(doc) async for doc in cursor]
        if query.min_similarity is not None:
            docs = [d for d in docs if matches_text(d, query)]
        return docs

    async def find(self, collection: str, query: TextQuery) -> list[dict[str, Any]]:
        if query.is_empty:
            return []
        if self._needs_scan(query):
            docs = sort_documents(await self._scan(collection, query), query)
            end = None if query.limit is None else query.skip + query.limit
            return docs[query.skip:end]

        cursor = self._col(collection).find(build_filter(query))
        if not query.by_relevance:
            direction = -1 if query.sort.direction is SortDirection.DESC else 1
            cursor = cursor.sort(query.sort.field, direction)
        if query.skip:
            cursor = cursor.skip(query.skip)
        if query.limit is not None:
            cursor = cursor.limit(query.limit)
        return [_from_document(doc) async for doc in cursor]

    async def count(self, collection: str, query: TextQuery) -> int:
        if query.is_empty:
            return 0
        if query.min_similarity is not None:
            return len(await self._scan(collection, query))
        return await self._col(collection).count_documents(build_filter(query))

    async def distinct(
        self, collection: str, field: str, constraints: Sequence[Constraint] = ()
    ) -> list[Any]:
        filter_dict = build_filter(TextQuery(), constraints)
        return list(await self._col(collection).distinct(field, filter_dict))

    async def prefix_match(
        self,
        collection: str,
        field: str,
        prefix: str,
        limit: int,
        constraints: Sequence[Constraint] = (),
    ) -> list[str]:
        parts = [constraint_filter(c) for c in constraints]
        parts.append({field: {"$regex": f"^{re.escape(prefix)}", "$options": "i"}})
        cursor = self._col(collection).find({"$and": parts}, {field: 1}).limit(limit)
        return [doc[field] async for doc in cursor if isinstance(doc.get(field), str)]

    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        from bson import ObjectId  # noqa: PLC0415

        candidates: list[Any] = [id]
        if ObjectId.is_valid(id):
            candidates.append(ObjectId(id))
        doc = await self._col(collection).find_one({"_id": {"$in": candidates}})
        return _from_document(doc) if doc is not None else None


__all__ = ["MongoTextStore", "build_filter", "constraint_filter", "text_filter"]
