"""Application search – TextStore protocol and InMemoryTextStore."""
from __future__ import annotations

import asyncio
import copy
from difflib import SequenceMatcher
from typing import Any, Awaitable, Iterable, Mapping, Protocol, Sequence, TypeVar, runtime_checkable

from meal_search.application.search.query import Constraint, SortDirection, TextQuery
from meal_search.kernel.errors import DependencyFailureError

__all__ = [
    "InMemoryTextStore",
    "TextStore",
    "apply_constraint",
    "field_values",
    "guarded",
    "lookup",
    "matches_text",
    "relevance_of",
    "sort_documents",
    "term_in",
]

Document = dict[str, Any]
T = TypeVar("T")


@runtime_checkable
class TextStore(Protocol):
    """Port: the text-search capability of the document store."""

    async def find(self, collection: str, query: TextQuery) -> list[Document]: ...
    async def count(self, collection: str, query: TextQuery) -> int: ...
    async def distinct(
        self, collection: str, field: str, constraints: Sequence[Constraint] = ()
    ) -> list[Any]: ...
    async def prefix_match(
        self,
        collection: str,
        field: str,
        prefix: str,
        limit: int,
        constraints: Sequence[Constraint] = (),
    ) -> list[str]: ...
    async def get(self, collection: str, id: str) -> Document | None: ...


async def guarded(operation: str, call: Awaitable[T]) -> T:
    """Await a text-store call, re-raising any failure as DependencyFailureError."""
    try:
        return await call
    except DependencyFailureError:
        raise
    except Exception as exc:
        raise DependencyFailureError(
            "text_store", f"Text store {operation} failed", cause=exc, detail={"operation": operation}
        ) from exc


def field_values(doc: Mapping[str, Any], field: str) -> list[str]:
    """String view of *field*: list fields yield their elements, ``None`` yields nothing.

    Dotted names walk into nested documents (``nutrition.calories``).
    """
    value = lookup(doc, field)
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(v) for v in value if v is not None]
    return [str(value)]


def _similar(term: str, text: str, min_similarity: float) -> bool:
    for token in text.split():
        if SequenceMatcher(None, term, token).ratio() >= min_similarity:
            return True
    return False


def term_in(term: str, values: Iterable[str], min_similarity: float | None = None) -> bool:
    """Case-insensitive substring match, or fuzzy token match when *min_similarity* is set."""
    for value in values:
        lowered = value.lower()
        if term in lowered:
            return True
        if min_similarity is not None and _similar(term, lowered, min_similarity):
            return True
    return False


def relevance_of(doc: Mapping[str, Any], query: TextQuery) -> float:
    """Weighted count of (term, field) hits; 0.0 means the document does not match."""
    score = 0.0
    for field in query.text_fields:
        values = field_values(doc, field)
        if not values:
            continue
        weight = query.weight_of(field)
        for term in query.terms:
            if term_in(term, values, query.min_similarity):
                score += weight if weight > 0 else 1e-9
    return score


def matches_text(doc: Mapping[str, Any], query: TextQuery) -> bool:
    return query.is_empty_text or relevance_of(doc, query) > 0


def lookup(doc: Mapping[str, Any], field: str) -> Any:
    value: Any = doc
    for part in field.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


def apply_constraint(doc: Mapping[str, Any], c: Constraint) -> bool:
    val = lookup(doc, c.field)
    # list-valued fields (tags, interests) match when any element matches
    if isinstance(val, (list, tuple, set)) and c.op in ("eq", "in"):
        wanted = c.value if c.op == "in" else [c.value]
        return any(v in wanted for v in val)
    try:
        match c.op:
            case "eq":     return val == c.value
            case "ne":     return val != c.value
            case "in":     return val in c.value
            case "gt":     return val is not None and val > c.value
            case "gte":    return val is not None and val >= c.value
            case "lt":     return val is not None and val < c.value
            case "lte":    return val is not None and val <= c.value
            case "exists": return (val is not None) == bool(c.value)
            case _:        return True
    except TypeError:
        return False


def sort_documents(docs: list[Document], query: TextQuery) -> list[Document]:
    """Stable sort: relevance desc, or by the requested field (missing values last)."""
    if query.by_relevance:
        if query.is_empty_text:
            return docs
        return sorted(docs, key=lambda d: relevance_of(d, query), reverse=True)
    present = [d for d in docs if lookup(d, query.sort.field) is not None]
    missing = [d for d in docs if lookup(d, query.sort.field) is None]
    present.sort(
        key=lambda d: lookup(d, query.sort.field),
        reverse=query.sort.direction is SortDirection.DESC,
    )
    return present + missing


class InMemoryTextStore:
    """TextStore over plain dicts – reference implementation and test double.

    Each collection is a list of documents with an ``"id"`` key; store order
    is insertion order.
    """

    def __init__(self, collections: Mapping[str, Iterable[Mapping[str, Any]]] | None = None) -> None:
        self._collections: dict[str, list[Document]] = {
            name: [dict(d) for d in docs] for name, docs in (collections or {}).items()
        }
        self.calls: list[tuple[str, str]] = []
        self.delay: float = 0.0
        self.fail_with: Exception | None = None

    def add(self, collection: str, *docs: Mapping[str, Any]) -> None:
        self._collections.setdefault(collection, []).extend(dict(d) for d in docs)

    async def _tick(self, op: str, collection: str) -> None:
        self.calls.append((op, collection))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with

    def _select(self, collection: str, query: TextQuery) -> list[Document]:
        docs = self._collections.get(collection, [])
        return [
            d for d in docs
            if all(apply_constraint(d, c) for c in query.constraints) and matches_text(d, query)
        ]

    async def find(self, collection: str, query: TextQuery) -> list[Document]:
        await self._tick("find", collection)
        if query.is_empty:
            return []
        results = sort_documents(self._select(collection, query), query)
        end = None if query.limit is None else query.skip + query.limit
        return [copy.deepcopy(d) for d in results[query.skip:end]]

    async def count(self, collection: str, query: TextQuery) -> int:
        await self._tick("count", collection)
        if query.is_empty:
            return 0
        return len(self._select(collection, query))

    async def distinct(
        self, collection: str, field: str, constraints: Sequence[Constraint] = ()
    ) -> list[Any]:
        await self._tick("distinct", collection)
        seen: list[Any] = []
        for doc in self._collections.get(collection, []):
            if not all(apply_constraint(doc, c) for c in constraints):
                continue
            value = lookup(doc, field)
            for v in value if isinstance(value, list) else [value]:
                if v is not None and v not in seen:
                    seen.append(v)
        return seen

    async def prefix_match(
        self,
        collection: str,
        field: str,
        prefix: str,
        limit: int,
        constraints: Sequence[Constraint] = (),
    ) -> list[str]:
        await self._tick("prefix_match", collection)
        lowered = prefix.lower()
        out: list[str] = []
        for doc in self._collections.get(collection, []):
            if not all(apply_constraint(doc, c) for c in constraints):
                continue
            value = lookup(doc, field)
            if isinstance(value, str) and value.lower().startswith(lowered):
                out.append(value)
                if len(out) >= limit:
                    break
        return out

    async def get(self, collection: str, id: str) -> Document | None:
        await self._tick("get", collection)
        for doc in self._collections.get(collection, []):
            if str(doc.get("id")) == str(id):
                return copy.deepcopy(doc)
        return None
