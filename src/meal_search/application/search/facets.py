"""Application search – facet values and query suggestions."""
from __future__ import annotations

import re
from typing import Any, Sequence

from meal_search.application.cache import CacheKey, NamedCache
from meal_search.application.search.profiles import EntityProfile
from meal_search.application.search.query import RELEVANCE, SortSpec, TextQuery
from meal_search.application.search.store import TextStore, guarded, lookup

__all__ = ["FacetGenerator", "SuggestionGenerator"]

_WORD = re.compile(r"[\w'-]+")


def _sorted_values(values: list[Any]) -> list[Any]:
    values = [v for v in values if v is not None]
    try:
        return sorted(values)
    except TypeError:
        return sorted(values, key=str)


class FacetGenerator:
    """Distinct corpus values of a profile's facet fields.

    Values are memoised per ``(collection, field)`` in *cache* when given and
    refreshed whenever that cache is cleared.
    """

    def __init__(self, store: TextStore, cache: NamedCache | None = None) -> None:
        self._store = store
        self._cache = cache

    async def values(self, profile: EntityProfile, field: str) -> list[Any]:
        async def load() -> list[Any]:
            raw = await guarded("distinct", self._store.distinct(profile.collection, field))
            return _sorted_values(list(raw))

        if self._cache is None:
            return await load()
        key = CacheKey.for_resource(f"facet:{profile.collection}", field)
        return list(await self._cache.get_or_load(key, load))

    async def generate(
        self, profile: EntityProfile, fields: Sequence[str] | None = None
    ) -> dict[str, list[Any]]:
        """Facet map of *profile*, restricted to *fields* the profile knows."""
        wanted = profile.facet_fields if fields is None else [f for f in fields if f in profile.facet_fields]
        return {name: await self.values(profile, name) for name in wanted}


class SuggestionGenerator:
    """Short related strings drawn from a bounded secondary query."""

    def __init__(
        self,
        store: TextStore,
        limit: int = 5,
        scan_limit: int = 10,
        max_length: int = 40,
    ) -> None:
        self._store = store
        self.limit = limit
        self.scan_limit = scan_limit
        self.max_length = max_length

    def _candidates(self, value: Any, terms: Sequence[str]) -> list[str]:
        def hit(text: str) -> bool:
            lowered = text.lower()
            return any(t in lowered for t in terms)

        if isinstance(value, (list, tuple, set)):
            return [str(v).strip() for v in value if v is not None and hit(str(v))]
        if not isinstance(value, str) or not hit(value):
            return []
        text = value.strip()
        if len(text) <= self.max_length:
            return [text]
        return [word for word in _WORD.findall(text) if hit(word)]

    async def suggest(
        self,
        profile: EntityProfile,
        query: str,
        terms: Sequence[str],
        public_only: bool = True,
    ) -> list[str]:
        if not terms or not profile.suggestion_fields:
            return []
        secondary = TextQuery(
            terms=tuple(terms),
            text_fields=profile.suggestion_fields,
            constraints=(profile.public_constraint,) if public_only else (),
            sort=SortSpec(RELEVANCE),
            limit=self.scan_limit,
        )
        docs = await guarded("find", self._store.find(profile.collection, secondary))

        excluded = query.strip().lower()
        seen: set[str] = set()
        out: list[str] = []
        for doc in docs:
            for field in profile.suggestion_fields:
                for candidate in self._candidates(lookup(doc, field), terms):
                    folded = candidate.lower()
                    if not candidate or folded == excluded or folded in seen:
                        continue
                    seen.add(folded)
                    out.append(candidate)
                    if len(out) >= self.limit:
                        return out
        return out
