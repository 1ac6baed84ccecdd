"""Application cache – CacheRegistry of the named search caches."""
from __future__ import annotations

from typing import Callable, Iterable

from meal_search.application.cache.named import InMemoryNamedCache, NamedCache
from meal_search.observability.logging import get_logger

__all__ = [
    "AUTOCOMPLETE",
    "CACHE_NAMES",
    "CacheRegistry",
    "FACETS",
    "SEARCH_RESULTS",
    "TRENDING",
]

SEARCH_RESULTS = "search_results"
AUTOCOMPLETE = "autocomplete"
TRENDING = "trending"
FACETS = "facets"
CACHE_NAMES = (SEARCH_RESULTS, AUTOCOMPLETE, TRENDING, FACETS)

_log = get_logger(__name__)


class CacheRegistry:
    """Holds every named cache; the maintenance jobs clear them by name."""

    def __init__(self, caches: Iterable[NamedCache]) -> None:
        self._caches: dict[str, NamedCache] = {c.name: c for c in caches}

    @classmethod
    def in_memory(cls, names: Iterable[str] = CACHE_NAMES) -> "CacheRegistry":
        return cls(InMemoryNamedCache(name) for name in names)

    @classmethod
    def build(cls, factory: Callable[[str], NamedCache], names: Iterable[str] = CACHE_NAMES) -> "CacheRegistry":
        return cls(factory(name) for name in names)

    @property
    def names(self) -> list[str]:
        return list(self._caches)

    def __getitem__(self, name: str) -> NamedCache:
        return self._caches[name]

    def __contains__(self, name: object) -> bool:
        return name in self._caches

    async def clear(self, name: str) -> None:
        await self._caches[name].clear()
        _log.info("cache_cleared", cache=name)

    async def clear_all(self) -> None:
        for name in self._caches:
            await self.clear(name)
