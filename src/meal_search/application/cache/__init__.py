"""Application cache – named, schedule-cleared caches."""
from meal_search.application.cache.keys import CacheKey
from meal_search.application.cache.named import InMemoryNamedCache, NamedCache
from meal_search.application.cache.registry import (
    AUTOCOMPLETE,
    CACHE_NAMES,
    FACETS,
    SEARCH_RESULTS,
    TRENDING,
    CacheRegistry,
)

__all__ = [
    "AUTOCOMPLETE",
    "CACHE_NAMES",
    "CacheKey",
    "CacheRegistry",
    "FACETS",
    "InMemoryNamedCache",
    "NamedCache",
    "SEARCH_RESULTS",
    "TRENDING",
]
