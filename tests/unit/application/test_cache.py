"""Unit tests for Application – named search caches."""
import asyncio

import pytest

from meal_search.application.cache import (
    CACHE_NAMES,
    SEARCH_RESULTS,
    CacheKey,
    CacheRegistry,
    InMemoryNamedCache,
    NamedCache,
)


# ---------------------------------------------------------------------------
# CacheKey
# ---------------------------------------------------------------------------

class TestCacheKey:
    def test_for_resource_format(self):
        assert CacheKey.for_resource("facet:recipes", "cuisine_type") == "facet:recipes:cuisine_type"

    def test_for_query_deterministic(self):
        k1 = CacheKey.for_query("search", criteria="abc", facet_fields=None)
        k2 = CacheKey.for_query("search", facet_fields=None, criteria="abc")
        assert k1 == k2

    def test_for_query_different_args(self):
        k1 = CacheKey.for_query("search", criteria="abc")
        k2 = CacheKey.for_query("fuzzy_search", criteria="abc")
        assert k1 != k2

    def test_for_query_prefix(self):
        assert CacheKey.for_query("search", criteria="x").startswith("query:search:")

    def test_for_autocomplete_folds_case(self):
        assert CacheKey.for_autocomplete(" Choc ", "recipe") == "autocomplete:recipe:choc"


# ---------------------------------------------------------------------------
# InMemoryNamedCache
# ---------------------------------------------------------------------------

class TestInMemoryNamedCache:
    def test_protocol(self):
        assert isinstance(InMemoryNamedCache("x"), NamedCache)

    def test_set_get_clear(self):
        cache = InMemoryNamedCache("x")

        async def run():
            await cache.set("k", {"v": 1})
            before = await cache.get("k")
            await cache.clear()
            return before, await cache.get("k")

        assert asyncio.run(run()) == ({"v": 1}, None)
        assert len(cache) == 0

    def test_get_or_load_counts_hits_and_misses(self):
        cache = InMemoryNamedCache("x")
        calls = []

        async def loader():
            calls.append(1)
            return "value"

        async def run():
            return [await cache.get_or_load("k", loader) for _ in range(3)]

        assert asyncio.run(run()) == ["value"] * 3
        assert calls == [1]
        assert (cache.hits, cache.misses) == (2, 1)

    def test_none_is_a_cacheable_value(self):
        cache = InMemoryNamedCache("x")
        calls = []

        async def loader():
            calls.append(1)
            return None

        async def run():
            await cache.get_or_load("k", loader)
            await cache.get_or_load("k", loader)

        asyncio.run(run())
        assert calls == [1]

    def test_concurrent_loads_run_once(self):
        cache = InMemoryNamedCache("x")
        calls = []

        async def loader():
            calls.append(1)
            await asyncio.sleep(0.01)
            return 42

        async def run():
            return await asyncio.gather(*(cache.get_or_load("k", loader) for _ in range(20)))

        assert asyncio.run(run()) == [42] * 20
        assert calls == [1]

    def test_failed_load_is_not_cached(self):
        cache = InMemoryNamedCache("x")
        attempts = []

        async def loader():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("boom")
            return "ok"

        async def run():
            with pytest.raises(RuntimeError):
                await cache.get_or_load("k", loader)
            return await cache.get_or_load("k", loader)

        assert asyncio.run(run()) == "ok"
        assert len(attempts) == 2

    def test_clear_during_load_does_not_resurrect_entry(self):
        cache = InMemoryNamedCache("x")

        async def run():
            release = asyncio.Event()

            async def loader():
                await release.wait()
                return "stale"

            task = asyncio.create_task(cache.get_or_load("k", loader))
            await asyncio.sleep(0)
            await cache.clear()
            release.set()
            value = await task
            return value, await cache.get("k")

        value, after = asyncio.run(run())
        assert value == "stale"
        assert after is None


# ---------------------------------------------------------------------------
# CacheRegistry
# ---------------------------------------------------------------------------

class TestCacheRegistry:
    def test_in_memory_has_every_named_cache(self):
        registry = CacheRegistry.in_memory()
        assert registry.names == list(CACHE_NAMES)
        assert SEARCH_RESULTS in registry
        assert "sessions" not in registry
        with pytest.raises(KeyError):
            registry["sessions"]

    def test_build_uses_factory(self):
        built = []

        def factory(name):
            built.append(name)
            return InMemoryNamedCache(name)

        CacheRegistry.build(factory, names=["a", "b"])
        assert built == ["a", "b"]

    def test_clear_one_and_all(self):
        registry = CacheRegistry.in_memory()

        async def run():
            for name in registry.names:
                await registry[name].set("k", name)
            await registry.clear(SEARCH_RESULTS)
            one = [await registry[n].get("k") for n in registry.names]
            await registry.clear_all()
            return one, [await registry[n].get("k") for n in registry.names]

        one, everything = asyncio.run(run())
        assert one == [None, "autocomplete", "trending", "facets"]
        assert everything == [None] * 4
