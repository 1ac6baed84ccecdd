"""Application cache – NamedCache port and the in-process implementation."""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Protocol, TypeVar, runtime_checkable

__all__ = ["InMemoryNamedCache", "NamedCache"]

T = TypeVar("T")

_MISSING = object()


@runtime_checkable
class NamedCache(Protocol):
    """One independently clearable cache (``search_results``, ``autocomplete``, ...)."""

    name: str

    async def get(self, key: str) -> Any: ...
    async def set(self, key: str, value: Any) -> None: ...
    async def clear(self) -> None: ...
    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[T]]) -> T: ...


class InMemoryNamedCache:
    """Dict-backed cache whose ``clear`` swaps in a fresh map.

    Readers that already hold the previous map finish against it, and a load
    that started before a clear writes into the map it started with, so a
    clear never exposes a half-built entry and never resurrects a stale one.
    Only one coroutine loads a given key at a time (stampede protection).
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._data: dict[str, Any] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._data)

    async def get(self, key: str) -> Any:
        return self._data.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    async def clear(self) -> None:
        self._data = {}
        self._locks = {}

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[T]]) -> T:
        data = self._data
        cached = data.get(key, _MISSING)
        if cached is not _MISSING:
            self.hits += 1
            return cached  # type: ignore[return-value]

        locks = self._locks
        lock = locks.setdefault(key, asyncio.Lock())
        async with lock:
            # double-check after acquiring lock
            cached = data.get(key, _MISSING)
            if cached is not _MISSING:
                self.hits += 1
                return cached  # type: ignore[return-value]
            self.misses += 1
            value = await loader()
            data[key] = value
            return value
