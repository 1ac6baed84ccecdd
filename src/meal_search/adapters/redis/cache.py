"""Redis adapter – RedisNamedCache."""
from __future__ import annotations

import asyncio
import pickle
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")


def _require_redis() -> Any:
    try:
        import redis.asyncio as aioredis
        return aioredis
    except ImportError as exc:
        raise ImportError("Install 'meal-search[redis]' to use the Redis adapter") from exc


def create_client(url: str, **kwargs: Any) -> Any:
    """A ``redis.asyncio`` client that several named caches can share."""
    return _require_redis().from_url(url, **kwargs)


class RedisNamedCache:
    """One named cache stored in Redis.

    Keys embed a per-name generation counter.  :meth:`clear` bumps the
    counter, which makes every existing entry unreachable at once; the
    orphaned keys expire through ``ttl_seconds``.  A load that started before
    a clear writes under the old generation and is never served.
    """

    def __init__(
        self,
        client: Any,
        name: str,
        ttl_seconds: int | None = None,
        prefix: str = "meal_search:cache",
    ) -> None:
        self._client = client
        self.name = name
        self.ttl_seconds = ttl_seconds
        self._prefix = f"{prefix}:{name}"
        self._locks: dict[str, asyncio.Lock] = {}

    @classmethod
    def from_url(cls, url: str, name: str, ttl_seconds: int | None = None, **kwargs: Any) -> "RedisNamedCache":
        return cls(create_client(url, **kwargs), name, ttl_seconds)

    @property
    def generation_key(self) -> str:
        return f"{self._prefix}:generation"

    async def _generation(self) -> int:
        raw = await self._client.get(self.generation_key)
        return int(raw) if raw is not None else 0

    def _entry_key(self, generation: int, key: str) -> str:
        return f"{self._prefix}:{generation}:{key}"

    async def _read(self, generation: int, key: str) -> tuple[bool, Any]:
        raw = await self._client.get(self._entry_key(generation, key))
        if raw is None:
            return False, None
        return True, pickle.loads(raw)

    async def _write(self, generation: int, key: str, value: Any) -> None:
        await self._client.set(self._entry_key(generation, key), pickle.dumps(value), ex=self.ttl_seconds)

    async def get(self, key: str) -> Any:
        _, value = await self._read(await self._generation(), key)
        return value

    async def set(self, key: str, value: Any) -> None:
        await self._write(await self._generation(), key, value)

    async def clear(self) -> None:
        await self._client.incr(self.generation_key)
        self._locks = {}

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[T]]) -> T:
        generation = await self._generation()
        found, value = await self._read(generation, key)
        if found:
            return value

        lock_key = f"{generation}:{key}"
        lock = self._locks.setdefault(lock_key, asyncio.Lock())
        try:
            async with lock:
                found, value = await self._read(generation, key)
                if found:
                    return value
                value = await loader()
                await self._write(generation, key, value)
                return value
        finally:
            if self._locks.get(lock_key) is lock:
                del self._locks[lock_key]

    async def close(self) -> None:
        await self._client.aclose()


__all__ = ["RedisNamedCache", "create_client"]
