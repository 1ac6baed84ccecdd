"""Redis adapter – named caches shared across processes."""
from meal_search.adapters.redis.cache import RedisNamedCache, create_client

__all__ = ["RedisNamedCache", "create_client"]
