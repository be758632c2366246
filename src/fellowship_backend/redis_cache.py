from typing import Optional
from aiocache import Cache, BaseCache
from fellowship_backend.settings import settings

_cache: Optional[BaseCache] = None

def _build_cache() -> BaseCache:
    if settings.CACHE_BACKEND == "memory":
        return Cache(Cache.MEMORY)

    return Cache(
        Cache.REDIS,
        endpoint=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        password=settings.REDIS_PASSWORD if settings.REDIS_PASSWORD else None,
        pool_max_size=10,
        db=0
    )

async def get_redis_client() -> BaseCache:
    global _cache
    if _cache is None:
        _cache = _build_cache()
    return _cache
