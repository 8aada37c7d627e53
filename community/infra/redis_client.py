from functools import lru_cache

import redis
import redis.asyncio as aioredis

from community.core.config import settings


@lru_cache(maxsize=1)
def get_redis() -> redis.Redis:
    return redis.Redis.from_url(settings.redis_url, decode_responses=True)


@lru_cache(maxsize=1)
def get_async_redis() -> aioredis.Redis:
    return aioredis.Redis.from_url(settings.redis_url, decode_responses=True)
