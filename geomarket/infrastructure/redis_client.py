"""Redis async connection pool (campaign locks)."""

import redis.asyncio as aioredis

from geomarket.config import settings

_pool = aioredis.ConnectionPool.from_url(
    settings.redis_url, decode_responses=True
)


async def get_redis() -> aioredis.Redis:
    """Return a client on the shared pool; callers do not close it."""
    return aioredis.Redis(connection_pool=_pool)
