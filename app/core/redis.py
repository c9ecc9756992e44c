import logging
from typing import Optional
from redis.asyncio import Redis
from redis.exceptions import RedisError
from app.core.config import settings

logger = logging.getLogger(__name__)

redis: Optional[Redis] = None


async def init_redis(url: Optional[str] = None) -> Redis:
    """Connect the shared client used by the redis storage backend."""
    global redis
    client = Redis.from_url(url or settings.REDIS_URL, decode_responses=True)
    try:
        await client.ping()
    except RedisError as e:
        logger.error(f"Failed to connect to Redis at {url or settings.REDIS_URL}: {e}")
        await client.aclose()
        raise
    logger.info("Connected to Redis")
    redis = client
    return redis


async def ping_redis() -> bool:
    if redis is None:
        return False
    try:
        return bool(await redis.ping())
    except RedisError as e:
        logger.warning(f"Redis ping failed: {e}")
        return False


async def close_redis():
    global redis
    if redis is not None:
        await redis.aclose()
        redis = None


def get_redis() -> Optional[Redis]:
    """Shared client, or None when storage runs in memory."""
    return redis
