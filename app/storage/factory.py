import logging

from app.core.config import settings
from app.core.redis import init_redis
from app.storage.base import Storage
from app.storage.memory import create_memory_storage
from app.storage.redis_backend import create_redis_storage

logger = logging.getLogger(__name__)


async def build_storage() -> Storage:
    if settings.STORAGE_BACKEND == "redis":
        redis = await init_redis()
        return create_redis_storage(redis)
    if settings.STORAGE_BACKEND != "memory":
        raise ValueError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND!r}")
    logger.warning("Using in-memory storage; bookings are lost on restart")
    return create_memory_storage()
