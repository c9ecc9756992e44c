import logging

from fastapi import HTTPException, Request

from app.core.config import settings
from app.core.metrics import rate_limit_exceeded

logger = logging.getLogger(__name__)


def client_key(request: Request, user_id: str | None = None) -> str:
    if user_id:
        return f"user:{user_id}"
    return f"ip:{request.client.host if request.client else 'unknown'}"


async def check_rate_limit(request: Request, user_id: str | None = None):
    cache = request.app.state.storage.cache
    key = f"rl:{client_key(request, user_id)}"
    count = await cache.incr(key, ex=settings.RATE_LIMIT_WINDOW)
    if count > settings.RATE_LIMIT:
        rate_limit_exceeded.inc()
        logger.warning(f"Rate limit exceeded for {key}")
        raise HTTPException(status_code=429, detail="Rate limit exceeded")
