"""One-time e-mail verification tokens with a TTL."""
import secrets
from typing import Optional

from app.core.config import settings
from app.storage.base import KeyValueCache


def _key(token: str) -> str:
    return f"verify:{token}"


async def issue_verification_token(cache: KeyValueCache, user_id: str, ttl: Optional[int] = None) -> str:
    token = secrets.token_urlsafe(32)
    await cache.set(_key(token), user_id, ex=ttl or settings.EMAIL_VERIFICATION_TTL)
    return token


async def consume_verification_token(cache: KeyValueCache, token: str) -> Optional[str]:
    """Return the user id the token was issued for, at most once."""
    if not token:
        return None
    return await cache.pop(_key(token))
