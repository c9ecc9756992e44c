import json
from typing import Optional

from fastapi import HTTPException

from app.core.config import settings
from app.storage.base import KeyValueCache
from app.utils.hashing import payload_hash


async def get_idempotent(cache: KeyValueCache, key: Optional[str], request: dict):
    """Return the stored response for ``key``, or None.

    Reusing a key with a different request body is a client error.
    """
    if not key:
        return None
    v = await cache.get(f"idemp:{key}")
    if not v:
        return None
    stored = json.loads(v)
    if stored["request"] != payload_hash(request):
        raise HTTPException(status_code=422, detail="Idempotency-Key was already used with a different request")
    return stored["response"]


async def set_idempotent(cache: KeyValueCache, key: Optional[str], request: dict, response: dict):
    if not key:
        return
    value = {"request": payload_hash(request), "response": response}
    await cache.set(f"idemp:{key}", json.dumps(value, default=str), ex=settings.IDEMPOTENCY_TTL)
