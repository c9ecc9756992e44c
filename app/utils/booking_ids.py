import secrets
from typing import Awaitable, Callable

from app.core.config import settings

ID_DIGITS = 6


def format_booking_id(prefix: str, number: int, digits: int = ID_DIGITS) -> str:
    return f"{prefix}{number:0{digits}d}"


class SequentialIdGenerator:
    """TX000001, TX000002, ... from an async counter (storage-backed)."""

    def __init__(self, counter: Callable[[], Awaitable[int]], prefix: str | None = None):
        self.counter = counter
        self.prefix = prefix or settings.BOOKING_ID_PREFIX

    async def __call__(self) -> str:
        return format_booking_id(self.prefix, await self.counter())


class RandomIdGenerator:
    def __init__(self, prefix: str | None = None):
        self.prefix = prefix or settings.BOOKING_ID_PREFIX

    async def __call__(self) -> str:
        return format_booking_id(self.prefix, secrets.randbelow(10 ** ID_DIGITS))


def build_id_generator(cache) -> Callable[[], Awaitable[str]]:
    if settings.BOOKING_ID_STRATEGY == "random":
        return RandomIdGenerator()

    async def next_number() -> int:
        return await cache.incr("booking:seq")

    return SequentialIdGenerator(next_number)
