"""Redis storage backend.

Key layout:
    session:{id}              quote session JSON (expires after QUOTE_SESSION_TTL)
    booking:{id}              booking JSON
    booking:payment:{pid}     booking id registered for a payment
    bookings:user:{uid}       sorted set of booking ids by creation time
    user:{id}                 user JSON
    user:email:{email}        user id
"""
import logging
from typing import List, Optional

from redis.asyncio import Redis

from app.core.config import settings
from app.models.booking import Booking
from app.models.quote_session import QuoteSession
from app.models.user import User
from app.storage.base import BookingRepository, KeyValueCache, QuoteSessionStore, Storage, UserRepository

logger = logging.getLogger(__name__)


class RedisCache(KeyValueCache):
    def __init__(self, redis: Redis):
        self.redis = redis

    async def get(self, key: str) -> Optional[str]:
        return await self.redis.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> None:
        await self.redis.set(key, value, ex=ex)

    async def incr(self, key: str, ex: Optional[int] = None) -> int:
        count = await self.redis.incr(key)
        if count == 1 and ex:
            await self.redis.expire(key, ex)
        return int(count)

    async def pop(self, key: str) -> Optional[str]:
        return await self.redis.getdel(key)

    async def delete(self, key: str) -> None:
        await self.redis.delete(key)


class RedisSessionStore(QuoteSessionStore):
    def __init__(self, redis: Redis, ttl: int):
        self.redis = redis
        self.ttl = ttl

    async def get(self, session_id: str) -> Optional[QuoteSession]:
        raw = await self.redis.get(f"session:{session_id}")
        return QuoteSession.model_validate_json(raw) if raw else None

    async def save(self, session: QuoteSession) -> None:
        await self.redis.set(f"session:{session.id}", session.model_dump_json(), ex=self.ttl)


class RedisBookingRepository(BookingRepository):
    def __init__(self, redis: Redis):
        self.redis = redis

    async def insert(self, booking: Booking) -> bool:
        created = await self.redis.set(f"booking:{booking.booking_id}", booking.model_dump_json(), nx=True)
        if not created:
            return False
        await self.redis.set(f"booking:payment:{booking.payment_id}", booking.booking_id, nx=True)
        if booking.user_id:
            await self.redis.zadd(
                f"bookings:user:{booking.user_id}",
                {booking.booking_id: booking.created_at.timestamp()},
            )
        return True

    async def update(self, booking: Booking) -> None:
        await self.redis.set(f"booking:{booking.booking_id}", booking.model_dump_json())

    async def get(self, booking_id: str) -> Optional[Booking]:
        raw = await self.redis.get(f"booking:{booking_id}")
        return Booking.model_validate_json(raw) if raw else None

    async def get_by_payment(self, payment_id: str) -> Optional[Booking]:
        booking_id = await self.redis.get(f"booking:payment:{payment_id}")
        return await self.get(booking_id) if booking_id else None

    async def list_for_user(self, user_id: str, limit: int = 20, offset: int = 0) -> List[Booking]:
        ids = await self.redis.zrevrange(f"bookings:user:{user_id}", offset, offset + limit - 1)
        bookings = []
        for booking_id in ids:
            booking = await self.get(booking_id)
            if booking is not None:
                bookings.append(booking)
        return bookings


class RedisUserRepository(UserRepository):
    def __init__(self, redis: Redis):
        self.redis = redis

    async def insert(self, user: User) -> bool:
        claimed = await self.redis.set(f"user:email:{user.email.strip().lower()}", user.id, nx=True)
        if not claimed:
            return False
        await self.redis.set(f"user:{user.id}", user.model_dump_json())
        return True

    async def update(self, user: User) -> None:
        await self.redis.set(f"user:{user.id}", user.model_dump_json())

    async def get(self, user_id: str) -> Optional[User]:
        raw = await self.redis.get(f"user:{user_id}")
        return User.model_validate_json(raw) if raw else None

    async def get_by_email(self, email: str) -> Optional[User]:
        user_id = await self.redis.get(f"user:email:{email.strip().lower()}")
        return await self.get(user_id) if user_id else None


def create_redis_storage(redis: Redis) -> Storage:
    return Storage(
        backend="redis",
        cache=RedisCache(redis),
        sessions=RedisSessionStore(redis, settings.QUOTE_SESSION_TTL),
        bookings=RedisBookingRepository(redis),
        users=RedisUserRepository(redis),
    )
