"""Process-local storage backend. Contents are lost on restart."""
import asyncio
import time
from typing import Dict, List, Optional, Tuple

from app.models.booking import Booking
from app.models.quote_session import QuoteSession
from app.models.user import User
from app.storage.base import BookingRepository, KeyValueCache, QuoteSessionStore, Storage, UserRepository


class MemoryCache(KeyValueCache):
    """Dict-backed cache; expired keys are dropped on read and swept every ``sweep_every`` writes."""

    def __init__(self, sweep_every: int = 256):
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = asyncio.Lock()
        self._sweep_every = sweep_every
        self._writes = 0

    def _live(self, key: str) -> Optional[str]:
        item = self._data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and expires_at <= time.monotonic():
            del self._data[key]
            return None
        return value

    @staticmethod
    def _expiry(ex: Optional[int]) -> Optional[float]:
        return time.monotonic() + ex if ex else None

    def _written(self) -> None:
        self._writes += 1
        if self._writes >= self._sweep_every:
            self._writes = 0
            self.sweep()

    def sweep(self) -> int:
        """Remove every expired key; returns how many were removed."""
        now = time.monotonic()
        expired = [k for k, (_, expires_at) in self._data.items() if expires_at is not None and expires_at <= now]
        for key in expired:
            del self._data[key]
        return len(expired)

    def keys(self, prefix: str = "") -> List[str]:
        return [k for k in list(self._data) if k.startswith(prefix) and self._live(k) is not None]

    async def get(self, key: str) -> Optional[str]:
        return self._live(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> None:
        self._data[key] = (str(value), self._expiry(ex))
        self._written()

    async def incr(self, key: str, ex: Optional[int] = None) -> int:
        async with self._lock:
            current = self._live(key)
            if current is None:
                self._data[key] = ("1", self._expiry(ex))
                count = 1
            else:
                count = int(current) + 1
                self._data[key] = (str(count), self._data[key][1])
            self._written()
            return count

    async def pop(self, key: str) -> Optional[str]:
        value = self._live(key)
        self._data.pop(key, None)
        return value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


class MemorySessionStore(QuoteSessionStore):
    def __init__(self):
        self._sessions: Dict[str, str] = {}

    async def get(self, session_id: str) -> Optional[QuoteSession]:
        raw = self._sessions.get(session_id)
        return QuoteSession.model_validate_json(raw) if raw else None

    async def save(self, session: QuoteSession) -> None:
        self._sessions[session.id] = session.model_dump_json()


class MemoryBookingRepository(BookingRepository):
    def __init__(self):
        self._bookings: Dict[str, Booking] = {}
        self._by_payment: Dict[str, str] = {}

    async def insert(self, booking: Booking) -> bool:
        if booking.booking_id in self._bookings:
            return False
        self._bookings[booking.booking_id] = booking
        self._by_payment.setdefault(booking.payment_id, booking.booking_id)
        return True

    async def update(self, booking: Booking) -> None:
        self._bookings[booking.booking_id] = booking

    async def get(self, booking_id: str) -> Optional[Booking]:
        return self._bookings.get(booking_id)

    async def get_by_payment(self, payment_id: str) -> Optional[Booking]:
        booking_id = self._by_payment.get(payment_id)
        return self._bookings.get(booking_id) if booking_id else None

    async def list_for_user(self, user_id: str, limit: int = 20, offset: int = 0) -> List[Booking]:
        owned = [b for b in self._bookings.values() if b.user_id == user_id]
        owned.sort(key=lambda b: b.created_at, reverse=True)
        return owned[offset:offset + limit]


class MemoryUserRepository(UserRepository):
    def __init__(self):
        self._users: Dict[str, User] = {}

    async def insert(self, user: User) -> bool:
        if await self.get_by_email(user.email) is not None:
            return False
        self._users[user.id] = user
        return True

    async def update(self, user: User) -> None:
        self._users[user.id] = user

    async def get(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        email = email.strip().lower()
        for user in self._users.values():
            if user.email.lower() == email:
                return user
        return None


def create_memory_storage() -> Storage:
    return Storage(
        backend="memory",
        cache=MemoryCache(),
        sessions=MemorySessionStore(),
        bookings=MemoryBookingRepository(),
        users=MemoryUserRepository(),
    )
