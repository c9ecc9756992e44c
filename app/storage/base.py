"""Storage interfaces injected into the services.

Two backends implement them: ``app.storage.memory`` (development and tests)
and ``app.storage.redis_backend``.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from app.models.booking import Booking
from app.models.quote_session import QuoteSession
from app.models.user import User


class KeyValueCache(ABC):
    """Small TTL key-value store for caches, counters and one-time tokens."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]: ...

    @abstractmethod
    async def set(self, key: str, value: str, ex: Optional[int] = None) -> None: ...

    @abstractmethod
    async def incr(self, key: str, ex: Optional[int] = None) -> int:
        """Increment a counter; ``ex`` applies only when the key is created."""

    @abstractmethod
    async def pop(self, key: str) -> Optional[str]:
        """Atomically read and delete a key."""

    @abstractmethod
    async def delete(self, key: str) -> None: ...


class QuoteSessionStore(ABC):
    @abstractmethod
    async def get(self, session_id: str) -> Optional[QuoteSession]: ...

    @abstractmethod
    async def save(self, session: QuoteSession) -> None: ...


class BookingRepository(ABC):
    @abstractmethod
    async def insert(self, booking: Booking) -> bool:
        """Store a new booking; return False if the id is already taken."""

    @abstractmethod
    async def update(self, booking: Booking) -> None: ...

    @abstractmethod
    async def get(self, booking_id: str) -> Optional[Booking]: ...

    @abstractmethod
    async def get_by_payment(self, payment_id: str) -> Optional[Booking]: ...

    @abstractmethod
    async def list_for_user(self, user_id: str, limit: int = 20, offset: int = 0) -> List[Booking]: ...


class UserRepository(ABC):
    @abstractmethod
    async def insert(self, user: User) -> bool:
        """Store a new user; return False if the e-mail is already registered."""

    @abstractmethod
    async def update(self, user: User) -> None: ...

    @abstractmethod
    async def get(self, user_id: str) -> Optional[User]: ...

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]: ...


@dataclass
class Storage:
    backend: str
    cache: KeyValueCache
    sessions: QuoteSessionStore
    bookings: BookingRepository
    users: UserRepository
