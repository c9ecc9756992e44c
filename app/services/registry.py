import asyncio
import logging
from typing import Awaitable, Callable, List

from app.core.enums import BookingStatus
from app.core.errors import AlreadyCancelled, NotFound
from app.core.metrics import bookings_cancelled, bookings_registered
from app.models.booking import Booking, BookingDraft
from app.storage.base import BookingRepository

logger = logging.getLogger(__name__)

CANCELLABLE = {BookingStatus.PENDING, BookingStatus.CONFIRMED}


class BookingRegistry:
    """Owns confirmed bookings and the booking id space."""

    def __init__(
        self,
        repository: BookingRepository,
        id_generator: Callable[[], Awaitable[str]],
        max_attempts: int = 10,
    ):
        self.repository = repository
        self.id_generator = id_generator
        self.max_attempts = max_attempts
        self._lock = asyncio.Lock()

    async def register(self, draft: BookingDraft, status: BookingStatus = BookingStatus.CONFIRMED) -> Booking:
        async with self._lock:
            existing = await self.repository.get_by_payment(draft.payment_id)
            if existing is not None:
                logger.info(f"Payment {draft.payment_id} already registered as {existing.booking_id}")
                return existing

            for attempt in range(1, self.max_attempts + 1):
                booking_id = await self.id_generator()
                booking = Booking.from_draft(draft, booking_id, status)
                if await self.repository.insert(booking):
                    bookings_registered.labels(status=str(status)).inc()
                    logger.info(f"Registered booking {booking_id} for session {draft.session_id}")
                    return booking
                logger.warning(f"Booking id collision on {booking_id} (attempt {attempt}/{self.max_attempts})")

        raise RuntimeError(f"Could not allocate a unique booking id after {self.max_attempts} attempts")

    async def find(self, booking_id: str) -> Booking:
        booking = await self.repository.get(booking_id)
        if booking is None:
            raise NotFound(f"Booking {booking_id} not found", booking_id=booking_id)
        return booking

    async def cancel(self, booking_id: str) -> Booking:
        async with self._lock:
            booking = await self.find(booking_id)
            if booking.status not in CANCELLABLE:
                raise AlreadyCancelled(f"Booking {booking_id} is already cancelled", booking_id=booking_id)
            cancelled = booking.with_status(BookingStatus.CANCELLED)
            await self.repository.update(cancelled)
        bookings_cancelled.inc()
        logger.info(f"Cancelled booking {booking_id}")
        return cancelled

    async def list_for_user(self, user_id: str, limit: int = 20, offset: int = 0) -> List[Booking]:
        return await self.repository.list_for_user(user_id, limit=limit, offset=offset)
