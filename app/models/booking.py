from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.core.enums import BookingStatus
from app.models.fare import FareBreakdown


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_label(label: str) -> str:
    return " ".join((label or "").split())


class Address(BaseModel):
    """Display label with optional coordinates; compared by label only."""

    model_config = ConfigDict(frozen=True)

    label: str
    lat: Optional[float] = None
    lng: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None

    def __eq__(self, other):
        if not isinstance(other, Address):
            return NotImplemented
        return normalize_label(self.label).lower() == normalize_label(other.label).lower()

    def __hash__(self):
        return hash(normalize_label(self.label).lower())


class RoutePoints(BaseModel):
    model_config = ConfigDict(frozen=True)

    pickup: Address
    destination: Address


class TripDetails(BaseModel):
    scheduled_date: Optional[str] = None
    scheduled_time: Optional[str] = None
    passengers: int = Field(1, ge=1, le=8)
    luggage: int = Field(0, ge=0, le=10)
    notes: Optional[str] = Field(None, max_length=500)


class BookingDraft(BaseModel):
    model_config = ConfigDict(frozen=True)

    session_id: str
    route: RoutePoints
    distance_km: float
    fare: FareBreakdown
    contact_email: str
    contact_phone: str
    trip: TripDetails
    user_id: Optional[str] = None
    payment_id: str


class Booking(BookingDraft):
    """Registered booking. Only ``status`` may change, via ``with_status``."""

    booking_id: str
    status: BookingStatus = BookingStatus.CONFIRMED
    created_at: datetime = Field(default_factory=_utcnow)
    cancelled_at: Optional[datetime] = None

    @classmethod
    def from_draft(cls, draft: BookingDraft, booking_id: str, status: BookingStatus) -> "Booking":
        return cls(booking_id=booking_id, status=status, **draft.model_dump())

    def with_status(self, status: BookingStatus) -> "Booking":
        update = {"status": status}
        if status == BookingStatus.CANCELLED:
            update["cancelled_at"] = _utcnow()
        return self.model_copy(update=update)
