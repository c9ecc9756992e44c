from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.core.enums import BookingStatus, PaymentStatus, QuoteState
from app.models.booking import Address, TripDetails
from app.schemas.quote import FareOut


class StartBookingRequest(BaseModel):
    session_id: str
    email: str
    phone: str
    scheduled_date: Optional[str] = None
    scheduled_time: Optional[str] = None
    passengers: int = Field(1, ge=1, le=8)
    luggage: int = Field(0, ge=0, le=10)
    notes: Optional[str] = Field(None, max_length=500)

    def trip(self) -> TripDetails:
        return TripDetails(
            scheduled_date=self.scheduled_date,
            scheduled_time=self.scheduled_time,
            passengers=self.passengers,
            luggage=self.luggage,
            notes=self.notes,
        )


class CompleteBookingRequest(BaseModel):
    session_id: str
    payment_confirmation_id: str


class PaymentOut(BaseModel):
    id: str
    status: PaymentStatus
    redirect_url: Optional[str] = None


class BookingOut(BaseModel):
    booking_id: str
    status: BookingStatus
    pickup: Address
    destination: Address
    distance_km: float
    fare: FareOut
    contact_email: str
    contact_phone: str
    scheduled_date: Optional[str] = None
    scheduled_time: Optional[str] = None
    passengers: int
    luggage: int
    notes: Optional[str] = None
    user_id: Optional[str] = None
    payment_id: str
    created_at: datetime
    cancelled_at: Optional[datetime] = None


class BookingStartOut(BaseModel):
    session_id: str
    state: QuoteState
    amount_minor: int
    currency: str
    payment: PaymentOut
    booking: Optional[BookingOut] = None
