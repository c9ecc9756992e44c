from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, field_validator

from app.core.enums import QuoteState, VehicleClass
from app.models.booking import Address


class QuoteRequest(BaseModel):
    pickup: Address
    destination: Address
    vehicle_class: VehicleClass = VehicleClass.STANDARD

    @field_validator("pickup", "destination", mode="before")
    @classmethod
    def coerce_address(cls, value):
        if isinstance(value, str):
            return {"label": value}
        return value


class RequoteRequest(BaseModel):
    vehicle_class: Optional[VehicleClass] = None


class FareOut(BaseModel):
    distance_km: float
    vehicle_class: VehicleClass
    ride_fare: Decimal
    service_fee: Decimal
    subtotal: Decimal
    vat_rate: Decimal
    vat: Decimal
    total: Decimal
    total_minor: int
    currency: str


class QuoteOut(BaseModel):
    session_id: str
    state: QuoteState
    vehicle_class: VehicleClass
    pickup: Optional[Address] = None
    destination: Optional[Address] = None
    distance_km: Optional[float] = None
    fare: Optional[FareOut] = None
    contact_email: Optional[str] = None
    payment_id: Optional[str] = None
    payment_attempts: int = 0
    can_retry_payment: bool = False
    last_payment_error: Optional[str] = None
