from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from app.core.enums import VehicleClass


class FareBreakdown(BaseModel):
    """Priced quote for one route and vehicle class.

    Amounts are quantised to cents; ``total`` is always exactly
    ``subtotal + vat`` and ``total_minor`` is the authoritative charge amount.
    """

    model_config = ConfigDict(frozen=True)

    distance_km: float
    vehicle_class: VehicleClass
    base_fare: Decimal
    per_km_rate: Decimal
    ride_fare: Decimal
    service_fee: Decimal
    subtotal: Decimal
    vat_rate: Decimal
    vat: Decimal
    total: Decimal
    currency: str

    @property
    def total_minor(self) -> int:
        return int(self.total * 100)
