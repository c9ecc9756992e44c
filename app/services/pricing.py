import math
from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple, Optional

from app.core.config import settings
from app.core.enums import VehicleClass
from app.core.errors import InvalidInput
from app.models.fare import FareBreakdown

CENT = Decimal("0.01")


class Tariff(NamedTuple):
    base_fare: Decimal
    per_km_rate: Decimal
    name: str


TARIFFS = {
    VehicleClass.STANDARD: Tariff(Decimal("2.95"), Decimal("2.50"), "Standard Taxi"),
    VehicleClass.COMFORT: Tariff(Decimal("4.50"), Decimal("3.25"), "Comfort Taxi"),
    VehicleClass.VAN: Tariff(Decimal("5.95"), Decimal("3.95"), "Van Taxi"),
}


def _to_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _validate_distance(distance_km) -> Decimal:
    if isinstance(distance_km, bool) or not isinstance(distance_km, (int, float, Decimal)):
        raise InvalidInput(f"Distance must be a number, got {distance_km!r}")
    if isinstance(distance_km, Decimal):
        if not distance_km.is_finite():
            raise InvalidInput("Distance must be finite")
        value = distance_km
    else:
        if not math.isfinite(distance_km):
            raise InvalidInput("Distance must be finite")
        value = Decimal(str(distance_km))
    if value < 0:
        raise InvalidInput(f"Distance must be non-negative, got {distance_km}")
    return value


def get_tariff(vehicle_class) -> Tariff:
    try:
        return TARIFFS[VehicleClass(vehicle_class)]
    except (ValueError, KeyError):
        raise InvalidInput(f"Unknown vehicle class: {vehicle_class!r}")


def compute_fare(
    distance_km,
    vehicle_class,
    *,
    vat_rate: Optional[Decimal] = None,
    service_fee: Optional[Decimal] = None,
    currency: Optional[str] = None,
) -> FareBreakdown:
    distance = _validate_distance(distance_km)
    tariff = get_tariff(vehicle_class)
    vat_rate = settings.VAT_RATE if vat_rate is None else Decimal(str(vat_rate))
    service_fee = settings.SERVICE_FEE if service_fee is None else Decimal(str(service_fee))

    # Only ride_fare and vat are rounded; every other line is an exact sum.
    ride_fare = _to_cents(tariff.base_fare + distance * tariff.per_km_rate)
    service_fee = _to_cents(service_fee)
    subtotal = ride_fare + service_fee
    vat = _to_cents(subtotal * vat_rate)
    total = subtotal + vat

    return FareBreakdown(
        distance_km=float(distance),
        vehicle_class=VehicleClass(vehicle_class),
        base_fare=tariff.base_fare,
        per_km_rate=tariff.per_km_rate,
        ride_fare=ride_fare,
        service_fee=service_fee,
        subtotal=subtotal,
        vat_rate=vat_rate,
        vat=vat,
        total=total,
        currency=currency or settings.CURRENCY,
    )
