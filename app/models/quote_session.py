"""In-progress booking draft and its state machine.

empty -> route_set -> quoted -> contact_captured -> payment_initiated
      -> confirmed | abandoned

The session freezes when payment is initiated: from then on the route,
distance, vehicle class, contact details and fare can no longer change.
"""
import re
import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from app.core.enums import QuoteState, VehicleClass
from app.core.errors import InvalidAddress, InvalidContact, InvalidTransition, SessionFrozen
from app.models.booking import Address, BookingDraft, RoutePoints, TripDetails, normalize_label
from app.models.fare import FareBreakdown
from app.services.pricing import compute_fare, get_tariff

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MAX_PAYMENT_ATTEMPTS = 2

EDITABLE_STATES = (QuoteState.ROUTE_SET, QuoteState.QUOTED, QuoteState.CONTACT_CAPTURED)
CONTACT_STATES = (QuoteState.QUOTED, QuoteState.CONTACT_CAPTURED)
TERMINAL_STATES = (QuoteState.CONFIRMED, QuoteState.ABANDONED)


def _new_session_id() -> str:
    return uuid.uuid4().hex


class QuoteSession(BaseModel):
    id: str = Field(default_factory=_new_session_id)
    state: QuoteState = QuoteState.EMPTY
    vehicle_class: VehicleClass = VehicleClass.STANDARD
    route: Optional[RoutePoints] = None
    distance_km: Optional[float] = None
    fare: Optional[FareBreakdown] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    trip: TripDetails = Field(default_factory=TripDetails)
    user_id: Optional[str] = None
    frozen: bool = False
    payment_attempts: int = 0
    payment_failed: bool = False
    last_payment_error: Optional[str] = None
    payment_id: Optional[str] = None
    confirmed_payment_id: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def _require(self, operation: str, *allowed: QuoteState) -> None:
        if self.state not in allowed:
            raise InvalidTransition(operation, self.state, allowed if len(allowed) > 1 else allowed[0])

    def _require_editable(self, operation: str) -> None:
        if self.frozen:
            raise SessionFrozen(
                f"Cannot {operation}: session {self.id} is frozen since payment was initiated",
                session_id=self.id,
            )
        self._require(operation, *EDITABLE_STATES)

    def ensure_editable(self) -> None:
        self._require_editable("edit quote")

    def set_route(self, pickup: Address, destination: Address) -> None:
        self._require("set route", QuoteState.EMPTY)
        for role, address in (("pickup", pickup), ("destination", destination)):
            if address is None or not normalize_label(address.label):
                raise InvalidAddress(f"The {role} address must not be empty", field=role)
        self.route = RoutePoints(
            pickup=pickup.model_copy(update={"label": normalize_label(pickup.label)}),
            destination=destination.model_copy(update={"label": normalize_label(destination.label)}),
        )
        self.state = QuoteState.ROUTE_SET

    def set_distance(self, distance_km: float) -> FareBreakdown:
        self._require_editable("set distance")
        fare = compute_fare(distance_km, self.vehicle_class)
        self.distance_km = fare.distance_km
        self.fare = fare
        if self.state == QuoteState.ROUTE_SET:
            self.state = QuoteState.QUOTED
        return fare

    def select_vehicle(self, vehicle_class: VehicleClass) -> None:
        self._require_editable("select vehicle")
        get_tariff(vehicle_class)
        self.vehicle_class = VehicleClass(vehicle_class)
        if self.distance_km is not None:
            self.fare = compute_fare(self.distance_km, self.vehicle_class)

    def capture_contact(self, email: str, phone: str, trip: Optional[TripDetails] = None) -> None:
        if self.frozen:
            raise SessionFrozen(
                f"Cannot capture contact: session {self.id} is frozen since payment was initiated",
                session_id=self.id,
            )
        self._require("capture contact", *CONTACT_STATES)
        email = (email or "").strip()
        phone = (phone or "").strip()
        if not EMAIL_PATTERN.match(email):
            raise InvalidContact(f"Invalid e-mail address: {email!r}", field="email")
        if not phone:
            raise InvalidContact("A phone number is required", field="phone")
        self.contact_email = email
        self.contact_phone = phone
        if trip is not None:
            self.trip = trip
        self.state = QuoteState.CONTACT_CAPTURED

    def initiate_payment(self) -> int:
        """Freeze the session and return the amount to charge in minor units.

        A second call is allowed once, after a recorded payment failure, and
        returns the same frozen amount.
        """
        if self.state == QuoteState.PAYMENT_INITIATED:
            if not self.payment_failed:
                raise InvalidTransition("retry payment without a failed attempt", self.state, QuoteState.CONTACT_CAPTURED)
            if self.payment_attempts >= MAX_PAYMENT_ATTEMPTS:
                raise InvalidTransition(
                    f"retry payment after {self.payment_attempts} attempts", self.state, QuoteState.CONTACT_CAPTURED
                )
        else:
            self._require("initiate payment", QuoteState.CONTACT_CAPTURED)
            self.frozen = True
            self.state = QuoteState.PAYMENT_INITIATED
        self.payment_attempts += 1
        self.payment_failed = False
        self.last_payment_error = None
        return self.fare.total_minor

    def record_payment_pending(self, payment_id: str) -> None:
        self._require("record payment", QuoteState.PAYMENT_INITIATED)
        self.payment_id = payment_id

    def record_payment_failure(self, reason: str) -> None:
        self._require("record payment failure", QuoteState.PAYMENT_INITIATED)
        self.payment_failed = True
        self.last_payment_error = reason

    @property
    def can_retry_payment(self) -> bool:
        return (
            self.state == QuoteState.PAYMENT_INITIATED
            and self.payment_failed
            and self.payment_attempts < MAX_PAYMENT_ATTEMPTS
        )

    def confirm_payment(self, payment_id: str) -> BookingDraft:
        if self.state == QuoteState.CONFIRMED:
            if payment_id != self.confirmed_payment_id:
                raise InvalidTransition(
                    f"confirm payment {payment_id} (already confirmed with {self.confirmed_payment_id})",
                    self.state,
                    QuoteState.PAYMENT_INITIATED,
                )
            return self.to_draft()
        self._require("confirm payment", QuoteState.PAYMENT_INITIATED)
        self.confirmed_payment_id = payment_id
        self.payment_id = payment_id
        self.payment_failed = False
        self.state = QuoteState.CONFIRMED
        return self.to_draft()

    def abandon(self) -> None:
        if self.state in TERMINAL_STATES:
            raise InvalidTransition(
                "abandon",
                self.state,
                [s for s in QuoteState if s not in TERMINAL_STATES],
            )
        self.state = QuoteState.ABANDONED

    def to_draft(self) -> BookingDraft:
        return BookingDraft(
            session_id=self.id,
            route=self.route,
            distance_km=self.distance_km,
            fare=self.fare,
            contact_email=self.contact_email,
            contact_phone=self.contact_phone,
            trip=self.trip,
            user_id=self.user_id,
            payment_id=self.confirmed_payment_id,
        )
