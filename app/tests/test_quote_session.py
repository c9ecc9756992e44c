import itertools
from decimal import Decimal

import pytest

from app.core.enums import QuoteState, VehicleClass
from app.core.errors import InvalidAddress, InvalidContact, InvalidTransition, SessionFrozen
from app.models.booking import Address, TripDetails
from app.models.quote_session import QuoteSession


def make_session(state=QuoteState.CONTACT_CAPTURED) -> QuoteSession:
    session = QuoteSession()
    session.set_route(Address(label="Damrak 1, Amsterdam"), Address(label="Schiphol Airport"))
    if state == QuoteState.ROUTE_SET:
        return session
    session.set_distance(10.0)
    if state == QuoteState.QUOTED:
        return session
    session.capture_contact("john@example.com", "0612345678", TripDetails(passengers=3))
    if state == QuoteState.CONTACT_CAPTURED:
        return session
    session.initiate_payment()
    return session


class TestTransitions:

    def test_happy_path(self):
        session = QuoteSession()
        assert session.state == QuoteState.EMPTY

        session.set_route(Address(label="  Damrak 1,   Amsterdam "), Address(label="Schiphol Airport"))
        assert session.state == QuoteState.ROUTE_SET
        assert session.route.pickup.label == "Damrak 1, Amsterdam"

        fare = session.set_distance(10.0)
        assert session.state == QuoteState.QUOTED
        assert fare.total == Decimal("35.92")

        session.capture_contact("john@example.com", "0612345678")
        assert session.state == QuoteState.CONTACT_CAPTURED

        assert session.initiate_payment() == 3592
        assert session.state == QuoteState.PAYMENT_INITIATED
        assert session.frozen

        draft = session.confirm_payment("cs_1")
        assert session.state == QuoteState.CONFIRMED
        assert draft.payment_id == "cs_1"
        assert draft.fare.total_minor == 3592
        assert draft.contact_email == "john@example.com"

    @pytest.mark.parametrize("pickup,destination", [("", "Schiphol"), ("Damrak 1", "   "), ("", "")])
    def test_empty_address_rejected(self, pickup, destination):
        session = QuoteSession()
        with pytest.raises(InvalidAddress):
            session.set_route(Address(label=pickup), Address(label=destination))
        assert session.state == QuoteState.EMPTY

    def test_route_cannot_be_set_twice(self):
        session = make_session(QuoteState.ROUTE_SET)
        with pytest.raises(InvalidTransition) as exc_info:
            session.set_route(Address(label="A"), Address(label="B"))
        assert exc_info.value.context["current_state"] == "route_set"
        assert exc_info.value.context["required_state"] == "empty"

    def test_distance_requires_route(self):
        with pytest.raises(InvalidTransition):
            QuoteSession().set_distance(5.0)

    def test_requote_overwrites_fare(self):
        session = make_session(QuoteState.QUOTED)
        session.set_distance(20.0)
        assert session.state == QuoteState.QUOTED
        assert session.distance_km == 20.0
        assert session.fare.ride_fare == Decimal("52.95")

    def test_requote_keeps_contact(self):
        session = make_session(QuoteState.CONTACT_CAPTURED)
        session.set_distance(3.0)
        assert session.state == QuoteState.CONTACT_CAPTURED
        assert session.contact_email == "john@example.com"

    def test_select_vehicle_reprices(self):
        session = make_session(QuoteState.QUOTED)
        session.select_vehicle(VehicleClass.VAN)
        assert session.fare.vehicle_class == VehicleClass.VAN
        assert session.fare.ride_fare == Decimal("45.45")

    @pytest.mark.parametrize("email", ["", "john", "john@", "@example.com", "john@example", "jo hn@example.com"])
    def test_invalid_email(self, email):
        session = make_session(QuoteState.QUOTED)
        with pytest.raises(InvalidContact):
            session.capture_contact(email, "0612345678")
        assert session.state == QuoteState.QUOTED

    def test_phone_required(self):
        session = make_session(QuoteState.QUOTED)
        with pytest.raises(InvalidContact):
            session.capture_contact("john@example.com", "  ")

    def test_contact_requires_quote(self):
        session = make_session(QuoteState.ROUTE_SET)
        with pytest.raises(InvalidTransition):
            session.capture_contact("john@example.com", "0612345678")

    def test_payment_requires_contact(self):
        session = make_session(QuoteState.QUOTED)
        with pytest.raises(InvalidTransition):
            session.initiate_payment()
        assert not session.frozen

    def test_confirm_requires_payment(self):
        session = make_session(QuoteState.CONTACT_CAPTURED)
        with pytest.raises(InvalidTransition):
            session.confirm_payment("cs_1")

    def test_abandon(self):
        session = make_session(QuoteState.QUOTED)
        session.abandon()
        assert session.state == QuoteState.ABANDONED
        with pytest.raises(InvalidTransition):
            session.abandon()
        with pytest.raises(InvalidTransition):
            session.capture_contact("john@example.com", "0612345678")

    def test_confirmed_session_cannot_be_abandoned(self):
        session = make_session(QuoteState.PAYMENT_INITIATED)
        session.confirm_payment("cs_1")
        with pytest.raises(InvalidTransition):
            session.abandon()


class TestFrozenSession:

    def test_edits_rejected_after_payment_initiated(self):
        session = make_session(QuoteState.PAYMENT_INITIATED)
        fare = session.fare

        with pytest.raises(SessionFrozen):
            session.set_distance(1.0)
        with pytest.raises(SessionFrozen):
            session.capture_contact("other@example.com", "0600000000")
        with pytest.raises(SessionFrozen):
            session.select_vehicle(VehicleClass.COMFORT)

        assert session.fare == fare
        assert session.contact_email == "john@example.com"

    def test_edits_rejected_after_confirmation_and_abandon(self):
        confirmed = make_session(QuoteState.PAYMENT_INITIATED)
        confirmed.confirm_payment("cs_1")
        abandoned = make_session(QuoteState.PAYMENT_INITIATED)
        abandoned.abandon()

        for session in (confirmed, abandoned):
            with pytest.raises(SessionFrozen):
                session.set_distance(1.0)
            with pytest.raises(SessionFrozen):
                session.capture_contact("john@example.com", "0612345678")

    def test_frozen_survives_serialization(self):
        session = make_session(QuoteState.PAYMENT_INITIATED)
        restored = QuoteSession.model_validate_json(session.model_dump_json())
        assert restored.frozen
        assert restored.fare == session.fare
        with pytest.raises(SessionFrozen):
            restored.set_distance(2.0)


class TestPaymentRetry:

    def test_retry_only_after_failure(self):
        session = make_session(QuoteState.PAYMENT_INITIATED)
        with pytest.raises(InvalidTransition):
            session.initiate_payment()

    def test_single_retry_with_same_total(self):
        session = make_session(QuoteState.PAYMENT_INITIATED)
        first_total = session.fare.total_minor

        session.record_payment_failure("card declined")
        assert session.can_retry_payment
        assert session.initiate_payment() == first_total
        assert session.payment_attempts == 2

        session.record_payment_failure("card declined again")
        assert not session.can_retry_payment
        with pytest.raises(InvalidTransition):
            session.initiate_payment()
        assert session.state == QuoteState.PAYMENT_INITIATED


class TestConfirmIdempotency:

    def test_same_confirmation_id_returns_same_draft(self):
        session = make_session(QuoteState.PAYMENT_INITIATED)
        first = session.confirm_payment("cs_1")
        second = session.confirm_payment("cs_1")
        assert first == second

    def test_other_confirmation_id_rejected(self):
        session = make_session(QuoteState.PAYMENT_INITIATED)
        session.confirm_payment("cs_1")
        with pytest.raises(InvalidTransition):
            session.confirm_payment("cs_2")


OPERATIONS = {
    "set_route": lambda s: s.set_route(Address(label="A"), Address(label="B")),
    "set_distance": lambda s: s.set_distance(4.2),
    "capture_contact": lambda s: s.capture_contact("a@b.co", "0612345678"),
    "initiate_payment": lambda s: s.initiate_payment(),
    "confirm_payment": lambda s: s.confirm_payment("cs_x"),
}


@pytest.mark.parametrize("sequence", list(itertools.product(OPERATIONS, repeat=4)))
def test_payment_never_initiated_out_of_order(sequence):
    """Any call sequence reaching payment_initiated went through every earlier state."""
    session = QuoteSession()
    visited = [session.state]
    for name in sequence:
        try:
            OPERATIONS[name](session)
        except (InvalidTransition, SessionFrozen, InvalidAddress, InvalidContact):
            continue
        if session.state != visited[-1]:
            visited.append(session.state)

    if QuoteState.PAYMENT_INITIATED in visited:
        assert visited[:5] == [
            QuoteState.EMPTY,
            QuoteState.ROUTE_SET,
            QuoteState.QUOTED,
            QuoteState.CONTACT_CAPTURED,
            QuoteState.PAYMENT_INITIATED,
        ]
