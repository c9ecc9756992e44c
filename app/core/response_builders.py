from app.models.booking import Booking
from app.models.fare import FareBreakdown
from app.models.quote_session import QuoteSession
from app.schemas.booking import BookingOut, BookingStartOut, PaymentOut
from app.schemas.quote import FareOut, QuoteOut
from app.services.workflow import PaymentStart


def build_fare_response(fare: FareBreakdown) -> FareOut:
    return FareOut(
        distance_km=fare.distance_km,
        vehicle_class=fare.vehicle_class,
        ride_fare=fare.ride_fare,
        service_fee=fare.service_fee,
        subtotal=fare.subtotal,
        vat_rate=fare.vat_rate,
        vat=fare.vat,
        total=fare.total,
        total_minor=fare.total_minor,
        currency=fare.currency,
    )


def build_quote_response(session: QuoteSession) -> QuoteOut:
    return QuoteOut(
        session_id=session.id,
        state=session.state,
        vehicle_class=session.vehicle_class,
        pickup=session.route.pickup if session.route else None,
        destination=session.route.destination if session.route else None,
        distance_km=session.distance_km,
        fare=build_fare_response(session.fare) if session.fare else None,
        contact_email=session.contact_email,
        payment_id=session.payment_id,
        payment_attempts=session.payment_attempts,
        can_retry_payment=session.can_retry_payment,
        last_payment_error=session.last_payment_error,
    )


def build_booking_response(booking: Booking) -> BookingOut:
    return BookingOut(
        booking_id=booking.booking_id,
        status=booking.status,
        pickup=booking.route.pickup,
        destination=booking.route.destination,
        distance_km=booking.distance_km,
        fare=build_fare_response(booking.fare),
        contact_email=booking.contact_email,
        contact_phone=booking.contact_phone,
        scheduled_date=booking.trip.scheduled_date,
        scheduled_time=booking.trip.scheduled_time,
        passengers=booking.trip.passengers,
        luggage=booking.trip.luggage,
        notes=booking.trip.notes,
        user_id=booking.user_id,
        payment_id=booking.payment_id,
        created_at=booking.created_at,
        cancelled_at=booking.cancelled_at,
    )


def build_booking_response_list(bookings: list) -> list:
    return [build_booking_response(booking) for booking in bookings]


def build_start_response(start: PaymentStart) -> BookingStartOut:
    session = start.session
    return BookingStartOut(
        session_id=session.id,
        state=session.state,
        amount_minor=session.fare.total_minor,
        currency=session.fare.currency,
        payment=PaymentOut(
            id=start.payment.id,
            status=start.payment.status,
            redirect_url=start.payment.redirect_url,
        ),
        booking=build_booking_response(start.booking) if start.booking else None,
    )
