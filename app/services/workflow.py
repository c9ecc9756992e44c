"""Booking confirmation workflow.

Resolves the route distance, prices the quote, captures contact details,
charges the frozen fare through the payment collaborator and registers the
booking. Collaborator failures leave the quote session in its last valid
state so the caller can retry without re-entering data; nothing is retried
automatically.
"""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from pydantic import BaseModel

from app.core.config import settings
from app.core.enums import BookingStatus, NotificationEvent, PaymentStatus, QuoteState, VehicleClass
from app.core.errors import (
    BookingError,
    InvalidInput,
    InvalidTransition,
    NotFound,
    PaymentDeclined,
    PaymentIncomplete,
    PaymentProviderUnavailable,
    RouteUnresolved,
)
from app.core.metrics import payment_attempts, quotes_computed
from app.models.booking import Address, Booking, RoutePoints, TripDetails
from app.models.quote_session import QuoteSession
from app.services.payments import PaymentClient, PaymentConfirmation
from app.services.pricing import get_tariff
from app.services.registry import BookingRegistry
from app.services.routing import RoutingClient
from app.services.webhook import send_webhook
from app.storage.base import QuoteSessionStore

logger = logging.getLogger(__name__)

Notifier = Callable[[NotificationEvent, dict], Awaitable[bool]]


class PaymentStart(BaseModel):
    session: QuoteSession
    payment: PaymentConfirmation
    booking: Optional[Booking] = None


class BookingWorkflow:
    def __init__(
        self,
        sessions: QuoteSessionStore,
        registry: BookingRegistry,
        routing: RoutingClient,
        payments: PaymentClient,
        notifier: Notifier = send_webhook,
        routing_timeout: Optional[float] = None,
        payment_timeout: Optional[float] = None,
        currency: Optional[str] = None,
    ):
        self.sessions = sessions
        self.registry = registry
        self.routing = routing
        self.payments = payments
        self.notifier = notifier
        self.routing_timeout = routing_timeout or settings.ROUTING_TIMEOUT
        self.payment_timeout = payment_timeout or settings.PAYMENT_TIMEOUT
        self.currency = currency or settings.CURRENCY

    # -- quote sessions -------------------------------------------------

    async def get_quote(self, session_id: str) -> QuoteSession:
        session = await self.sessions.get(session_id)
        if session is None:
            raise NotFound(f"Quote session {session_id} not found", session_id=session_id)
        return session

    async def _resolve_distance(self, session: QuoteSession) -> float:
        route = session.route
        try:
            return await asyncio.wait_for(
                self.routing.resolve_distance(route.pickup, route.destination),
                timeout=self.routing_timeout,
            )
        except asyncio.TimeoutError:
            reason = "the routing provider did not answer in time"
        except RouteUnresolved as e:
            reason = e.message
        except Exception as e:
            logger.exception(f"Routing collaborator failed for session {session.id}")
            reason = f"routing provider error ({type(e).__name__})"
        logger.warning(f"Route unresolved for session {session.id}: {reason}")
        raise RouteUnresolved(
            f"Could not compute the distance between these addresses: {reason}",
            session_id=session.id,
        )

    async def quote(
        self,
        pickup: Address,
        destination: Address,
        vehicle_class: VehicleClass = VehicleClass.STANDARD,
        user_id: Optional[str] = None,
    ) -> QuoteSession:
        get_tariff(vehicle_class)
        session = QuoteSession(vehicle_class=VehicleClass(vehicle_class), user_id=user_id)
        session.set_route(pickup, destination)
        await self.sessions.save(session)

        distance_km = await self._resolve_distance(session)
        session.set_distance(distance_km)
        await self.sessions.save(session)

        quotes_computed.labels(vehicle_class=str(session.vehicle_class)).inc()
        logger.info(
            f"Quoted session {session.id}: {session.fare.distance_km:.2f} km "
            f"{session.vehicle_class} = {session.fare.total} {session.fare.currency}"
        )
        return session

    async def requote(self, session_id: str, vehicle_class: Optional[VehicleClass] = None) -> QuoteSession:
        """Re-resolve the route and re-price, optionally for another vehicle class."""
        session = await self.get_quote(session_id)
        session.ensure_editable()
        if vehicle_class is not None:
            session.select_vehicle(vehicle_class)

        distance_km = await self._resolve_distance(session)
        session.set_distance(distance_km)
        await self.sessions.save(session)
        quotes_computed.labels(vehicle_class=str(session.vehicle_class)).inc()
        return session

    async def abandon(self, session_id: str) -> QuoteSession:
        session = await self.get_quote(session_id)
        session.abandon()
        await self.sessions.save(session)
        logger.info(f"Abandoned quote session {session_id}")
        return session

    # -- payment ----------------------------------------------------------

    async def start_booking(
        self,
        session_id: str,
        email: str,
        phone: str,
        trip: Optional[TripDetails] = None,
    ) -> PaymentStart:
        session = await self.get_quote(session_id)
        session.capture_contact(email, phone, trip)
        amount_minor = session.initiate_payment()
        await self.sessions.save(session)
        return await self._charge(session, amount_minor)

    async def retry_payment(self, session_id: str) -> PaymentStart:
        session = await self.get_quote(session_id)
        amount_minor = session.initiate_payment()
        await self.sessions.save(session)
        logger.info(f"Retrying payment for session {session_id} (attempt {session.payment_attempts})")
        return await self._charge(session, amount_minor)

    def _payment_metadata(self, session: QuoteSession) -> dict:
        route: RoutePoints = session.route
        tariff = get_tariff(session.vehicle_class)
        return {
            "session_id": session.id,
            "description": f"{tariff.name} - {route.pickup.label} to {route.destination.label}",
            "pickup": route.pickup.label,
            "destination": route.destination.label,
            "vehicle_class": str(session.vehicle_class),
            "distance_km": f"{session.fare.distance_km:.1f}",
            "email": session.contact_email,
            "phone": session.contact_phone,
            "date": session.trip.scheduled_date,
            "time": session.trip.scheduled_time,
            "passengers": str(session.trip.passengers),
        }

    async def _record_failure(self, session: QuoteSession, error: BookingError) -> None:
        session.record_payment_failure(error.message)
        await self.sessions.save(session)
        payment_attempts.labels(outcome=error.code).inc()
        error.context["session_id"] = session.id
        error.context["can_retry"] = session.can_retry_payment
        logger.warning(f"Payment failed for session {session.id}: {error.message}")

    async def _charge(self, session: QuoteSession, amount_minor: int) -> PaymentStart:
        try:
            confirmation = await asyncio.wait_for(
                self.payments.charge(amount_minor, self.currency, self._payment_metadata(session)),
                timeout=self.payment_timeout,
            )
        except asyncio.TimeoutError:
            error = PaymentProviderUnavailable("The payment provider did not answer in time")
            await self._record_failure(session, error)
            raise error from None
        except (PaymentDeclined, PaymentProviderUnavailable) as e:
            await self._record_failure(session, e)
            raise
        except Exception as e:
            logger.exception(f"Payment collaborator failed for session {session.id}")
            error = PaymentProviderUnavailable(f"Payment provider error: {type(e).__name__}")
            await self._record_failure(session, error)
            raise error from e

        if confirmation.status == PaymentStatus.FAILED:
            error = PaymentDeclined("The payment was declined", payment_id=confirmation.id)
            await self._record_failure(session, error)
            raise error

        session.record_payment_pending(confirmation.id)
        if confirmation.status == PaymentStatus.SUCCEEDED:
            booking = await self._finalize(session, confirmation.id)
            return PaymentStart(session=session, payment=confirmation, booking=booking)

        await self.sessions.save(session)
        payment_attempts.labels(outcome="pending").inc()
        return PaymentStart(session=session, payment=confirmation)

    async def complete_booking(self, session_id: str, payment_confirmation_id: str) -> Booking:
        session = await self.get_quote(session_id)

        if session.state == QuoteState.CONFIRMED:
            draft = session.confirm_payment(payment_confirmation_id)
            return await self.registry.register(draft, self._booking_status())

        if session.state != QuoteState.PAYMENT_INITIATED:
            raise InvalidTransition("complete booking", session.state, QuoteState.PAYMENT_INITIATED)
        if payment_confirmation_id != session.payment_id:
            raise InvalidInput(
                "Payment confirmation does not belong to this quote",
                session_id=session_id,
            )

        try:
            status = await asyncio.wait_for(
                self.payments.verify(payment_confirmation_id),
                timeout=self.payment_timeout,
            )
        except asyncio.TimeoutError:
            raise PaymentProviderUnavailable("The payment provider did not answer in time") from None

        if status == PaymentStatus.FAILED:
            error = PaymentDeclined("The payment was not completed", payment_id=payment_confirmation_id)
            await self._record_failure(session, error)
            raise error
        if status == PaymentStatus.PENDING:
            raise PaymentIncomplete(
                "The payment has not been completed yet",
                payment_id=payment_confirmation_id,
            )
        return await self._finalize(session, payment_confirmation_id)

    def _booking_status(self) -> BookingStatus:
        return BookingStatus.PENDING if self.payments.settles_offline else BookingStatus.CONFIRMED

    async def _finalize(self, session: QuoteSession, payment_id: str) -> Booking:
        draft = session.confirm_payment(payment_id)
        booking = await self.registry.register(draft, self._booking_status())
        await self.sessions.save(session)
        payment_attempts.labels(outcome="succeeded").inc()
        await self.notifier(NotificationEvent.BOOKING_CONFIRMED, booking.model_dump(mode="json"))
        return booking

    # -- bookings ---------------------------------------------------------

    async def get_booking(self, booking_id: str) -> Booking:
        return await self.registry.find(booking_id)

    async def cancel_booking(self, booking_id: str) -> Booking:
        booking = await self.registry.cancel(booking_id)
        await self.notifier(NotificationEvent.BOOKING_CANCELLED, {"booking_id": booking.booking_id})
        return booking

    async def list_bookings(self, user_id: str, limit: int = 20, offset: int = 0) -> List[Booking]:
        return await self.registry.list_for_user(user_id, limit=limit, offset=offset)
