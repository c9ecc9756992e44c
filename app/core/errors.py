"""Booking error taxonomy.

Every error is recoverable at the caller boundary. ``status_code`` and
``code`` are used by the HTTP exception handler in ``app.main``; any extra
keyword arguments end up in the response body as context.
"""
from typing import Any


class BookingError(Exception):
    status_code = 400
    code = "booking_error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        body = {"detail": self.message, "error": self.code}
        body.update({k: v for k, v in self.context.items() if v is not None})
        return body


class InvalidInput(BookingError):
    status_code = 422
    code = "invalid_input"


class InvalidAddress(BookingError):
    status_code = 422
    code = "invalid_address"


class InvalidContact(BookingError):
    status_code = 422
    code = "invalid_contact"


class InvalidTransition(BookingError):
    status_code = 409
    code = "invalid_transition"

    def __init__(self, operation: str, current, required):
        if isinstance(required, (list, tuple, set, frozenset)):
            required_text = " or ".join(sorted(str(s) for s in required))
        else:
            required_text = str(required)
        super().__init__(
            f"Cannot {operation} in state '{current}'; requires {required_text}",
            current_state=str(current),
            required_state=required_text,
        )
        self.current = current
        self.required = required


class SessionFrozen(BookingError):
    status_code = 409
    code = "session_frozen"


class RouteUnresolved(BookingError):
    status_code = 422
    code = "route_unresolved"


class PaymentDeclined(BookingError):
    status_code = 402
    code = "payment_declined"


class PaymentIncomplete(BookingError):
    status_code = 409
    code = "payment_incomplete"


class PaymentProviderUnavailable(BookingError):
    status_code = 503
    code = "payment_unavailable"


class NotFound(BookingError):
    status_code = 404
    code = "not_found"


class AlreadyCancelled(BookingError):
    status_code = 409
    code = "already_cancelled"
