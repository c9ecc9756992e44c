from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"

    def __str__(self):
        return self.value


class VehicleClass(str, Enum):
    STANDARD = "standard"
    COMFORT = "comfort"
    VAN = "van"

    def __str__(self):
        return self.value


class QuoteState(str, Enum):
    EMPTY = "empty"
    ROUTE_SET = "route_set"
    QUOTED = "quoted"
    CONTACT_CAPTURED = "contact_captured"
    PAYMENT_INITIATED = "payment_initiated"
    CONFIRMED = "confirmed"
    ABANDONED = "abandoned"

    def __str__(self):
        return self.value


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

    def __str__(self):
        return self.value


class PaymentStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    def __str__(self):
        return self.value


class NotificationEvent(str, Enum):
    BOOKING_CONFIRMED = "booking.confirmed"
    BOOKING_CANCELLED = "booking.cancelled"
    CONTACT_MESSAGE = "contact.message"
    EMAIL_VERIFICATION = "auth.email_verification"

    def __str__(self):
        return self.value
