"""Authentication and authorization utilities"""
from fastapi import HTTPException
from typing import Optional

from app.core.enums import UserRole
from app.models.booking import Booking
from app.models.quote_session import QuoteSession
from app.models.user import User


def _forbidden(resource_name: str) -> HTTPException:
    return HTTPException(
        status_code=403,
        detail=f"Forbidden: You can only access your own {resource_name}s"
    )


def check_ownership(owner_id: Optional[str], current_user: Optional[User], resource_name: str = "Resource") -> None:
    """Anonymous resources are reachable by reference; owned ones only by the owner or an admin."""
    if owner_id is None:
        return
    if current_user is None:
        raise _forbidden(resource_name)
    if current_user.role != UserRole.ADMIN and owner_id != current_user.id:
        raise _forbidden(resource_name)


def check_booking_access(booking: Booking, current_user: Optional[User], email: Optional[str] = None) -> None:
    """Anonymous bookings are reachable with their reference plus the contact e-mail."""
    if booking.user_id is None:
        if current_user is not None and current_user.role == UserRole.ADMIN:
            return
        if not email or email.strip().lower() != booking.contact_email.lower():
            raise _forbidden("Booking")
        return
    check_ownership(booking.user_id, current_user, "Booking")


def check_session_access(session: QuoteSession, current_user: Optional[User]) -> None:
    check_ownership(session.user_id, current_user, "Quote")
