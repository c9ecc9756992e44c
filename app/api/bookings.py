from fastapi import APIRouter, Depends, Header, Query, Request
from typing import Optional, List

from app.api.deps import get_workflow
from app.core.auth_utils import check_booking_access, check_session_access
from app.core.rate_limit import check_rate_limit
from app.core.response_builders import (
    build_booking_response,
    build_booking_response_list,
    build_start_response,
)
from app.core.security import get_current_user, get_optional_user
from app.models.user import User
from app.schemas.booking import BookingOut, BookingStartOut, CompleteBookingRequest, StartBookingRequest
from app.services.workflow import BookingWorkflow
from app.utils.idempotency import get_idempotent, set_idempotent

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("/start", response_model=BookingStartOut)
async def start_booking(
    payload: StartBookingRequest,
    request: Request,
    idempotency_key: Optional[str] = Header(None),
    workflow: BookingWorkflow = Depends(get_workflow),
    current_user: Optional[User] = Depends(get_optional_user),
):
    await check_rate_limit(request, current_user.id if current_user else None)

    check_session_access(await workflow.get_quote(payload.session_id), current_user)

    cache = request.app.state.storage.cache
    request_body = payload.model_dump()
    prev = await get_idempotent(cache, idempotency_key, request_body)
    if prev:
        return prev

    start = await workflow.start_booking(
        payload.session_id,
        payload.email,
        payload.phone,
        payload.trip(),
    )

    out = build_start_response(start)
    await set_idempotent(cache, idempotency_key, request_body, out.model_dump(mode="json"))
    return out


@router.post("/{session_id}/retry-payment", response_model=BookingStartOut)
async def retry_payment(
    session_id: str,
    request: Request,
    workflow: BookingWorkflow = Depends(get_workflow),
    current_user: Optional[User] = Depends(get_optional_user),
):
    await check_rate_limit(request, current_user.id if current_user else None)
    check_session_access(await workflow.get_quote(session_id), current_user)

    start = await workflow.retry_payment(session_id)
    return build_start_response(start)


@router.post("/complete", response_model=BookingOut)
async def complete_booking(
    payload: CompleteBookingRequest,
    workflow: BookingWorkflow = Depends(get_workflow),
    current_user: Optional[User] = Depends(get_optional_user),
):
    check_session_access(await workflow.get_quote(payload.session_id), current_user)
    booking = await workflow.complete_booking(payload.session_id, payload.payment_confirmation_id)
    return build_booking_response(booking)


@router.get("/", response_model=List[BookingOut])
async def list_bookings(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    workflow: BookingWorkflow = Depends(get_workflow),
    current_user: User = Depends(get_current_user),
):
    bookings = await workflow.list_bookings(current_user.id, limit=limit, offset=offset)
    return build_booking_response_list(bookings)


@router.get("/{booking_id}", response_model=BookingOut)
async def get_booking(
    booking_id: str,
    email: Optional[str] = Query(None),
    workflow: BookingWorkflow = Depends(get_workflow),
    current_user: Optional[User] = Depends(get_optional_user),
):
    booking = await workflow.get_booking(booking_id)
    check_booking_access(booking, current_user, email)
    return build_booking_response(booking)


@router.post("/{booking_id}/cancel", response_model=BookingOut)
async def cancel_booking(
    booking_id: str,
    request: Request,
    email: Optional[str] = Query(None),
    workflow: BookingWorkflow = Depends(get_workflow),
    current_user: Optional[User] = Depends(get_optional_user),
):
    await check_rate_limit(request, current_user.id if current_user else None)
    check_booking_access(await workflow.get_booking(booking_id), current_user, email)

    booking = await workflow.cancel_booking(booking_id)
    return build_booking_response(booking)
