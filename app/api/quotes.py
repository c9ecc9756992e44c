"""Fare quote endpoints backed by quote sessions"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request

from app.api.deps import get_workflow
from app.core.auth_utils import check_session_access
from app.core.rate_limit import check_rate_limit
from app.core.response_builders import build_quote_response
from app.core.security import get_optional_user
from app.models.user import User
from app.schemas.quote import QuoteOut, QuoteRequest, RequoteRequest
from app.services.workflow import BookingWorkflow

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/quotes", tags=["quotes"])


@router.post("/", response_model=QuoteOut)
async def create_quote(
    payload: QuoteRequest,
    request: Request,
    workflow: BookingWorkflow = Depends(get_workflow),
    current_user: Optional[User] = Depends(get_optional_user),
):
    user_id = current_user.id if current_user else None
    await check_rate_limit(request, user_id)

    session = await workflow.quote(
        payload.pickup,
        payload.destination,
        payload.vehicle_class,
        user_id=user_id,
    )
    return build_quote_response(session)


@router.get("/{session_id}", response_model=QuoteOut)
async def get_quote(
    session_id: str,
    workflow: BookingWorkflow = Depends(get_workflow),
    current_user: Optional[User] = Depends(get_optional_user),
):
    session = await workflow.get_quote(session_id)
    check_session_access(session, current_user)
    return build_quote_response(session)


@router.post("/{session_id}/requote", response_model=QuoteOut)
async def requote(
    session_id: str,
    payload: RequoteRequest,
    request: Request,
    workflow: BookingWorkflow = Depends(get_workflow),
    current_user: Optional[User] = Depends(get_optional_user),
):
    await check_rate_limit(request, current_user.id if current_user else None)
    check_session_access(await workflow.get_quote(session_id), current_user)

    session = await workflow.requote(session_id, payload.vehicle_class)
    return build_quote_response(session)


@router.delete("/{session_id}", response_model=QuoteOut)
async def abandon_quote(
    session_id: str,
    workflow: BookingWorkflow = Depends(get_workflow),
    current_user: Optional[User] = Depends(get_optional_user),
):
    check_session_access(await workflow.get_quote(session_id), current_user)
    session = await workflow.abandon(session_id)
    return build_quote_response(session)
