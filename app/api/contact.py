import logging
import uuid

from fastapi import APIRouter, Depends, Request

from app.api.deps import get_workflow
from app.core.enums import NotificationEvent
from app.core.errors import InvalidContact
from app.core.rate_limit import check_rate_limit
from app.models.quote_session import EMAIL_PATTERN
from app.schemas.contact import ContactIn, ContactOut
from app.services.workflow import BookingWorkflow

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/contact", tags=["contact"])


@router.post("/", response_model=ContactOut)
async def submit_contact_message(
    payload: ContactIn,
    request: Request,
    workflow: BookingWorkflow = Depends(get_workflow),
):
    await check_rate_limit(request)
    if not EMAIL_PATTERN.match(payload.email.strip()):
        raise InvalidContact(f"Invalid e-mail address: {payload.email!r}", field="email")

    contact_id = "CT" + uuid.uuid4().hex[:10].upper()
    logger.info(f"Contact message {contact_id} received from {payload.email}")
    await workflow.notifier(
        NotificationEvent.CONTACT_MESSAGE,
        {"contact_id": contact_id, **payload.model_dump()},
    )
    return ContactOut(contact_id=contact_id)
