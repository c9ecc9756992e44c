import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.security import OAuth2PasswordRequestForm

from app.api.deps import get_storage, get_workflow
from app.core.enums import NotificationEvent, UserRole
from app.core.errors import InvalidContact
from app.core.security import create_access_token, hash_password, verify_password
from app.models.quote_session import EMAIL_PATTERN
from app.models.user import User
from app.schemas.auth import RegisterIn, RegisterOut, TokenOut, VerifyOut
from app.services.verification import consume_verification_token, issue_verification_token
from app.services.workflow import BookingWorkflow
from app.storage.base import Storage

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=RegisterOut, status_code=201)
async def register(
    payload: RegisterIn,
    storage: Storage = Depends(get_storage),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    email = payload.email.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise InvalidContact(f"Invalid e-mail address: {payload.email!r}", field="email")

    user = User(email=email, name=payload.name, password_hash=hash_password(payload.password), role=UserRole.CUSTOMER)
    if not await storage.users.insert(user):
        raise HTTPException(status_code=400, detail="Email already registered")

    token = await issue_verification_token(storage.cache, user.id)
    await workflow.notifier(
        NotificationEvent.EMAIL_VERIFICATION,
        {"user_id": user.id, "email": user.email, "name": user.name, "token": token},
    )
    logger.info(f"Registered user {user.id}")
    return RegisterOut(
        user_id=user.id,
        email=user.email,
        message="Registration received. Check your e-mail to verify your address.",
    )


@router.post("/login", response_model=TokenOut)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), storage: Storage = Depends(get_storage)):
    user = await storage.users.get_by_email(form_data.username)
    if not user or not verify_password(form_data.password, user.password_hash):
        raise HTTPException(status_code=400, detail="Invalid credentials")
    if not user.email_verified:
        raise HTTPException(status_code=403, detail="Email address not verified")

    token = create_access_token(user.id, user.role)
    return {"access_token": token}


@router.get("/verify-email", response_model=VerifyOut)
async def verify_email(token: str = Query(...), storage: Storage = Depends(get_storage)):
    user_id = await consume_verification_token(storage.cache, token)
    user = await storage.users.get(user_id) if user_id else None
    if user is None:
        raise HTTPException(status_code=400, detail="Invalid or expired verification token")

    user.email_verified = True
    await storage.users.update(user)
    logger.info(f"Verified e-mail for user {user.id}")
    return VerifyOut(verified=True, email=user.email)
