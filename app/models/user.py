import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from app.core.enums import UserRole


class User(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    email: str
    name: str = ""
    password_hash: str
    role: UserRole = UserRole.CUSTOMER
    email_verified: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
