from pydantic import BaseModel, Field


class RegisterIn(BaseModel):
    email: str
    password: str = Field(min_length=8)
    name: str = ""


class RegisterOut(BaseModel):
    user_id: str
    email: str
    message: str


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"


class VerifyOut(BaseModel):
    verified: bool
    email: str
