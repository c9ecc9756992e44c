from pydantic import BaseModel, Field


class ContactIn(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    email: str
    subject: str = Field("", max_length=200)
    message: str = Field(min_length=1, max_length=5000)


class ContactOut(BaseModel):
    contact_id: str
    received: bool = True
