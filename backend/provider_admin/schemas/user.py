import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class LoginResponse(BaseModel):
    token: str
    user_id: uuid.UUID
    email: str


class AdminRead(BaseModel):
    id: uuid.UUID
    email: str
    role: str | None = None
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}
