from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    name: str = ""
    email: str = ""
    password: str = ""
    phone: str = ""
    role: str = ""


class UserUpdate(BaseModel):
    name: str | None = None
    phone: str | None = None
    role: str | None = None
    is_active: bool | None = None


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    phone: str | None = None
    role: str
    is_active: bool = True
    created_at: datetime | None = None


class PasswordCheck(BaseModel):
    password: str = Field(..., max_length=256)


class PasswordStrengthResponse(BaseModel):
    score: int
    feedback: list[str]
    color: str


class UserRecord(BaseModel):
    """A user as persisted in the ``users`` collection."""

    id: str
    name: str
    email: str
    phone: str | None = None
    role: str
    password_hash: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


class LoginRequest(BaseModel):
    email: str
    password: str = Field(..., max_length=256)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
