from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from schoolhub.core.enums import UserRole


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class Identity(BaseModel):
    """The signed-in user as seen by every view."""

    id: UUID
    first_name: str
    last_name: str
    email: EmailStr
    role: UserRole

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class SessionState(BaseModel):
    identity: Optional[Identity] = None
    loading: bool = True


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: Identity
    home: str  # route the login form should navigate to
    issued_at: datetime


class LogoutResponse(BaseModel):
    success: bool
    redirect_to: str


class SignUpRequest(BaseModel):
    email: EmailStr
    # bcrypt only hashes the first 72 bytes
    password: str = Field(..., min_length=6, max_length=72)
    first_name: str = Field(..., min_length=2, max_length=100)
    last_name: str = Field(..., min_length=2, max_length=100)
    role: UserRole
