from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from campushub.core.enums import CollegeYear, UserRole

PHONE_PATTERN = r"^[0-9]{8,15}$"


def strip_text(v: Any) -> Any:
    """Trim a name before length checks, so an all-blank name fails min_length."""
    return v.strip() if isinstance(v, str) else v


class SignupRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    password: Optional[str] = Field(None, min_length=8)
    college: Optional[str] = None
    course: Optional[str] = None
    year: Optional[CollegeYear] = None
    # Code of the institute/admin that referred this signup
    referrer_code_used: Optional[str] = Field(None, max_length=20)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: Any) -> Any:
        return strip_text(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole
    referral_code: Optional[str] = None
    referrer_code_used: Optional[str] = None
    referred_by_id: Optional[UUID] = None
    college: Optional[str] = None
    course: Optional[str] = None
    year: Optional[str] = None
    is_verified: bool = False
    created_at: datetime

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
    issued_at: datetime


class CurrentUser(BaseModel):
    """Authenticated user for authorization checks. Role is read from the database, not the token."""

    id: UUID
    role: UserRole
