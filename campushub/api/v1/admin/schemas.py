from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from campushub.auth.schemas import PHONE_PATTERN, UserResponse, strip_text


class PromoteToInstituteRequest(BaseModel):
    # Auto-generated when omitted
    custom_referral_code: Optional[str] = Field(None, max_length=40)


class InstituteCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    mobile: str = Field(..., pattern=PHONE_PATTERN)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8)
    college: Optional[str] = None
    custom_referral_code: Optional[str] = Field(None, max_length=40)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: Any) -> Any:
        return strip_text(v)


class AdminCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=8)
    mobile: Optional[str] = Field(None, pattern=PHONE_PATTERN)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: Any) -> Any:
        return strip_text(v)


class InstituteSummary(BaseModel):
    id: UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    college: Optional[str] = None
    referral_code: Optional[str] = None
    referral_count: int = 0


class UsersByReferralCodeResponse(BaseModel):
    institute: UserResponse
    count: int
    users: List[UserResponse] = Field(default_factory=list)
