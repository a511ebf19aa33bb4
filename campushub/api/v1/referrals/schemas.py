from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ReferrerInfo(BaseModel):
    id: UUID
    name: str
    role: str
    college: Optional[str] = None


class ReferralCodeValidation(BaseModel):
    valid: bool
    message: str
    referrer: Optional[ReferrerInfo] = None


class MyReferralCode(BaseModel):
    referral_code: Optional[str] = None
    referrals_count: int = 0


class ReferredUser(BaseModel):
    id: UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    college: Optional[str] = None
    referrer_code_used: Optional[str] = None

    class Config:
        from_attributes = True


class ReferredUsersResponse(BaseModel):
    count: int
    data: List[ReferredUser] = Field(default_factory=list)


class ReferralPair(BaseModel):
    referrer: ReferrerInfo
    referred: ReferredUser
    referred_at: datetime


class ReferralPairsResponse(BaseModel):
    count: int
    data: List[ReferralPair] = Field(default_factory=list)


class TopReferrer(BaseModel):
    id: UUID
    name: str
    role: str
    referral_code: Optional[str] = None
    referral_count: int


class ReferralStats(BaseModel):
    total_referrals: int
    top_referrers: List[TopReferrer] = Field(default_factory=list)
