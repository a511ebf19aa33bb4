from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from campushub.auth import store
from campushub.auth.models import User
from campushub.core.exceptions import NotFoundError, ValidationError

from .schemas import (
    MyReferralCode,
    ReferralCodeValidation,
    ReferralPair,
    ReferralStats,
    ReferredUser,
    ReferrerInfo,
    TopReferrer,
)


def _referrer_info(user: User) -> ReferrerInfo:
    return ReferrerInfo(id=user.id, name=user.name, role=user.role, college=user.college)


async def validate_referral_code(db: AsyncSession, code: str) -> ReferralCodeValidation:
    """Public check used by the signup form. A miss is a normal answer, not an error."""
    owner = await store.find_by_referral_code(db, code)
    if owner is None:
        return ReferralCodeValidation(valid=False, message="Invalid referral code")
    return ReferralCodeValidation(valid=True, message="Valid referral code", referrer=_referrer_info(owner))


async def get_my_referral_code(db: AsyncSession, user_id: UUID) -> MyReferralCode:
    user = await store.find_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return MyReferralCode(
        referral_code=user.referral_code,
        referrals_count=await store.count_referrals(db, user.id),
    )


async def list_referred_users(db: AsyncSession, owner_id: UUID) -> List[User]:
    return await store.list_referrals(db, owner_id)


async def get_my_referrer(db: AsyncSession, user_id: UUID) -> Optional[ReferrerInfo]:
    user = await store.find_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    if user.referred_by_id is None:
        return None
    referrer = await store.find_by_id(db, user.referred_by_id)
    return _referrer_info(referrer) if referrer else None


async def list_users_by_referral_code(db: AsyncSession, code: str) -> Tuple[User, List[User]]:
    """Owner of a code and every user attributed to it."""
    if not code or not code.strip():
        raise ValidationError("Referral code is required")
    owner = await store.find_by_referral_code(db, code)
    if owner is None:
        raise NotFoundError("No user found with this referral code")
    return owner, await store.list_referrals(db, owner.id)


async def list_referral_pairs(db: AsyncSession, owner_id: Optional[UUID] = None) -> List[ReferralPair]:
    """Every referral as an owner/referred pair; only the given owner's when owner_id is set."""
    pairs = await store.list_referral_pairs(db, owner_id)
    return [
        ReferralPair(
            referrer=_referrer_info(owner),
            referred=ReferredUser.model_validate(referred),
            referred_at=referred.created_at,
        )
        for owner, referred in pairs
    ]


async def get_referral_stats(db: AsyncSession, limit: int = 5) -> ReferralStats:
    top = await store.top_referrers(db, limit)
    return ReferralStats(
        total_referrals=await store.count_all_referrals(db),
        top_referrers=[
            TopReferrer(
                id=owner.id,
                name=owner.name,
                role=owner.role,
                referral_code=owner.referral_code,
                referral_count=count,
            )
            for owner, count in top
        ],
    )
