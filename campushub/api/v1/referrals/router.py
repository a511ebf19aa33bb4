from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from campushub.auth.dependencies import get_current_user
from campushub.auth.rbac import require_roles
from campushub.auth.schemas import CurrentUser
from campushub.core.enums import UserRole
from campushub.core.exceptions import ServiceError, http_exception_from
from campushub.db.session import get_db

from .schemas import (
    MyReferralCode,
    ReferralCodeValidation,
    ReferralPairsResponse,
    ReferredUser,
    ReferredUsersResponse,
    ReferrerInfo,
)
from . import service

router = APIRouter(prefix="/api/v1/referrals", tags=["referrals"])


@router.get("/validate/{code}", response_model=ReferralCodeValidation)
async def validate_referral_code(
    code: str,
    db: AsyncSession = Depends(get_db),
) -> ReferralCodeValidation:
    return await service.validate_referral_code(db, code)


@router.get("/my-code", response_model=MyReferralCode)
async def my_referral_code(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> MyReferralCode:
    try:
        return await service.get_my_referral_code(db, current_user.id)
    except ServiceError as e:
        raise http_exception_from(e)


@router.get("/referred-users", response_model=ReferredUsersResponse)
async def referred_users(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(UserRole.INSTITUTE, UserRole.ADMIN)),
) -> ReferredUsersResponse:
    users = await service.list_referred_users(db, current_user.id)
    return ReferredUsersResponse(
        count=len(users),
        data=[ReferredUser.model_validate(u) for u in users],
    )


@router.get("/my-referrer", response_model=Optional[ReferrerInfo])
async def my_referrer(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> Optional[ReferrerInfo]:
    try:
        return await service.get_my_referrer(db, current_user.id)
    except ServiceError as e:
        raise http_exception_from(e)


@router.get("", response_model=ReferralPairsResponse)
async def list_referrals(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(UserRole.INSTITUTE, UserRole.ADMIN)),
) -> ReferralPairsResponse:
    """Admins see every referral, an institute only its own."""
    owner_id = None if current_user.role == UserRole.ADMIN else current_user.id
    pairs = await service.list_referral_pairs(db, owner_id)
    return ReferralPairsResponse(count=len(pairs), data=pairs)
