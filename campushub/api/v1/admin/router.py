from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from campushub.auth.rbac import require_admin
from campushub.auth.schemas import UserResponse
from campushub.core.enums import UserRole
from campushub.core.exceptions import ServiceError, http_exception_from
from campushub.db.session import get_db

from campushub.api.v1.referrals import service as referral_service
from campushub.api.v1.referrals.schemas import ReferralPairsResponse, ReferralStats

from .schemas import (
    AdminCreate,
    InstituteCreate,
    InstituteSummary,
    PromoteToInstituteRequest,
    UsersByReferralCodeResponse,
)
from . import service

router = APIRouter(
    prefix="/api/v1/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


@router.get("/users", response_model=List[UserResponse])
async def list_users(
    role: Optional[UserRole] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[UserResponse]:
    users = await service.list_users(db, role)
    return [UserResponse.model_validate(u) for u in users]


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    try:
        user = await service.get_user(db, user_id)
    except ServiceError as e:
        raise http_exception_from(e)
    return UserResponse.model_validate(user)


@router.put("/users/{user_id}/promote", response_model=UserResponse)
async def promote_to_admin(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    try:
        user = await service.promote_to_admin(db, user_id)
    except ServiceError as e:
        raise http_exception_from(e)
    return UserResponse.model_validate(user)


@router.put("/users/{user_id}/promote-to-institute", response_model=UserResponse)
async def promote_to_institute(
    user_id: UUID,
    payload: Optional[PromoteToInstituteRequest] = None,
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    custom_code = payload.custom_referral_code if payload else None
    try:
        user = await service.promote_to_institute(db, user_id, custom_code)
    except ServiceError as e:
        raise http_exception_from(e)
    return UserResponse.model_validate(user)


@router.post("/institutes", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_institute(
    payload: InstituteCreate,
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """Onboard an institute directly; it gets a referral code (custom or generated)."""
    try:
        user = await service.create_institute(db, payload)
    except ServiceError as e:
        raise http_exception_from(e)
    return UserResponse.model_validate(user)


@router.get("/institutes", response_model=List[InstituteSummary])
async def list_institutes(db: AsyncSession = Depends(get_db)) -> List[InstituteSummary]:
    return await service.list_institutes(db)


@router.post("/admins", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_admin(
    payload: AdminCreate,
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    try:
        user = await service.create_admin(db, payload)
    except ServiceError as e:
        raise http_exception_from(e)
    return UserResponse.model_validate(user)


@router.get("/users-by-referral/{code}", response_model=UsersByReferralCodeResponse)
async def users_by_referral_code(
    code: str,
    db: AsyncSession = Depends(get_db),
) -> UsersByReferralCodeResponse:
    try:
        owner, users = await referral_service.list_users_by_referral_code(db, code)
    except ServiceError as e:
        raise http_exception_from(e)
    return UsersByReferralCodeResponse(
        institute=UserResponse.model_validate(owner),
        count=len(users),
        users=[UserResponse.model_validate(u) for u in users],
    )


@router.get("/referrals", response_model=ReferralPairsResponse)
async def list_referrals(db: AsyncSession = Depends(get_db)) -> ReferralPairsResponse:
    pairs = await referral_service.list_referral_pairs(db)
    return ReferralPairsResponse(count=len(pairs), data=pairs)


@router.get("/referral-stats", response_model=ReferralStats)
async def referral_stats(
    limit: int = Query(5, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
) -> ReferralStats:
    """Total referral count and the owners with the most referrals."""
    return await referral_service.get_referral_stats(db, limit)
