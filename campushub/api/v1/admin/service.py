"""
Role promotion and admin onboarding.

Supported transitions: student -> institute, student -> admin,
institute -> admin. Promoting an admin to admin is a no-op; every other
change raises InvalidTransitionError. Promotion to institute always assigns a
referral code.
"""

from contextlib import aclosing
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from campushub.auth import store
from campushub.auth.models import User
from campushub.auth.referral_code import generation_exhausted, referral_code_attempts
from campushub.auth.security import hash_password
from campushub.auth.services import ensure_contact_available
from campushub.core.enums import UserRole
from campushub.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
)
from campushub.core.logging_config import get_logger

from .schemas import AdminCreate, InstituteCreate, InstituteSummary

logger = get_logger(__name__)

ALLOWED_TRANSITIONS = {
    (UserRole.STUDENT.value, UserRole.INSTITUTE.value),
    (UserRole.STUDENT.value, UserRole.ADMIN.value),
    (UserRole.INSTITUTE.value, UserRole.ADMIN.value),
}


def check_transition(current_role: str, target_role: str) -> None:
    if (current_role, target_role) not in ALLOWED_TRANSITIONS:
        raise InvalidTransitionError(
            f"Cannot promote a user with role '{current_role}' to '{target_role}'"
        )


async def _get_user_or_404(db: AsyncSession, user_id: UUID) -> User:
    user = await store.find_by_id(db, user_id)
    if not user:
        raise NotFoundError(f"User not found with id of {user_id}")
    return user


async def promote_to_admin(db: AsyncSession, user_id: UUID) -> User:
    user = await _get_user_or_404(db, user_id)
    if user.role == UserRole.ADMIN.value:
        return user
    check_transition(user.role, UserRole.ADMIN.value)

    previous_role = user.role
    # An institute keeps its referral code (and so its referrals) as an admin
    await store.update(db, user, role=UserRole.ADMIN.value)
    await db.commit()
    await db.refresh(user)
    logger.info("user_promoted", user_id=str(user.id), from_role=previous_role, to_role=user.role)
    return user


async def promote_to_institute(
    db: AsyncSession, user_id: UUID, custom_code: Optional[str] = None
) -> User:
    """
    Make a student an institute and give it a referral code.

    The generator pre-checks codes; the unique constraint on referral_code is
    the final word. A custom code that loses the race is a ConflictError, a
    generated one moves on to the next candidate within the same attempt
    budget. Nothing is persisted on failure.
    """
    user = await _get_user_or_404(db, user_id)
    check_transition(user.role, UserRole.INSTITUTE.value)

    previous_role = user.role
    is_custom = bool(custom_code and custom_code.strip())
    async with aclosing(referral_code_attempts(db, custom_code=custom_code, name=user.name)) as codes:
        async for code in codes:
            try:
                await store.update(db, user, role=UserRole.INSTITUTE.value, referral_code=code)
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                await db.refresh(user)
                if is_custom:
                    raise ConflictError("Referral code is already in use") from e
                logger.warning("referral_code_collision", code=code, user_id=str(user.id))
                continue
            await db.refresh(user)
            logger.info(
                "user_promoted",
                user_id=str(user.id),
                from_role=previous_role,
                to_role=user.role,
            )
            logger.info("referral_code_issued", user_id=str(user.id), code=code, custom=is_custom)
            return user

    raise generation_exhausted(user_id=str(user_id))


async def create_institute(db: AsyncSession, payload: InstituteCreate) -> User:
    """Create an institute account with a referral code in one step, without a prior signup."""
    await ensure_contact_available(db, payload.email, payload.mobile)

    password_hash = hash_password(payload.password) if payload.password else None
    custom_code = payload.custom_referral_code
    is_custom = bool(custom_code and custom_code.strip())
    async with aclosing(referral_code_attempts(db, custom_code=custom_code, name=payload.name)) as codes:
        async for code in codes:
            try:
                user = await store.create(
                    db,
                    name=payload.name,
                    email=payload.email.lower() if payload.email else None,
                    phone=payload.mobile,
                    password_hash=password_hash,
                    role=UserRole.INSTITUTE.value,
                    college=payload.college,
                    referral_code=code,
                    is_verified=True,
                )
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                # Only an owned code collides on referral_code; otherwise email/phone lost the race
                if await store.find_by_referral_code(db, code) is None:
                    raise ConflictError("A user with this email or phone number already exists") from e
                if is_custom:
                    raise ConflictError("Referral code is already in use") from e
                logger.warning("referral_code_collision", code=code, name=payload.name)
                continue
            await db.refresh(user)
            logger.info("institute_created", user_id=str(user.id))
            logger.info(
                "referral_code_issued",
                user_id=str(user.id),
                code=code,
                custom=is_custom,
            )
            return user

    raise generation_exhausted(name=payload.name)


async def create_admin(db: AsyncSession, payload: AdminCreate) -> User:
    await ensure_contact_available(db, payload.email, payload.mobile)
    try:
        user = await store.create(
            db,
            name=payload.name,
            email=payload.email.lower(),
            phone=payload.mobile,
            password_hash=hash_password(payload.password),
            role=UserRole.ADMIN.value,
            is_verified=True,
        )
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("A user with this email or phone number already exists") from e
    await db.refresh(user)
    logger.info("admin_created", user_id=str(user.id))
    return user


async def get_user(db: AsyncSession, user_id: UUID) -> User:
    return await _get_user_or_404(db, user_id)


async def list_users(db: AsyncSession, role: Optional[UserRole] = None) -> List[User]:
    return await store.list_users(db, role.value if role else None)


async def list_institutes(db: AsyncSession) -> List[InstituteSummary]:
    institutes = await store.list_users(db, UserRole.INSTITUTE.value)
    summaries = []
    for institute in institutes:
        summaries.append(
            InstituteSummary(
                id=institute.id,
                name=institute.name,
                email=institute.email,
                phone=institute.phone,
                college=institute.college,
                referral_code=institute.referral_code,
                referral_count=await store.count_referrals(db, institute.id),
            )
        )
    return summaries
