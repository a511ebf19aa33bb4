from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from fastapi import status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from campushub.auth import store
from campushub.auth.models import User
from campushub.auth.schemas import LoginRequest, LoginResponse, SignupRequest, UserResponse
from campushub.auth.security import create_access_token, hash_password, verify_password
from campushub.core.config import settings
from campushub.core.enums import UnmatchedReferralPolicy, UserRole
from campushub.core.exceptions import (
    ConflictError,
    InvalidReferralCodeError,
    ServiceError,
)
from campushub.core.logging_config import get_logger

logger = get_logger(__name__)


async def ensure_contact_available(
    db: AsyncSession, email: Optional[str], phone: Optional[str]
) -> None:
    """Raise ConflictError if the email or phone already belongs to a user."""
    if email and await store.find_by_email(db, email):
        raise ConflictError("A user with this email already exists")
    if phone and await store.find_by_phone(db, phone):
        raise ConflictError("A user with this phone number already exists")


async def _insert_student(
    db: AsyncSession,
    payload: SignupRequest,
    referrer_code_used: Optional[str],
    referred_by_id: Optional[UUID],
) -> User:
    user = await store.create(
        db,
        name=payload.name,
        email=payload.email.lower(),
        phone=payload.phone,
        password_hash=hash_password(payload.password) if payload.password else None,
        role=UserRole.STUDENT.value,
        college=payload.college,
        course=payload.course,
        year=payload.year.value if payload.year else None,
        referrer_code_used=referrer_code_used,
        referred_by_id=referred_by_id,
    )
    await db.commit()
    await db.refresh(user)
    return user


def _reject_unmatched() -> bool:
    return settings.referral_unmatched_policy == UnmatchedReferralPolicy.REJECT.value


async def signup_user(db: AsyncSession, payload: SignupRequest) -> User:
    """
    Create a student account and attribute it to the owner of the referral code, if any.

    The owner's referral list is derived from referred_by_id, so attribution is
    this single insert. An unmatched code is either kept for audit (policy
    "record") or fails the signup (policy "reject"). An owner removed between
    the lookup and the insert counts as unmatched.
    """
    await ensure_contact_available(db, payload.email, payload.phone)

    raw_code = payload.referrer_code_used.strip() if payload.referrer_code_used else None
    referrer_code_used: Optional[str] = None
    referred_by_id: Optional[UUID] = None
    if raw_code:
        referred_by = await store.find_by_referral_code(db, raw_code)
        if referred_by is None:
            if _reject_unmatched():
                raise InvalidReferralCodeError("Invalid referral code")
            logger.warning("referral_code_unmatched", code=raw_code, email=payload.email)
        else:
            referred_by_id = referred_by.id
        referrer_code_used = raw_code

    try:
        user = await _insert_student(db, payload, referrer_code_used, referred_by_id)
    except IntegrityError as e:
        await db.rollback()
        if referred_by_id is None or await store.find_by_id(db, referred_by_id) is not None:
            raise ConflictError("A user with this email or phone number already exists") from e
        # The referred_by_id foreign key failed: the owner is gone
        if _reject_unmatched():
            raise InvalidReferralCodeError("Invalid referral code") from e
        logger.warning("referral_code_unmatched", code=raw_code, email=payload.email)
        referred_by_id = None
        try:
            user = await _insert_student(db, payload, referrer_code_used, None)
        except IntegrityError as retry_error:
            await db.rollback()
            raise ConflictError("A user with this email or phone number already exists") from retry_error

    logger.info("user_signed_up", user_id=str(user.id), role=user.role)
    if referred_by_id is not None:
        logger.info(
            "referral_attributed",
            user_id=str(user.id),
            referrer_id=str(referred_by_id),
            code=referrer_code_used,
        )
    return user


async def login_user(db: AsyncSession, payload: LoginRequest) -> LoginResponse:
    user = await store.find_by_email(db, payload.email)
    if not user or not verify_password(payload.password, user.password_hash):
        raise ServiceError("Invalid credentials", status.HTTP_401_UNAUTHORIZED)

    issued_at = datetime.now(timezone.utc)
    access_token = create_access_token(
        subject={
            "sub": str(user.id),
            "iat": int(issued_at.timestamp()),
        }
    )
    logger.info("user_logged_in", user_id=str(user.id))
    return LoginResponse(
        access_token=access_token,
        user=UserResponse.model_validate(user),
        issued_at=issued_at,
    )
