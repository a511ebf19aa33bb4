"""
User store: persistence operations shared by the signup, promotion and referral services.

Referrals are derived: the users attributed to an owner are those whose
referred_by_id points at the owner, so attribution is a single insert and
there is no second record to keep in sync.
"""

from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from campushub.auth.models import User
from campushub.core.config import settings


def normalize_referral_code(code: Optional[str]) -> Optional[str]:
    """Strip surrounding whitespace and, when configured, upper-case. Blank -> None."""
    if code is None:
        return None
    value = str(code).strip()
    if not value:
        return None
    if settings.referral_code_case_insensitive:
        value = value.upper()
    return value


async def find_by_id(db: AsyncSession, user_id: UUID) -> Optional[User]:
    return await db.get(User, user_id)


async def find_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
    return result.scalar_one_or_none()


async def find_by_phone(db: AsyncSession, phone: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.phone == phone.strip()))
    return result.scalar_one_or_none()


async def find_by_referral_code(db: AsyncSession, code: Optional[str]) -> Optional[User]:
    """Owner of a referral code, or None. The lookup code is normalised the same way issued codes are."""
    normalized = normalize_referral_code(code)
    if normalized is None:
        return None
    result = await db.execute(select(User).where(User.referral_code == normalized))
    return result.scalar_one_or_none()


async def referral_code_taken(db: AsyncSession, code: str) -> bool:
    """
    True if the code is owned by a user, or was recorded at signup without an owner.

    A recorded-but-unmatched code is reserved so that issuing it later cannot
    leave earlier signups outside the new owner's referrals.
    """
    normalized = normalize_referral_code(code)
    if normalized is None:
        return False
    if await find_by_referral_code(db, normalized) is not None:
        return True
    used_column = User.referrer_code_used
    if settings.referral_code_case_insensitive:
        used_column = func.upper(User.referrer_code_used)
    result = await db.execute(
        select(func.count())
        .select_from(User)
        .where(used_column == normalized, User.referred_by_id.is_(None))
    )
    return (result.scalar() or 0) > 0


async def create(db: AsyncSession, **fields) -> User:
    """Add a new user to the session and flush it. Does not commit; caller must commit."""
    user = User(**fields)
    db.add(user)
    await db.flush()
    return user


async def update(db: AsyncSession, user: User, **patch) -> User:
    """Apply a patch to a loaded user and flush. Does not commit; caller must commit."""
    if "referrer_code_used" in patch:
        raise ValueError("referrer_code_used is immutable after creation")
    for key, value in patch.items():
        setattr(user, key, value)
    await db.flush()
    return user


async def list_referrals(db: AsyncSession, owner_id: UUID) -> List[User]:
    """Users attributed to an owner, oldest first."""
    result = await db.execute(
        select(User)
        .where(User.referred_by_id == owner_id)
        .order_by(User.created_at, User.id)
    )
    return list(result.scalars().all())


async def count_referrals(db: AsyncSession, owner_id: UUID) -> int:
    result = await db.execute(
        select(func.count()).select_from(User).where(User.referred_by_id == owner_id)
    )
    return result.scalar() or 0


async def list_users(db: AsyncSession, role: Optional[str] = None) -> List[User]:
    stmt = select(User).order_by(User.created_at.desc(), User.id)
    if role:
        stmt = stmt.where(User.role == role)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def count_all_referrals(db: AsyncSession) -> int:
    """Number of attributed users across all owners."""
    result = await db.execute(
        select(func.count()).select_from(User).where(User.referred_by_id.is_not(None))
    )
    return result.scalar() or 0


async def list_referral_pairs(
    db: AsyncSession, owner_id: Optional[UUID] = None
) -> List[Tuple[User, User]]:
    """(owner, referred user) pairs, newest referral first; limited to one owner when given."""
    owner = aliased(User)
    stmt = (
        select(owner, User)
        .join(owner, User.referred_by_id == owner.id)
        .order_by(User.created_at.desc(), User.id)
    )
    if owner_id is not None:
        stmt = stmt.where(owner.id == owner_id)
    result = await db.execute(stmt)
    return [(row[0], row[1]) for row in result.all()]


async def top_referrers(db: AsyncSession, limit: int = 5) -> List[Tuple[User, int]]:
    """Owners with the most referrals, highest count first."""
    referred = aliased(User)
    referral_count = func.count(referred.id).label("referral_count")
    stmt = (
        select(User, referral_count)
        .join(referred, referred.referred_by_id == User.id)
        .group_by(User.id)
        .order_by(referral_count.desc(), User.created_at, User.id)
        .limit(limit)
    )
    result = await db.execute(stmt)
    return [(row[0], row[1]) for row in result.all()]
