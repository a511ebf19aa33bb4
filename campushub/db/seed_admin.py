"""
Seed script to create the first admin user.

Run once (after init_db) with env set:
  ADMIN_EMAIL=admin@yourdomain.com
  ADMIN_PASSWORD=YourSecurePassword

Creates the user with role admin, or promotes and resets the password of an
existing user with that email.
"""
import asyncio

from sqlalchemy.ext.asyncio import AsyncSession

from campushub.auth import store
from campushub.auth.security import hash_password
from campushub.core.config import settings
from campushub.core.enums import UserRole
from campushub.core.logging_config import get_logger, setup_logging
from campushub.db.session import AsyncSessionLocal

logger = get_logger(__name__)

DEFAULT_ADMIN_NAME = "Admin User"


async def seed_admin(db: AsyncSession, email: str, password: str, name: str = DEFAULT_ADMIN_NAME) -> None:
    email = email.strip().lower()
    user = await store.find_by_email(db, email)
    if not user:
        user = await store.create(
            db,
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=UserRole.ADMIN.value,
            is_verified=True,
        )
        logger.info("admin_seeded", email=email, user_id=str(user.id))
    else:
        await store.update(
            db,
            user,
            role=UserRole.ADMIN.value,
            password_hash=hash_password(password),
        )
        logger.info("admin_seed_updated_existing_user", email=email, user_id=str(user.id))
    await db.commit()


async def main() -> None:
    setup_logging()
    if not settings.admin_email or not settings.admin_password:
        logger.warning("admin_seed_skipped", reason="ADMIN_EMAIL/ADMIN_PASSWORD not set")
        return
    async with AsyncSessionLocal() as db:
        try:
            await seed_admin(db, settings.admin_email, settings.admin_password)
        except Exception:
            await db.rollback()
            logger.exception("admin_seed_failed")
            raise


if __name__ == "__main__":
    asyncio.run(main())
