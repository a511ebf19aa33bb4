"""
Promote an existing user to the admin role by email.

Idempotent: an existing admin is left unchanged.
Usage: python -m campushub.scripts.promote_to_admin user@example.com
"""

import argparse
import asyncio
import sys

from campushub.api.v1.admin import service as admin_service
from campushub.auth import store
from campushub.core.exceptions import ServiceError
from campushub.core.logging_config import get_logger, setup_logging
from campushub.db.session import AsyncSessionLocal

logger = get_logger(__name__)


async def promote_by_email(email: str) -> int:
    """Return a process exit code: 0 on success, 1 on failure."""
    async with AsyncSessionLocal() as session:
        user = await store.find_by_email(session, email)
        if not user:
            logger.error("user_not_found", email=email)
            return 1
        try:
            await admin_service.promote_to_admin(session, user.id)
        except ServiceError as e:
            logger.error("promotion_failed", email=email, error=e.message)
            return 1
    logger.info("promoted_to_admin", email=email)
    return 0


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Promote a user to admin")
    parser.add_argument("email", help="Email of the user to promote")
    args = parser.parse_args(argv)
    setup_logging()
    sys.exit(asyncio.run(promote_by_email(args.email)))


if __name__ == "__main__":
    main()
