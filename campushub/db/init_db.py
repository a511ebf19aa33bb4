"""
Create all tables from the ORM metadata (idempotent: existing tables are left alone).

Usage: python -m campushub.db.init_db
"""

import asyncio

from sqlalchemy.ext.asyncio import AsyncEngine

from campushub.auth.models import User  # noqa: F401  (registers the table on Base.metadata)
from campushub.core.logging_config import get_logger, setup_logging
from campushub.db.session import Base, engine

logger = get_logger(__name__)


async def create_tables(bind: AsyncEngine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("tables_created", tables=sorted(Base.metadata.tables))


async def main() -> None:
    setup_logging()
    try:
        await create_tables(engine)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
