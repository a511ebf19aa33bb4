import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import AsyncGenerator, Callable, Dict, Optional  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from campushub.auth import store  # noqa: E402
from campushub.auth.models import User  # noqa: E402
from campushub.auth.security import create_access_token, hash_password  # noqa: E402
from campushub.db.session import Base, get_db  # noqa: E402
from campushub.main import app  # noqa: E402


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "StrongPass123"


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test; the FastAPI dependency shares the same session."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def make_user(db_session: AsyncSession) -> Callable:
    """Factory: insert a committed user directly through the store."""
    counter = {"n": 0}

    async def _make_user(
        name: str = "Test User",
        role: str = "student",
        email: Optional[str] = None,
        phone: Optional[str] = None,
        referral_code: Optional[str] = None,
        with_password: bool = False,
        **fields,
    ) -> User:
        counter["n"] += 1
        user = await store.create(
            db_session,
            name=name,
            role=role,
            email=email or f"user{counter['n']}@example.com",
            phone=phone,
            referral_code=referral_code,
            password_hash=hash_password(TEST_PASSWORD) if with_password else None,
            **fields,
        )
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def auth_headers() -> Callable[[User], Dict[str, str]]:
    """Build a bearer header for a user."""

    def _headers(user: User) -> Dict[str, str]:
        token = create_access_token(subject={"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}

    return _headers
