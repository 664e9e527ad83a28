"""
Pytest fixtures for SkillSwap tests.

Environment is set before anything under ``skillswap`` is imported so the
app, the token verifier and the rate limiter all see the test settings.
"""

import os
import tempfile
import time
from typing import AsyncGenerator, Optional

# File-based SQLite so every connection sees the same database
_tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
_tmp.close()
TEST_DB_PATH = _tmp.name
TEST_DATABASE_URL = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
TEST_JWT_SECRET = "test-secret-key-for-testing-only-0123456789"

os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["IDENTITY_JWT_SECRET"] = TEST_JWT_SECRET

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from skillswap.config import get_settings

get_settings.cache_clear()

from skillswap.database import build_engine, get_db
from skillswap.kernel.models import Base
from skillswap.kernel.models.skill import Skill, SkillCategory, SkillLevel
from skillswap.kernel.models.user import User


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Engine built the way the app builds it, over a fresh schema."""
    engine = build_engine(TEST_DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session configured like the app's."""
    session_maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory for flushed users; ``name`` doubles as the provider subject."""

    async def _make(name: str, is_admin: bool = False) -> User:
        user = User(
            supabase_id=f"sub-{name}",
            email=f"{name}@example.com",
            name=name.title(),
            is_admin=is_admin,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make


@pytest.fixture
def make_skill(db_session: AsyncSession):
    """Factory for flushed skills owned by ``owner``."""

    async def _make(owner: User, title: str = "Guitar lessons") -> Skill:
        skill = Skill(
            owner_id=owner.id,
            owner_supabase_id=owner.supabase_id,
            title=title,
            description=f"{title} for beginners",
            category=SkillCategory.MUSIC,
            level=SkillLevel.INTERMEDIATE,
            tags=["music"],
        )
        db_session.add(skill)
        await db_session.flush()
        return skill

    return _make


def make_token(
    sub: str,
    email: Optional[str] = None,
    expires_in: int = 3600,
    audience: str = "authenticated",
    secret: str = TEST_JWT_SECRET,
    **metadata,
) -> str:
    """Sign a token the way the identity provider does."""
    now = int(time.time())
    payload = {
        "sub": sub,
        "email": email,
        "aud": audience,
        "role": "authenticated",
        "iat": now,
        "exp": now + expires_in,
        "user_metadata": metadata,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def token_factory():
    return make_token


@pytest.fixture
def auth_headers():
    """Bearer headers for a provider subject, e.g. ``auth_headers("alice")``."""

    def _headers(name: str) -> dict:
        token = make_token(f"sub-{name}", email=f"{name}@example.com", full_name=name.title())
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def client(db_engine) -> AsyncGenerator[AsyncClient, None]:
    """Async client bound to the test database, rate limiting disabled."""
    from skillswap.main import app

    session_maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.pop(get_db, None)
