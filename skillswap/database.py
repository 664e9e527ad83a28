"""
Async engine, session factory and the request-scoped session dependency.

PostgreSQL (asyncpg) in deployment, SQLite (aiosqlite) for local runs and tests.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from skillswap.config import get_settings
from skillswap.logging_config import get_logger

logger = get_logger(__name__)

_SQLITE_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA foreign_keys=ON",
    "PRAGMA busy_timeout=5000",
)


def _engine_options(url: str, echo: bool) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        # A fresh connection per session keeps concurrent requests apart
        return {
            "echo": echo,
            "poolclass": NullPool,
            "connect_args": {"check_same_thread": False},
        }
    return {
        "echo": echo,
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
    }


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an engine for ``url``; SQLite connections get foreign keys and WAL."""
    built = create_async_engine(url, **_engine_options(url, echo))

    if url.startswith("sqlite"):
        @event.listens_for(built.sync_engine, "connect")
        def _apply_pragmas(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            for pragma in _SQLITE_PRAGMAS:
                cursor.execute(pragma)
            cursor.close()

    return built


settings = get_settings()
engine = build_engine(settings.database_url, echo=settings.debug)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One session per request, committed when the handler returns cleanly."""
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        await session.commit()


async def ping_database() -> bool:
    """True when a trivial query round-trips."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        logger.warning("Database ping failed", exc_info=True)
        return False
    return True


async def init_db() -> None:
    """Create any missing tables. Migrations own the schema in deployment."""
    from skillswap.kernel.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
