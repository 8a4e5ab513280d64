"""Async SQLite database setup with SQLAlchemy and aiosqlite."""
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from competitor_signals.config import settings


# Use same URL but ensure aiosqlite driver for async
DATABASE_URL = (
    settings.DATABASE_URL
    if settings.DATABASE_URL.startswith("sqlite+aiosqlite")
    else settings.DATABASE_URL.replace("sqlite://", "sqlite+aiosqlite://", 1)
)


def make_engine(url: str = DATABASE_URL) -> AsyncEngine:
    return create_async_engine(
        url,
        echo=settings.DEBUG,
        connect_args={"check_same_thread": False} if "sqlite" in url else {},
    )


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


engine = make_engine()
AsyncSessionLocal = make_session_factory(engine)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
) -> AsyncGenerator[AsyncSession, None]:
    """Context manager for an async session that commits on success (used by the report store)."""
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db(bind: AsyncEngine = engine) -> None:
    """Create all tables. Call on application startup."""
    # Register models on Base.metadata before create_all.
    import competitor_signals.models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(bind: AsyncEngine = engine) -> None:
    """Dispose engine on shutdown."""
    await bind.dispose()
