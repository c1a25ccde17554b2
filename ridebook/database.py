"""
Async SQLAlchemy engine, session factory and declarative base.
"""
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from ridebook.config import get_settings

settings = get_settings()


class Base(DeclarativeBase):
    pass


def make_engine(url: str | None = None) -> AsyncEngine:
    return create_async_engine(
        url or settings.database_url,
        echo=settings.database_echo,
        pool_pre_ping=True,
    )


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


engine = make_engine()
AsyncSessionLocal = make_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


async def create_all(bind: AsyncEngine = engine) -> None:
    """Create tables for every registered model."""
    import ridebook.models  # noqa: F401  (register mappers)

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
