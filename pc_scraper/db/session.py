"""Async database engine and session factory."""

from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from pc_scraper.config import settings
from pc_scraper.db.models import Base


def create_engine_and_sessionmaker(
    database_url: Optional[str] = None,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """
    Create an engine and a session factory for a database URL.

    Args:
        database_url: SQLAlchemy async URL (defaults to settings)

    Returns:
        Tuple of (engine, session factory)
    """
    url = database_url or settings.database_url
    kwargs = {"pool_pre_ping": True}
    if url.startswith("postgresql"):
        kwargs.update(pool_size=5, max_overflow=20)
    new_engine = create_async_engine(url, **kwargs)
    factory = async_sessionmaker(new_engine, class_=AsyncSession, expire_on_commit=False)
    return new_engine, factory


engine, AsyncSessionLocal = create_engine_and_sessionmaker()


async def init_db(target: Optional[AsyncEngine] = None) -> None:
    """Create missing tables."""
    async with (target or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
