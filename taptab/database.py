"""
Database Connection Module
Handles the relational store using the SQLAlchemy async engine.

The engine is built lazily so that development mode (in-memory backend)
never needs a database driver installed or reachable.
"""

import logging
from functools import lru_cache
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from taptab.core.config import get_settings

logger = logging.getLogger(__name__)


# Base class for all our models
class Base(DeclarativeBase):
    pass


@lru_cache()
def get_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """Create (once per URL) the async engine."""
    settings = get_settings()
    url = database_url or settings.database_url
    kwargs = {"echo": settings.database_echo}
    if not url.startswith("sqlite"):
        kwargs.update(pool_size=5, max_overflow=10)
    return create_async_engine(url, **kwargs)


def get_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to ``engine``."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False  # Objects remain accessible after commit
    )


async def init_db(engine: Optional[AsyncEngine] = None) -> None:
    """
    Create all tables in database.
    Called once at application startup when the SQL backend is active.
    """
    # Register models on the metadata
    from taptab import models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")
