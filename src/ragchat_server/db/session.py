"""
Database Session Management

Provides the async SQLAlchemy engine and session factory used by the SQL
conversation store. The engine is built on demand so that importing the
package never requires a database driver.
"""

from __future__ import annotations

from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
)

from ..config import settings
from .models import Base


def create_session_factory(
    database_url: Optional[str] = None,
) -> Tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """
    Create an async engine and a session factory bound to it.

    Parameters
    ----------
    database_url : Optional[str]
        SQLAlchemy URL. Defaults to settings.database_url.
    """
    url = database_url or settings.database_url

    engine_kwargs = {"echo": False, "pool_pre_ping": True}
    if not url.startswith("sqlite"):
        engine_kwargs.update(pool_size=5, max_overflow=10)

    engine = create_async_engine(url, **engine_kwargs)

    factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return engine, factory


async def create_schema(engine: AsyncEngine) -> None:
    """
    Create all tables that do not exist yet.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
