# doctalk/db.py
import logging
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.pool import NullPool
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
)
from doctalk.config import settings
from doctalk.models import Base

logger = logging.getLogger(__name__)


def make_engine(database_url: str) -> AsyncEngine:
    options = {"echo": False, "future": True}
    if database_url.startswith("sqlite"):
        # aiosqlite connections are tied to the event loop that opened them
        options["poolclass"] = NullPool
    else:
        options["pool_pre_ping"] = True
    return create_async_engine(database_url, **options)


def make_sessionmaker(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind, expire_on_commit=False, class_=AsyncSession)


engine = make_engine(settings.database_url)
AsyncSessionLocal = make_sessionmaker(engine)


async def create_tables(bind: AsyncEngine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_models() -> None:
    """
    Startup helper that creates tables from ORM metadata.
    Existing tables are left untouched.
    """
    await create_tables(engine)
    logger.info("Database tables created/checked")


async def close_engine() -> None:
    """Call this on app shutdown to cleanly dispose connection pool."""
    await engine.dispose()
    logger.info("Database engine disposed")


async def ping(session: AsyncSession) -> None:
    await session.execute(text("SELECT 1"))


# FastAPI dependency
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Use in FastAPI routes like:
        async def endpoint(session: AsyncSession = Depends(get_async_session)):
            ...
    Ensures session is closed and rolled back on error.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
