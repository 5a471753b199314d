"""Async engine and session factory."""

from functools import lru_cache

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from gymhub.config import get_settings
from gymhub.database.models import Base

# Seconds a SQLite connection waits for a competing writer before failing.
SQLITE_BUSY_TIMEOUT = 30


def create_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for the given database URL."""
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["timeout"] = SQLITE_BUSY_TIMEOUT
    return create_async_engine(url, echo=echo, connect_args=connect_args)


def create_session_maker(
    url: str, echo: bool = False
) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to a fresh engine."""
    engine = create_engine(url, echo=echo)
    return async_sessionmaker(engine, expire_on_commit=False)


@lru_cache
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Get the default session factory built from settings."""
    settings = get_settings()
    return create_session_maker(settings.db_url, echo=settings.db_echo)


async def init_db(session_maker: async_sessionmaker[AsyncSession] | None = None) -> None:
    """Create all tables."""
    session_maker = session_maker or get_session_maker()
    engine = session_maker.kw["bind"]
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
