"""
Database engine and session factory.

Both are built from settings at process start (API lifespan or worker
`main`) and disposed on shutdown; nothing connects at import time.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel.ext.asyncio.session import AsyncSession

engine_kwargs = {
    "pool_size": 10,
    "max_overflow": 20,
    "pool_timeout": 30,
    "pool_recycle": 1800,
    "pool_pre_ping": True,
}


def normalize_database_url(database_url: str) -> str:
    """Ensure usage of asyncpg driver for async operation with PostgreSQL."""
    for prefix in ("postgresql://", "postgres://"):
        if database_url.startswith(prefix):
            return "postgresql+asyncpg://" + database_url[len(prefix):]
    return database_url


def build_engine(database_url: str, **overrides) -> AsyncEngine:
    return create_async_engine(
        normalize_database_url(database_url), **{**engine_kwargs, **overrides}
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        autoflush=False,
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
