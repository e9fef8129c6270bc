"""
Async SQLAlchemy engine and session factory for the sandbox authority.

Defaults to a local SQLite file through ``aiosqlite``; any async URL
(e.g. ``postgresql+asyncpg://``) works via ``SANDBOX_DATABASE_URL``.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from ridebook.config import settings

_pool_options = (
    {}
    if settings.sandbox_database_url.startswith("sqlite")
    else {"pool_size": 20, "max_overflow": 10}
)

engine = create_async_engine(
    settings.sandbox_database_url,
    echo=False,
    **_pool_options,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""
