"""
Database engines and session factories.

Two stores are read: the scan store (IHS sessions and trial data) and the
research store (questionnaires and participant demographics). Both are
accessed through SQLAlchemy 2.0 async engines. When RESEARCH_DATABASE_URL is
unset the research store shares the scan store's database.
"""

import os
from typing import Any, AsyncGenerator, Dict

from dotenv import load_dotenv
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from ihs_validity.core.config import settings

# Pool settings are read straight from the environment (.env included)
load_dotenv()

POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
POOL_MAX_OVERFLOW = int(os.getenv("DB_POOL_MAX_OVERFLOW", "10"))
POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "3600"))

# Build async URLs by prefix replacement rather than a make_url() round trip,
# which rewrites some hostnames.
_SYNC_PREFIX_MAP = {
    "postgresql+psycopg2://": "postgresql+asyncpg://",
    "postgresql://": "postgresql+asyncpg://",
    "postgres://": "postgresql+asyncpg://",
    "sqlite://": "sqlite+aiosqlite://",
}
_ASYNC_PREFIXES = ("postgresql+asyncpg://", "sqlite+aiosqlite://")


def to_async_url(url: str) -> str:
    """Map a sync database URL onto its async driver."""
    if url.startswith(_ASYNC_PREFIXES):
        return url
    for sync_prefix, async_prefix in _SYNC_PREFIX_MAP.items():
        if url.startswith(sync_prefix):
            return async_prefix + url[len(sync_prefix) :]
    raise ValueError(
        f"No async driver mapping for database URL prefix. "
        f"Supported prefixes: {list(_SYNC_PREFIX_MAP.keys())}"
    )


def build_engine(url: str) -> AsyncEngine:
    """Create an async engine; pool sizing applies to server databases only."""
    async_url = to_async_url(url)
    kwargs: Dict[str, Any] = {"echo": settings.DEBUG}
    if not async_url.startswith("sqlite"):
        kwargs.update(
            pool_size=POOL_SIZE,
            max_overflow=POOL_MAX_OVERFLOW,
            pool_timeout=POOL_TIMEOUT,
            pool_recycle=POOL_RECYCLE,
            pool_pre_ping=True,
        )
    return create_async_engine(async_url, **kwargs)


scan_engine = build_engine(settings.DATABASE_URL)
research_engine = build_engine(settings.research_database_url)

ScanSessionLocal = async_sessionmaker(
    scan_engine, class_=AsyncSession, expire_on_commit=False
)
ResearchSessionLocal = async_sessionmaker(
    research_engine, class_=AsyncSession, expire_on_commit=False
)


class Base(DeclarativeBase):
    """SQLAlchemy 2.0 declarative base class."""

    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a scan store session."""
    async with ScanSessionLocal() as db:
        try:
            yield db
        except Exception:
            await db.rollback()
            raise


async def get_research_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a research store session."""
    async with ResearchSessionLocal() as db:
        try:
            yield db
        except Exception:
            await db.rollback()
            raise
