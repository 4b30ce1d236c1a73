"""
CHGK Portal – Async SQLAlchemy engine, session, and declarative base.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from chgk_portal.config import settings


# ── Declarative base ──
class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


def build_engine(url: str) -> Optional[AsyncEngine]:
    """Create the async engine, or None when no store is configured."""
    if not url:
        return None

    engine_kwargs = {
        "echo": settings.DEBUG and settings.LOG_LEVEL.upper() == "DEBUG",
        "future": True,
    }

    # If using PostgreSQL (Render/Supabase), disable prepared statement caching
    # because PgBouncer (transaction mode) does not support it properly.
    if "postgresql" in url:
        engine_kwargs["connect_args"] = {"statement_cache_size": 0}

    return create_async_engine(url, **engine_kwargs)


# ── Engine ──
engine = build_engine(settings.DATABASE_URL)

# ── Session factory ──
async_session = (
    async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    if engine is not None
    else None
)


def is_configured() -> bool:
    return async_session is not None


# ── Dependency for FastAPI routes ──
async def get_db() -> Optional[AsyncSession]:  # type: ignore[misc]
    """
    Yield an async database session, auto-closed on exit.
    Yields None when the store is not configured; repositories short-circuit on it.
    """
    if async_session is None:
        yield None
        return
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
