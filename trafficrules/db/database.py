"""
Database Module

Async SQLAlchemy engine, session factory and declarative Base.

The engine is created lazily by SQLAlchemy (no connection is opened at
import time), so importing models never requires a reachable database.
"""

import logging
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from trafficrules.core.config import settings

logger = logging.getLogger(__name__)


# ============================================================
# Engine
# ============================================================

def _engine_kwargs() -> dict:
    kwargs = {
        "echo": settings.SQLALCHEMY_ECHO,
        "pool_pre_ping": True,
    }
    # SQLite (tests, local tooling) uses its own pool implementation
    if not str(settings.DATABASE_URL).startswith("sqlite"):
        if settings.DB_POOL_MIN_SIZE:
            kwargs["pool_size"] = settings.DB_POOL_MIN_SIZE
        if settings.DB_POOL_MAX_SIZE:
            kwargs["max_overflow"] = max(
                0, settings.DB_POOL_MAX_SIZE - (settings.DB_POOL_MIN_SIZE or 5)
            )
    return kwargs


engine = create_async_engine(str(settings.DATABASE_URL), **_engine_kwargs())

# expire_on_commit=False so objects stay usable after commit in async code
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


# ============================================================
# FastAPI Dependency
# ============================================================

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a database session for one request.

    Usage:
        @router.get("/")
        async def endpoint(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


# ============================================================
# Health Check
# ============================================================

async def check_db_connection() -> bool:
    """Return True if the database answers a trivial query."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
