"""
Fadetrack Backend: Database Session Management
===============================================

What:  Async SQLAlchemy engine, session factory, declarative `Base` and the
       per-request session dependency.
How:   One engine per process. Each request gets its own `AsyncSession`,
       committed when the handler returns and rolled back when it raises.

Transaction boundary:
    Everything a request writes lands in one transaction. Services only
    `flush()`; the dependency below owns `commit()`. This is what lets a
    review insert and its aggregate update succeed or fail together, and
    what rolls back a usage-quota increment when the upstream AI call fails.
"""

from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from fadetrack.config import settings


def _engine_options(url: str) -> Dict[str, Any]:
    # SQLite (used for local runs and tests) has no server-side pool to size.
    if url.startswith("sqlite"):
        return {"echo": settings.log_level == "DEBUG"}
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": settings.db_pool_pre_ping,
        "pool_recycle": 3600,
        "echo": settings.log_level == "DEBUG",
    }


def build_engine(url: str) -> AsyncEngine:
    return create_async_engine(url, **_engine_options(url))


engine = build_engine(settings.database_url)

# expire_on_commit=False keeps attributes readable after the dependency commits
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp used as the ORM-side column default."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models; its metadata drives Alembic."""
    pass


def dialect_insert(db: AsyncSession):
    """`insert()` construct supporting ON CONFLICT for the session's dialect."""
    if db.get_bind().dialect.name == "postgresql":
        return pg_insert
    return sqlite_insert


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Commits after the handler returns, rolls back on any exception and
    re-raises so the global handlers can build the error response.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def dispose_engine() -> None:
    """Close every pooled connection (called on shutdown)."""
    await engine.dispose()
