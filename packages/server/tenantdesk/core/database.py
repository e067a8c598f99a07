"""
Database connection and session management.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from tenantdesk.core.config import get_settings
from tenantdesk.core.errors import TenantDeskError

settings = get_settings()
log = structlog.get_logger()

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    future=True,
)

async_session_factory = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db():
    """Create all tables."""
    import tenantdesk.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_session_context():
    """Context manager for use outside of FastAPI request lifecycle."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def flush_unique(session: AsyncSession, error: TenantDeskError) -> None:
    """Flush, raising ``error`` if a unique constraint rejects the write.

    The existence checks in the services run before the insert, so two
    concurrent requests can both pass them; the constraint decides.
    """
    try:
        await session.flush()
    except IntegrityError as exc:
        log.info("db.unique_violation", error=error.code, detail=str(exc.orig))
        raise error from exc
