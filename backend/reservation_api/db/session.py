"""
Async engine, session factory and the transaction scope used by the
reservation service.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from reservation_api.core.config import get_settings
from reservation_api.core.exceptions import ReservationError, Timeout
from reservation_api.core.logging import get_logger
from reservation_api.core.metrics import storage_timeouts
from reservation_api.db.errors import translate_storage_error

logger = get_logger(__name__)
settings = get_settings()


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """Create an async engine; pool tuning only applies to PostgreSQL."""
    if url.startswith("postgresql"):
        kwargs.setdefault("pool_size", settings.DB_POOL_SIZE)
        kwargs.setdefault("max_overflow", settings.DB_MAX_OVERFLOW)
        kwargs.setdefault("pool_timeout", settings.DB_POOL_TIMEOUT)
        kwargs.setdefault("pool_recycle", settings.DB_POOL_RECYCLE)
        kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(url, echo=settings.DEBUG, **kwargs)


engine = build_engine(settings.DATABASE_URL)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency. The reservation service owns commit/rollback."""
    async with AsyncSessionLocal() as session:
        yield session


async def _apply_lock_timeout(db: AsyncSession) -> None:
    if db.get_bind().dialect.name == "postgresql":
        # SET LOCAL does not take bind parameters; the value is an int setting.
        await db.execute(text(f"SET LOCAL lock_timeout = '{int(settings.DB_LOCK_TIMEOUT_MS)}ms'"))


@asynccontextmanager
async def transaction(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    All-or-nothing scope: commit on success, roll back on any failure.

    Storage errors (including a failing COMMIT) leave as ReservationError.
    Task cancellation rolls back before the CancelledError propagates.
    """
    try:
        await _apply_lock_timeout(db)
        yield db
        await db.commit()
    except ReservationError as exc:
        await db.rollback()
        if isinstance(exc, Timeout):
            storage_timeouts.inc()
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        error = translate_storage_error(exc)
        if isinstance(error, Timeout):
            storage_timeouts.inc()
        logger.warning("transaction_failed", error=error.error_code, cause=type(exc).__name__)
        raise error from exc
    except asyncio.CancelledError:
        await asyncio.shield(db.rollback())
        logger.info("transaction_cancelled")
        raise
    except BaseException:
        await db.rollback()
        raise
