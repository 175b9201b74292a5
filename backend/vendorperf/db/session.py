"""
Vendor Performance - Database Session

One AsyncSession per operation. Every multi-statement write runs inside
`transaction()` so any exception rolls the whole unit back.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from vendorperf.core.config import settings
from vendorperf.core.errors import TransientStoreError

logger = logging.getLogger(__name__)


engine = create_async_engine(settings.DATABASE_URL, echo=settings.DB_ECHO, future=True)
async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def transaction(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """
    Open a session and a transaction around it.
    
    Commits on clean exit, rolls back on any exception. Connection and
    timeout failures are re-raised as TransientStoreError.
    """
    try:
        async with session_maker() as session:
            async with session.begin():
                yield session
    except (OperationalError, InterfaceError, PoolTimeoutError) as e:
        logger.warning(f"Transaction rolled back on store failure: {e}")
        raise TransientStoreError(f"Data store unavailable: {e.__class__.__name__}") from e


async def advisory_lock(session: AsyncSession, key: str) -> None:
    """
    Take a transaction-scoped advisory lock on PostgreSQL.
    
    Serializes writers sharing `key` (tenant reclassification, alert
    dedup tuple). Other dialects rely on their own write locking.
    """
    if session.bind.dialect.name != "postgresql":
        return
    await session.execute(
        text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
        {"key": key},
    )
