"""
Database engine, session management, and base model class.

This module sets up SQLAlchemy 2.0 with async support. Key components:

  - build_engine(): Creates an async engine with the locking behaviour
    the ledger needs (see "Isolation" below)
  - engine / AsyncSessionLocal: The application's engine and session factory
  - Base: Declarative base class that all ORM models inherit from
  - session_scope(): The atomic unit of work — one session, one transaction
  - get_db(): FastAPI dependency wrapping session_scope()

Isolation:
  Every ledger operation reads an account balance and writes it back in
  the same unit of work. Two units racing on the same account must not
  both read the same balance.

    - PostgreSQL (and other server databases): the services lock the rows
      they mutate with SELECT ... FOR UPDATE.
    - SQLite: FOR UPDATE is a no-op, so the engine replaces pysqlite's
      deferred BEGIN with BEGIN IMMEDIATE. The database write lock is then
      held from the first statement of the unit until COMMIT/ROLLBACK, and
      a second writer waits (up to SQLITE_BUSY_TIMEOUT) instead of reading
      a stale balance.

Session lifecycle:
  session_scope() commits on success and rolls back on ANY exception, so a
  failed operation leaves no partial Transaction, Liability or balance
  change behind. Storage errors raised while flushing or committing are
  re-raised as StorageFailureError.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from bookkeeping.config import settings
from bookkeeping.exceptions import BookkeepingError, StorageFailureError

logger = logging.getLogger(__name__)


def _enable_immediate_transactions(engine: AsyncEngine) -> None:
    """Make every SQLite transaction take the write lock at BEGIN."""

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        # Stop the driver from emitting its own (deferred) BEGIN
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for `url`.

    SQLite engines get a busy timeout and BEGIN IMMEDIATE transactions;
    other backends are returned as-is (the services use FOR UPDATE locks).
    """
    if url.startswith("sqlite"):
        engine = create_async_engine(
            url,
            echo=echo,
            connect_args={"timeout": settings.SQLITE_BUSY_TIMEOUT},
        )
        _enable_immediate_transactions(engine)
        return engine

    return create_async_engine(url, echo=echo, pool_pre_ping=True)


# echo=True in debug mode logs all SQL statements
engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# expire_on_commit=False keeps attributes readable after commit without a
# lazy reload (which would need a synchronous DB call in async context).
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
) -> AsyncIterator[AsyncSession]:
    """
    Run one atomic unit of work.

    Usage:
        async with session_scope() as db:
            await transaction_service.record_transaction(db, ...)

    Commits when the block exits normally; rolls back and re-raises on any
    exception. SQLAlchemy errors become StorageFailureError.
    """
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except BookkeepingError:
            await session.rollback()
            raise
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.error("Unit of work rolled back: %s", exc)
            raise StorageFailureError() from exc
        except BaseException:
            await session.rollback()
            raise


async def get_db() -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency that provides a database session.

    Usage in a route:
        @router.post("/transactions")
        async def create(db: AsyncSession = Depends(get_db)):
            ...

    The request is one unit of work: committed when the handler returns,
    rolled back if it raises.
    """
    async with session_scope(AsyncSessionLocal) as session:
        yield session
