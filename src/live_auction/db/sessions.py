"""Database engine and session management."""
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (AsyncEngine, AsyncSession,
                                    async_sessionmaker, create_async_engine)
from sqlmodel import SQLModel

from live_auction.db.models import (  # noqa: F401  # pylint: disable=unused-import
    Auction, Bid, Notification, User)

SessionFactory = async_sessionmaker[AsyncSession]


def _serialize_sqlite_writers(engine: AsyncEngine) -> None:
    """Take the SQLite write lock when a transaction begins, not on its first write.

    Without this, two transactions that both read before writing can fail with
    "database is locked" instead of waiting for each other.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_implicit_begin(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_database_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine. Pool sizing only applies to server databases."""
    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=echo)
        _serialize_sqlite_writers(engine)
        return engine
    return create_async_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


def make_session_factory(engine: AsyncEngine) -> SessionFactory:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def session_scope(factory: SessionFactory) -> AsyncIterator[AsyncSession]:
    """Yield a session in a transaction; commits on success, rolls back on error."""
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables. Safe to call on startup (idempotent for existing tables)."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
