"""
Wallet Ledger — Database engine and session factory

The connection pool is an explicit object: built in the application lifespan,
stored on app.state, handed to routes through get_db, and disposed on
shutdown. Its size bounds the number of in-flight transactions; callers past
the bound wait up to pool_timeout for a connection rather than failing fast.
"""
from typing import AsyncIterator

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import AsyncAdaptedQueuePool

from app.core.config import Settings


class Base(DeclarativeBase):
    pass


def _serialize_sqlite_writers(engine: AsyncEngine) -> None:
    """
    SQLite ignores FOR UPDATE. Starting every transaction with BEGIN IMMEDIATE
    takes the write lock up front, so concurrent ledger transactions queue
    behind each other instead of failing on lock upgrade.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 20,
        pool_timeout: float = 5.0,
        pool_recycle: int = 1800,
        echo: bool = False,
    ):
        is_sqlite = url.startswith("sqlite")
        connect_args = {"timeout": pool_timeout} if is_sqlite else {}
        self.engine: AsyncEngine = create_async_engine(
            url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=0,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            pool_pre_ping=not is_sqlite,
            connect_args=connect_args,
            poolclass=AsyncAdaptedQueuePool,
        )
        if is_sqlite:
            _serialize_sqlite_writers(self.engine)
        self.session_factory = async_sessionmaker(self.engine, expire_on_commit=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.database_url,
            pool_size=settings.DB_POOL_SIZE,
            pool_timeout=settings.DB_POOL_TIMEOUT_SECONDS,
            pool_recycle=settings.DB_POOL_RECYCLE_SECONDS,
            echo=settings.DEBUG,
        )

    async def create_all(self) -> None:
        # Import models so their tables are registered on Base.metadata
        from app import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        yield session
