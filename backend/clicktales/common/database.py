"""
Database connection management.

One relational database backs the credential store and the OTP ledger:
PostgreSQL in production, SQLite for local development and tests.
The manager is constructed explicitly (application lifespan, scripts, tests)
and handed to whoever needs it; request handlers reach it through
``request.app.state.db``.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional
import logging
import ssl

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from clicktales.common.base import Base
from clicktales.common.config import Settings

logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Owns the async engine and session factory.

    Usage:
        db = DatabaseManager(settings)
        await db.initialize()
        async with db.session() as session:
            result = await session.execute(stmt)
        await db.dispose()
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.available = False
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_sqlite(self) -> bool:
        return self.settings.database_type == "sqlite"

    async def initialize(self):
        """Create the engine and verify connectivity; the database is a hard dependency"""
        database_url = self.settings.database_url
        engine_kwargs = {"echo": self.settings.debug}

        if self.is_sqlite:
            Path(self.settings.sqlite_path).parent.mkdir(parents=True, exist_ok=True)
        else:
            ssl_context = ssl.create_default_context()
            engine_kwargs.update({
                "pool_size": 10,
                "max_overflow": 20,
                "pool_pre_ping": True,
                "connect_args": {"ssl": ssl_context},
            })

        self.engine = create_async_engine(database_url, **engine_kwargs)
        if self.is_sqlite:
            _enable_sqlite_transactions(self.engine)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        db_type = "SQLite" if self.is_sqlite else "PostgreSQL"
        try:
            async with self.engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"✗ {db_type} connection failed: {e}")
            raise RuntimeError(
                f"{db_type} is not available. This is a critical dependency. "
                f"Check your configuration and database setup."
            ) from e

        self.available = True
        logger.info(f"✓ {db_type} connection established")

    async def create_tables(self):
        """Create all tables registered on Base.metadata"""
        # Register models
        from clicktales.domains.user import models as _user_models  # noqa: F401
        from clicktales.domains.auth import models as _auth_models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured")

    async def dispose(self):
        if self.engine is not None:
            await self.engine.dispose()
            self.available = False
            logger.info("Database engine disposed")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Transactional session: commits on success, rolls back on error.

        Usage:
            async with db.session() as session:
                session.add(obj)
        """
        if not self.available:
            raise RuntimeError("Database is not available")

        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one session per request"""
    db: DatabaseManager = request.app.state.db
    async with db.session() as session:
        yield session


def _enable_sqlite_transactions(engine: AsyncEngine):
    """
    Let SQLAlchemy emit BEGIN itself so SAVEPOINT behaves on pysqlite,
    and turn on foreign key enforcement.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")
