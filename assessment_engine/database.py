"""
assessment_engine/database.py
Database engine and session lifecycle.

One Database object is built per process (FastAPI lifespan or CLI) and handed
to request handlers through app.state; nothing here is a module-level engine.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from assessment_engine.orm import Base

logger = logging.getLogger(__name__)


def _engine_options(url: str, echo: bool) -> dict:
    """Connection pool settings per backend."""
    options = {"echo": echo, "future": True, "pool_pre_ping": True}

    if "sqlite" in url.lower():
        # SQLite busy timeout so concurrent writers wait instead of failing
        options["connect_args"] = {"timeout": 30.0}
    else:
        options.update(
            pool_size=20,
            max_overflow=30,
            pool_timeout=30,
            pool_recycle=3600,
        )
    return options


class Database:
    """Owns the async engine and the session factory."""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.engine = create_async_engine(url, **_engine_options(url, echo))
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @property
    def dialect(self) -> str:
        return self.engine.url.get_backend_name()

    async def create_all(self) -> None:
        """Create missing tables. Existing tables are left untouched."""
        logger.info(f"Initializing database ({self.dialect})...")
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database initialization complete")

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database connection closed")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            try:
                yield session
            finally:
                await session.close()


@asynccontextmanager
async def unit_of_work(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Run a block in one fresh transaction.

    Reads issued earlier in the request (e.g. the auth lookup) autobegin a
    transaction; it is committed first so the block starts clean. On
    PostgreSQL the block runs SERIALIZABLE.
    """
    if session.in_transaction():
        await session.commit()

    async with session.begin():
        bind = session.bind
        if bind is not None and bind.dialect.name == "postgresql":
            await session.execute(text("SET TRANSACTION ISOLATION LEVEL SERIALIZABLE"))
        yield session


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Dependency for getting an async database session"""
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session
