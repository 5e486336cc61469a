# python
"""Database engine and session utilities.

This module wraps the asynchronous SQLAlchemy engine and session factory in a
``Database`` object. One instance is built when the application starts, kept on
``app.state`` and disposed on shutdown; request handlers and the stream relay
receive it through FastAPI dependencies instead of importing a global engine.
"""
import logging
import os
from collections.abc import AsyncGenerator
from typing import Any

from fastapi import Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import Settings
from models import Base

logger = logging.getLogger(__name__)


class Database:
    """Async engine plus the session factory bound to it."""

    def __init__(self, url: str, *, echo: bool = False, **engine_kwargs: Any):
        url = (url or "").strip()
        if not url:
            raise RuntimeError(
                "DATABASE_URL is not configured. Set it in the environment or .env file "
                "(e.g., DATABASE_URL=postgresql+asyncpg://<user>:<pass>@<host>/<db>)."
            )

        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, echo=echo, **engine_kwargs)
        self.session_factory = async_sessionmaker(bind=self.engine, expire_on_commit=False)

    @classmethod
    def from_settings(cls, app_settings: Settings) -> "Database":
        # For testing, prioritize TEST_DATABASE_URL
        if os.getenv("TESTING") == "true":
            url = os.getenv("TEST_DATABASE_URL") or app_settings.test_database_url
        else:
            url = app_settings.database_url

        engine_kwargs: dict[str, Any] = {}
        if url and not url.startswith("sqlite"):
            engine_kwargs["pool_size"] = app_settings.db_pool_size
            engine_kwargs["max_overflow"] = app_settings.db_max_overflow
            engine_kwargs["pool_pre_ping"] = True

        return cls(url or "", echo=app_settings.debug, **engine_kwargs)

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def ping(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning("Database ping failed: %s", str(e))
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


def get_database(request: Request) -> Database:
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("Database has not been initialized for this application")
    return database


async def get_db(database: Database = Depends(get_database)) -> AsyncGenerator[AsyncSession, Any]:
    async with database.session() as session:
        yield session
