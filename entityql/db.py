from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from .config import Settings

logger = logging.getLogger(__name__)


def create_engine(settings: Optional[Settings] = None) -> AsyncEngine:
    """Build the async engine described by ``settings`` (defaults from the environment)."""
    settings = settings or Settings.from_env()
    if settings.sql_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
    if settings.is_memory_sqlite:
        # One shared connection so every request sees the same in-memory database
        engine = create_async_engine(
            settings.database_url,
            echo=settings.sql_echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_async_engine(settings.database_url, echo=settings.sql_echo, pool_pre_ping=True)
    logger.info("Created engine for dialect '%s'", engine.dialect.name)
    return engine


class Database:
    """Hands out read connections and runs deferred writers in a transaction."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[AsyncConnection]:
        async with self.engine.connect() as connection:
            yield connection

    async def transaction(self, writer: Callable[[AsyncConnection], Awaitable[Any]]) -> Any:
        """Await ``writer`` inside ``engine.begin()``; any error rolls everything back."""
        async with self.engine.begin() as connection:
            return await writer(connection)

    async def dispose(self) -> None:
        await self.engine.dispose()
