from __future__ import annotations
from contextlib import asynccontextmanager
import logging
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, AsyncSession

from app.core.errors import RepositoryError
from app.database.tables import metadata

logger = logging.getLogger("preserver.repository")

class PostgresRepository:
    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = async_sessionmaker(bind=engine, expire_on_commit=False)

    async def ensure_schema(self) -> None:
        logger.info("Ensuring schema for preserver tables")
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        logger.info("Schema ready")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Sessione con gli errori SQLAlchemy tradotti in RepositoryError."""
        try:
            async with self.session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.exception("Database operation failed")
            raise RepositoryError(str(exc)) from exc
