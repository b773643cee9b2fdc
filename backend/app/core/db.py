"""Database handle (PostgreSQL + pgvector).

The engine is owned by an explicit `Database` object instead of a module-level
global: open it at process start, close it at shutdown. Schema and vector-index
creation run on a scoped connection and are idempotent.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.base import Base
import app.models  # noqa: F401  (register ORM models on Base.metadata)
from app.models.subsidy import SUBSIDY_TABLE_NAME, VECTOR_INDEX_NAME


logger = logging.getLogger("subsidy.db")


class DatabaseNotOpen(RuntimeError):
    """Raised when the handle is used before open() or after close()."""


class Database:
    def __init__(self, url: str, *, echo: bool = False) -> None:
        self._url = url
        self._echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise DatabaseNotOpen("Database.open() has not been called.")
        return self._engine

    async def open(self) -> None:
        if self._engine is not None:
            return
        self._engine = create_async_engine(
            self._url,
            pool_pre_ping=True,
            echo=self._echo,
        )
        self._sessionmaker = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            autoflush=False,
            expire_on_commit=False,
        )
        logger.info("Database connection pool initialized")

    async def close(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("Database connection pool closed")

    def session(self) -> AsyncSession:
        """New AsyncSession; use as `async with db.session() as s:`."""
        if self._sessionmaker is None:
            raise DatabaseNotOpen("Database.open() has not been called.")
        return self._sessionmaker()

    async def ensure_schema(self) -> bool:
        """Create the vector extension, tables and the named vector index.

        Returns True when the vector index had to be created.
        """
        async with self.engine.begin() as conn:
            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
            await conn.run_sync(Base.metadata.create_all)

            existing = await conn.scalar(
                text(
                    "SELECT 1 FROM pg_indexes "
                    "WHERE tablename = :table AND indexname = :index"
                ),
                {"table": SUBSIDY_TABLE_NAME, "index": VECTOR_INDEX_NAME},
            )
            if existing:
                logger.info("Vector search index already exists")
                return False

            await conn.execute(
                text(
                    f"CREATE INDEX IF NOT EXISTS {VECTOR_INDEX_NAME} "
                    f"ON {SUBSIDY_TABLE_NAME} USING hnsw (vector_embedding vector_cosine_ops)"
                )
            )
            logger.info("Vector search index created successfully.")
            return True
