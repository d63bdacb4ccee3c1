"""
Database Connection Management

Async SQLAlchemy 2.0 engine for the hosted Postgres. The engine lives on a
``Database`` object owned by the application (``app.state.database``)
rather than in module globals, so handlers receive it through dependency
injection and tests can supply their own.
"""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

import structlog
from fastapi import HTTPException, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

logger = structlog.get_logger(__name__)


class Database:
    """
    Engine and session factory for one database URL.

    Example:
        database = Database(settings.database.async_url)
        async with database.session() as db:
            result = await db.execute(query)
    """

    def __init__(self, url: str, echo: bool = False, **engine_options: Any):
        engine_options.setdefault("poolclass", NullPool)
        self.engine = create_async_engine(
            url,
            echo=echo,
            pool_pre_ping=True,
            **engine_options,
        )
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def connect(self) -> None:
        """Verify the database is reachable."""
        try:
            async with self.engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.error("Failed to connect to database", error=str(e))
            raise
        logger.info("Database connection established", url=self.engine.url.render_as_string(hide_password=True))

    async def dispose(self) -> None:
        """Close all pooled connections."""
        await self.engine.dispose()
        logger.info("Database connection pool closed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Session scope that commits on success and rolls back on error.

        Yields:
            AsyncSession: Database session
        """
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.error("Database session error, rolling back", error=str(e), error_type=type(e).__name__)
            await session.rollback()
            raise
        finally:
            await session.close()

    async def health(self) -> Dict[str, Any]:
        """
        Check database health status.

        Returns:
            dict: Health status with latency information
        """
        try:
            start = time.perf_counter()
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
            latency_ms = (time.perf_counter() - start) * 1000
            return {"status": "healthy", "latency_ms": round(latency_ms, 2)}
        except Exception as e:
            return {"status": "unhealthy", "error": str(e)}


def get_database(request: Request) -> Database:
    """FastAPI dependency returning the application's database."""
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise HTTPException(status_code=503, detail="Database not initialized")
    return database


async def get_db_dependency(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions.

    Example:
        @router.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db_dependency)):
            ...
    """
    async with get_database(request).session() as session:
        yield session
