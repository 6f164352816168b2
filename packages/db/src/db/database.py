# This project was developed with assistance from AI tools.
"""Async engine, session factory, and FastAPI session dependencies."""

import logging
from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import db_settings

logger = logging.getLogger(__name__)

Base = declarative_base()

engine = create_async_engine(
    db_settings.DATABASE_URL,
    echo=db_settings.SQL_ECHO,
    pool_pre_ping=True,
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class DatabaseService:
    """Connection-level helpers used by the health endpoint."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    async def health_check(self) -> dict:
        """Run a trivial query and report the server version."""
        try:
            async with self.engine.connect() as conn:
                version = (await conn.execute(text("SELECT version()"))).scalar() or ""
            return {
                "name": "Database",
                "status": "healthy",
                "message": version.split(" on ")[0] or "PostgreSQL",
            }
        except Exception as exc:  # health probes report, never raise
            logger.warning("Database health check failed: %s", exc)
            return {
                "name": "Database",
                "status": "unhealthy",
                "message": f"PostgreSQL unreachable: {exc.__class__.__name__}",
            }


db_service = DatabaseService(engine=engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request.

    Rolls back if the request handler raised before committing.
    """
    async with SessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def get_db_service() -> DatabaseService:
    return db_service
