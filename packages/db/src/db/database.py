# This project was developed with assistance from AI tools.
"""Async engine, session factory and FastAPI session dependencies."""

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
    """Engine-level helpers used by health checks and startup."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    async def health_check(self) -> dict[str, str]:
        """Run a trivial query; report ``healthy`` or the failure message."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as exc:  # noqa: BLE001
            logger.warning("Database health check failed: %s", exc)
            return {"status": "unhealthy", "detail": str(exc)}
        return {"status": "healthy"}

    async def close(self) -> None:
        await self.engine.dispose()


db_service = DatabaseService(engine=engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request, rolled back on error."""
    async with SessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


def get_db_service() -> DatabaseService:
    """FastAPI dependency returning the module-level DatabaseService."""
    return db_service
