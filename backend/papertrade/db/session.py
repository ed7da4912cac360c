"""
Database Session Management
PaperTrade Platform

Provides async database connection with:
- Connection pooling (PostgreSQL) or a file/memory SQLite store
- Session factory shared by the unit of work
- One instance per application, injected into services
- Health check capabilities
"""

from typing import Optional

from loguru import logger
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from papertrade.core.config import DatabaseSettings
from papertrade.db.base import Base


class Database:
    """
    Owns the async engine and session factory for one application.
    
    Usage:
        database = Database("postgresql+asyncpg://user:pw@localhost/papertrade")
        await database.init_db()
        async with database.session_factory() as session:
            ...
    """
    
    def __init__(self, url: str, config: Optional[DatabaseSettings] = None):
        config = config or DatabaseSettings()
        self.url = url
        
        engine_kwargs = {"echo": config.echo, "future": True}
        if not url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=config.pool_size,
                max_overflow=config.max_overflow,
                pool_timeout=config.pool_timeout,
                pool_recycle=config.pool_recycle,
                pool_pre_ping=True,  # Verify connections before use
            )
        if url.startswith("postgresql+asyncpg"):
            # Row lock waits fail with lock_not_available instead of blocking
            engine_kwargs["connect_args"] = {
                "server_settings": {"lock_timeout": f"{int(config.lock_timeout_seconds * 1000)}ms"},
            }
        
        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    
    async def init_db(self) -> None:
        """
        Create all tables.
        
        Note: In production, use Alembic migrations instead.
        """
        # Import models module to register all models with Base
        from papertrade.db import models  # noqa: F401
        
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ready")
    
    async def drop_all(self) -> None:
        """Drop every table owned by the application."""
        from papertrade.db import models  # noqa: F401
        
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.warning("Database schema dropped")
    
    async def health_check(self) -> bool:
        """
        Check database connectivity.
        
        Returns True if database is accessible.
        """
        try:
            async with self.session_factory() as session:
                await session.execute(text("SELECT 1"))
                return True
        except Exception as e:
            logger.warning(f"Database health check failed: {e}")
            return False
    
    async def close(self) -> None:
        """Close all database connections."""
        await self.engine.dispose()

