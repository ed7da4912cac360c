"""
Unit of Work
PaperTrade Platform

One database transaction passed by reference into every component that
writes as part of it. Whoever opens the unit decides whether it commits;
components that merely join it never commit on their own.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


class UnitOfWork:
    """
    Explicit transaction scope around one AsyncSession.
    
    Usage:
        async with UnitOfWork(database.session_factory) as uow:
            await ledger.apply_transaction(..., uow=uow)
            await holdings.apply_buy(..., uow=uow)
            await uow.commit()
    
    Leaving the block without commit() discards the work; objects read
    inside it stay usable (detached, attributes loaded).
    """
    
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._session: Optional[AsyncSession] = None
    
    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            raise RuntimeError("UnitOfWork used outside of its context")
        return self._session
    
    async def __aenter__(self) -> "UnitOfWork":
        self._session = self._session_factory()
        return self
    
    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is not None:
                await self.rollback()
        finally:
            # close() also ends any uncommitted transaction
            await self._session.close()
            self._session = None
    
    async def commit(self) -> None:
        await self.session.commit()
    
    async def rollback(self) -> None:
        if self._session is None:
            return
        try:
            await self._session.rollback()
        except Exception as e:
            # Rollback of a dead connection; the session is discarded anyway
            logger.warning(f"Rollback failed: {e}")


@asynccontextmanager
async def unit_scope(
    uow: Optional[UnitOfWork],
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[UnitOfWork]:
    """
    Join the caller's unit of work, or open and commit a private one.
    
    A joined unit is neither committed nor rolled back here; the caller
    that opened it owns that decision.
    """
    if uow is not None:
        yield uow
        return
    
    async with UnitOfWork(session_factory) as own:
        yield own
        await own.commit()
