"""
Base Repository Pattern Implementation
PaperTrade Platform

Provides generic data access with:
- Type-safe async repository base class
- Row counts
- No implicit commits: the unit of work owns the transaction
"""

from typing import Generic, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from papertrade.db.base import Base


# Type variables
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Generic async repository.
    
    Type Parameters:
        ModelType: SQLAlchemy model class
    """
    
    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """
        Initialize repository.
        
        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session
    
    async def count(self) -> int:
        """Count all records."""
        result = await self.session.execute(select(func.count()).select_from(self.model))
        return result.scalar() or 0
    
    async def add(self, db_obj: ModelType) -> ModelType:
        """Stage a new record and flush it to obtain its primary key."""
        self.session.add(db_obj)
        await self.session.flush()
        return db_obj
    
    async def remove(self, db_obj: ModelType) -> None:
        """Delete a record (hard delete) within the current transaction."""
        await self.session.delete(db_obj)
        await self.session.flush()
