"""
Trading Repository
PaperTrade Platform

Data access layer for trading entities: wallets, wallet transactions,
holdings and order records.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from papertrade.db.repository import BaseRepository
from papertrade.db.models.trading import (
    Wallet,
    WalletTransaction,
    Holding,
    OrderRecord,
)


class WalletRepository(BaseRepository[Wallet]):
    """Repository for wallets."""
    
    def __init__(self, session: AsyncSession):
        super().__init__(Wallet, session)
    
    async def get_by_user(
        self,
        user_id: str,
        for_update: bool = False,
    ) -> Optional[Wallet]:
        """
        Get a user's wallet.
        
        With for_update the row is locked until the transaction ends
        (no-op on SQLite, which serialises writers itself).
        """
        query = select(self.model).where(self.model.user_id == user_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()


class WalletTransactionRepository(BaseRepository[WalletTransaction]):
    """Repository for wallet ledger entries."""
    
    def __init__(self, session: AsyncSession):
        super().__init__(WalletTransaction, session)
    
    async def get_recent(
        self,
        wallet_id: int,
        limit: int = 10,
    ) -> List[WalletTransaction]:
        """Get a wallet's transactions, newest first."""
        result = await self.session.execute(
            select(self.model)
            .where(self.model.wallet_id == wallet_id)
            .order_by(self.model.timestamp.desc(), self.model.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
    

class HoldingRepository(BaseRepository[Holding]):
    """Repository for holdings."""
    
    def __init__(self, session: AsyncSession):
        super().__init__(Holding, session)
    
    async def get_position(
        self,
        user_id: str,
        symbol: str,
        for_update: bool = False,
    ) -> Optional[Holding]:
        """Get a user's holding in one symbol."""
        query = select(self.model).where(
            self.model.user_id == user_id,
            self.model.symbol == symbol,
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()
    
    async def get_by_user(self, user_id: str) -> List[Holding]:
        """Get all holdings for a user, ordered by symbol."""
        result = await self.session.execute(
            select(self.model)
            .where(self.model.user_id == user_id)
            .order_by(self.model.symbol)
        )
        return list(result.scalars().all())


class OrderRecordRepository(BaseRepository[OrderRecord]):
    """Repository for settled orders."""
    
    def __init__(self, session: AsyncSession):
        super().__init__(OrderRecord, session)
    
    async def get_history(
        self,
        user_id: str,
        limit: int = 50,
    ) -> List[OrderRecord]:
        """Get a user's orders, newest first."""
        result = await self.session.execute(
            select(self.model)
            .where(self.model.user_id == user_id)
            .order_by(self.model.created_at.desc(), self.model.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
