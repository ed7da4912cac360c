"""
Wallet Ledger
PaperTrade Platform

Sole owner of wallets and their transaction log. Wallets are created
lazily with the configured starting balance; every balance change is
recorded as an immutable transaction whose balance_after equals the new
wallet balance.
"""

from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Any, List, Mapping, Optional

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from papertrade.core.config import WalletSettings
from papertrade.core.exceptions import (
    ConcurrencyConflict,
    InsufficientFunds,
    InvalidOrder,
    require_user,
)
from papertrade.db.models.trading import Wallet, WalletTransaction
from papertrade.db.repositories.trading import (
    WalletRepository,
    WalletTransactionRepository,
)
from papertrade.services.unit_of_work import UnitOfWork, unit_scope


CENT = Decimal("0.01")
TRANSACTION_TYPES = ("BUY", "SELL")


def to_money(value: Any) -> Decimal:
    """Quantize an amount to cents, however many integer digits it has."""
    amount = Decimal(str(value))
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, amount.adjusted() + 3)
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)


class WalletLedger:
    """
    Wallet and transaction access.
    
    Every method takes an optional UnitOfWork. When given, the method runs
    inside it and leaves commit/rollback to the caller; otherwise it opens
    and commits its own.
    """
    
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        config: Optional[WalletSettings] = None,
    ):
        self._session_factory = session_factory
        self._config = config or WalletSettings()
    
    @property
    def starting_balance(self) -> Decimal:
        return to_money(self._config.starting_balance)
    
    # =========================================================================
    # Wallets
    # =========================================================================
    
    async def get_or_create_wallet(
        self,
        user_id: str,
        uow: Optional[UnitOfWork] = None,
        for_update: bool = False,
    ) -> Wallet:
        """
        Return the user's wallet, creating it on first access.
        
        Two concurrent first accesses resolve to one wallet: the unique
        user_id constraint rejects the loser, which then reads the
        winner's row. Inside a caller's unit of work the loser cannot
        re-read (its transaction is poisoned), so it raises
        ConcurrencyConflict and the caller retries.
        """
        user_id = require_user(user_id)
        
        if uow is not None:
            repo = WalletRepository(uow.session)
            wallet = await repo.get_by_user(user_id, for_update=for_update)
            if wallet is not None:
                return wallet
            try:
                return await repo.add(self._new_wallet(user_id))
            except IntegrityError as e:
                raise ConcurrencyConflict(user_id, "Wallet was created concurrently, please retry") from e
        
        try:
            async with UnitOfWork(self._session_factory) as own:
                repo = WalletRepository(own.session)
                wallet = await repo.get_by_user(user_id)
                if wallet is not None:
                    return wallet
                wallet = await repo.add(self._new_wallet(user_id))
                await own.commit()
                logger.info(f"Created wallet for user {user_id} with balance {wallet.balance}")
                return wallet
        except IntegrityError:
            logger.debug(f"Wallet for user {user_id} created concurrently, reading winner")
        
        async with UnitOfWork(self._session_factory) as own:
            wallet = await WalletRepository(own.session).get_by_user(user_id)
        if wallet is None:
            raise ConcurrencyConflict(user_id, "Wallet could not be created, please retry")
        return wallet
    
    def _new_wallet(self, user_id: str) -> Wallet:
        return Wallet(
            user_id=user_id,
            balance=self.starting_balance,
            currency=self._config.currency,
        )
    
    async def get_balance(
        self,
        user_id: str,
        uow: Optional[UnitOfWork] = None,
        for_update: bool = False,
    ) -> Decimal:
        wallet = await self.get_or_create_wallet(user_id, uow=uow, for_update=for_update)
        return to_money(wallet.balance)
    
    # =========================================================================
    # Transactions
    # =========================================================================
    
    async def apply_transaction(
        self,
        user_id: str,
        type: str,
        amount: Decimal,
        details: Mapping[str, Any],
        uow: Optional[UnitOfWork] = None,
    ) -> WalletTransaction:
        """
        Debit (BUY) or credit (SELL) the wallet and record the transaction.
        
        Args:
            user_id: Wallet owner
            type: BUY or SELL
            amount: Non-negative amount, quantized to cents
            details: symbol, quantity and price of the trade
            uow: Caller's unit of work, if any
        
        Raises:
            InsufficientFunds: a BUY would take the balance below zero.
                Nothing is written in that case.
        """
        type = str(type).upper()
        if type not in TRANSACTION_TYPES:
            raise InvalidOrder(f"Unknown transaction type {type}", field="type", value=type)
        amount = to_money(amount)
        if amount < 0:
            raise InvalidOrder("Transaction amount must not be negative", field="amount", value=str(amount))
        
        async with unit_scope(uow, self._session_factory) as scope:
            wallet = await self.get_or_create_wallet(user_id, uow=scope, for_update=True)
            balance = to_money(wallet.balance)
            
            new_balance = balance - amount if type == "BUY" else balance + amount
            if new_balance < 0:
                raise InsufficientFunds(required=amount, available=balance)
            
            wallet.balance = new_balance
            entry = WalletTransaction(
                wallet_id=wallet.id,
                type=type,
                amount=amount,
                symbol=details.get("symbol", ""),
                quantity=int(details.get("quantity", 0)),
                price=to_money(details.get("price", 0)),
                balance_after=new_balance,
            )
            # Flush bumps the wallet version; a concurrent writer makes it stale
            await WalletTransactionRepository(scope.session).add(entry)
            
            logger.debug(f"Wallet {user_id}: {type} {amount} -> balance {new_balance}")
            return entry
    
    async def get_transaction_history(self, user_id: str, limit: int = 10) -> List[WalletTransaction]:
        """Transactions, newest first, capped at limit."""
        wallet = await self.get_or_create_wallet(user_id)
        async with UnitOfWork(self._session_factory) as uow:
            return await WalletTransactionRepository(uow.session).get_recent(wallet.id, limit=limit)
