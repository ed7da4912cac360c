"""
Order Settlement
PaperTrade Platform

Turns a market order into one atomic change of wallet, position and
order log:

    Validated -> PriceResolved -> Funded | Rejected -> Settled | RolledBack

Orders of one user are serialised by a per-user lock; a version check on
the wallet row catches writers outside this process. Both modes lock the
wallet row before the holding row. A conflicting attempt is rolled back
and restarted from price resolution; a deadlock counts as a conflict and a
row lock not granted in time fails with Busy.
"""

import asyncio
import weakref
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from papertrade.core.config import SettlementSettings
from papertrade.core.exceptions import (
    Busy,
    ConcurrencyConflict,
    InsufficientFunds,
    InsufficientPosition,
    InvalidOrder,
    StorageFailure,
    TradingError,
    UnknownSymbol,
    require_user,
)
from papertrade.db.models.trading import OrderRecord
from papertrade.db.repositories.trading import OrderRecordRepository
from papertrade.market.price_oracle import PriceOracle, normalize_symbol
from papertrade.services.holdings_book import HoldingSnapshot, HoldingsBook
from papertrade.services.unit_of_work import UnitOfWork
from papertrade.services.wallet_ledger import WalletLedger, to_money


ORDER_MODES = ("BUY", "SELL")

# Postgres aborts one side of a lock wait with these
CONFLICT_SQLSTATES = frozenset({
    "40001",  # serialization_failure
    "40P01",  # deadlock_detected
})
LOCK_TIMEOUT_SQLSTATE = "55P03"  # lock_not_available


@dataclass(frozen=True)
class SettlementResult:
    """Outcome of a settled order."""
    order_id: int
    user_id: str
    symbol: str
    qty: int
    price: Decimal
    total_amount: Decimal
    mode: str
    balance: Decimal
    holding: Optional[HoldingSnapshot]
    created_at: datetime
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_id": self.order_id,
            "symbol": self.symbol,
            "qty": self.qty,
            "price": float(self.price),
            "total_amount": float(self.total_amount),
            "mode": self.mode,
            "balance": float(self.balance),
            "holding": self.holding.to_dict() if self.holding else None,
            "created_at": self.created_at.isoformat(),
        }


def validate_order(symbol: Any, qty: Any, mode: Any) -> Tuple[str, int, str]:
    """
    Normalise and check an order's shape. Quantities are whole shares.
    
    Raises:
        InvalidOrder: with the offending field.
    """
    if not isinstance(symbol, str) or not symbol.strip():
        raise InvalidOrder("Symbol is required", field="symbol", value=symbol)
    
    if isinstance(qty, bool) or not isinstance(qty, (int, float, Decimal, str)):
        raise InvalidOrder("Quantity must be a number", field="qty", value=qty)
    try:
        quantity = Decimal(str(qty).strip())
    except InvalidOperation:
        raise InvalidOrder("Quantity must be a number", field="qty", value=qty)
    if not quantity.is_finite() or quantity <= 0:
        raise InvalidOrder("Quantity must be a positive number", field="qty", value=str(qty))
    if quantity != quantity.to_integral_value():
        raise InvalidOrder("Quantity must be a whole number of shares", field="qty", value=str(qty))
    
    if not isinstance(mode, str) or mode.strip().upper() not in ORDER_MODES:
        raise InvalidOrder("Mode must be BUY or SELL", field="mode", value=mode)
    
    return normalize_symbol(symbol), int(quantity), mode.strip().upper()


def sqlstate_of(error: SQLAlchemyError) -> Optional[str]:
    """SQLSTATE reported by the driver behind a SQLAlchemy error, if any."""
    orig = getattr(error, "orig", None)
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def is_lock_timeout(error: SQLAlchemyError) -> bool:
    """A row or database lock was not granted in time."""
    if sqlstate_of(error) == LOCK_TIMEOUT_SQLSTATE:
        return True
    return isinstance(error, OperationalError) and "database is locked" in str(error.orig)


class OrderSettlement:
    """
    The only component that writes across wallets, holdings and orders.
    
    Usage:
        settlement = OrderSettlement(oracle, ledger, holdings, database.session_factory)
        result = await settlement.place_order("user-1", "INFY", 10, "BUY")
    """
    
    def __init__(
        self,
        oracle: PriceOracle,
        ledger: WalletLedger,
        holdings: HoldingsBook,
        session_factory: async_sessionmaker[AsyncSession],
        config: Optional[SettlementSettings] = None,
    ):
        self._oracle = oracle
        self._ledger = ledger
        self._holdings = holdings
        self._session_factory = session_factory
        self._config = config or SettlementSettings()
        
        # Locks live as long as someone holds or waits on them
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()
        
        # Stats
        self._settled = 0
        self._rejected = 0
        self._conflicts = 0
    
    # =========================================================================
    # Public API
    # =========================================================================
    
    async def place_order(
        self,
        user_id: str,
        symbol: Any,
        qty: Any,
        mode: Any,
        client_price: Optional[Any] = None,
    ) -> SettlementResult:
        """
        Settle a market order at the oracle price.
        
        A client-supplied price is informational only and never used for
        settlement.
        
        Raises:
            Unauthorized, InvalidOrder, UnknownSymbol: before any storage access
            InsufficientFunds, InsufficientPosition: rejected, nothing written
            Busy: the user's lock was not acquired in time
            ConcurrencyConflict: still conflicting after max_attempts
            StorageFailure: the store failed; nothing was written
        """
        user_id = require_user(user_id)
        symbol, qty, mode = validate_order(symbol, qty, mode)
        
        attempts = self._config.max_attempts
        for attempt in range(1, attempts + 1):
            price = self._resolve_price(symbol)
            if attempt == 1:
                self._note_client_price(symbol, price, client_price)
            try:
                async with self._user_lock(user_id):
                    result = await self._settle(user_id, symbol, qty, mode, price)
            except (InsufficientFunds, InsufficientPosition) as e:
                self._rejected += 1
                logger.info(f"Order rejected for {user_id}: {mode} {qty} {symbol} @ {price} - {e.message}")
                raise
            except Busy:
                self._rejected += 1
                logger.warning(f"Order for {user_id} timed out waiting for the settlement lock")
                raise
            except ConcurrencyConflict:
                self._conflicts += 1
                if attempt >= attempts:
                    logger.warning(f"Order for {user_id} gave up after {attempts} conflicting attempts")
                    raise
                logger.warning(
                    f"Concurrent update for {user_id} on {mode} {qty} {symbol}, "
                    f"retrying ({attempt}/{attempts})"
                )
                await asyncio.sleep(self._config.retry_backoff_seconds * attempt)
                continue
            
            self._settled += 1
            logger.info(
                f"Order {result.order_id} settled: {user_id} {mode} {qty} {symbol} "
                f"@ {price} (total {result.total_amount}, balance {result.balance})"
            )
            return result
        
        # max_attempts >= 1, the loop always returns or raises
        raise ConcurrencyConflict(user_id)
    
    async def get_order_history(self, user_id: str, limit: int = 50) -> List[OrderRecord]:
        """A user's orders, newest first."""
        user_id = require_user(user_id)
        async with UnitOfWork(self._session_factory) as uow:
            return await OrderRecordRepository(uow.session).get_history(user_id, limit=limit)
    
    def get_status(self) -> Dict[str, Any]:
        return {
            "settled": self._settled,
            "rejected": self._rejected,
            "conflicts": self._conflicts,
            "active_locks": len(self._locks),
        }
    
    # =========================================================================
    # Steps
    # =========================================================================
    
    def _resolve_price(self, symbol: str) -> Decimal:
        state = self._oracle.get_price(symbol)
        if state is None:
            raise UnknownSymbol(symbol, self._oracle.get_symbols())
        return state.price
    
    def _note_client_price(self, symbol: str, price: Decimal, client_price: Optional[Any]) -> None:
        if client_price is None:
            return
        try:
            quoted = to_money(client_price)
        except (InvalidOperation, ValueError):
            logger.debug(f"Ignoring malformed client price {client_price!r} for {symbol}")
            return
        if quoted != price:
            logger.debug(f"Client quoted {quoted} for {symbol}, settling at oracle price {price}")
    
    def _user_lock(self, user_id: str) -> "_HeldLock":
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return _HeldLock(lock, user_id, self._config.lock_timeout_seconds)
    
    async def _settle(
        self,
        user_id: str,
        symbol: str,
        qty: int,
        mode: str,
        price: Decimal,
    ) -> SettlementResult:
        total = to_money(price * qty)
        details = {"symbol": symbol, "quantity": qty, "price": price}
        
        try:
            async with UnitOfWork(self._session_factory) as uow:
                if mode == "BUY":
                    balance = await self._ledger.get_balance(user_id, uow=uow, for_update=True)
                    if balance < total:
                        raise InsufficientFunds(required=total, available=balance)
                    entry = await self._ledger.apply_transaction(user_id, "BUY", total, details, uow=uow)
                    holding = await self._holdings.apply_buy(user_id, symbol, qty, price, uow=uow)
                else:
                    # Wallet before holding, the same order as a BUY
                    await self._ledger.get_or_create_wallet(user_id, uow=uow, for_update=True)
                    held = await self._holdings.get_quantity(user_id, symbol, uow=uow)
                    if held < qty:
                        raise InsufficientPosition(symbol, requested=qty, available=held)
                    holding = await self._holdings.apply_sell(user_id, symbol, qty, price, uow=uow)
                    entry = await self._ledger.apply_transaction(user_id, "SELL", total, details, uow=uow)
                
                order = await self._append_order(uow, user_id, symbol, qty, price, mode)
                await uow.commit()
        except TradingError:
            raise
        except (StaleDataError, IntegrityError) as e:
            logger.debug(f"Settlement conflict for {user_id}: {e}")
            raise ConcurrencyConflict(user_id) from e
        except SQLAlchemyError as e:
            if sqlstate_of(e) in CONFLICT_SQLSTATES:
                logger.debug(f"Settlement aborted by a competing writer for {user_id}: {e}")
                raise ConcurrencyConflict(user_id) from e
            if is_lock_timeout(e):
                logger.debug(f"Settlement lock wait timed out for {user_id}: {e}")
                raise Busy(user_id) from e
            logger.opt(exception=e).error(
                f"Storage failure settling order: user={user_id} symbol={symbol} "
                f"mode={mode} qty={qty} price={price} amount={total}"
            )
            raise StorageFailure() from e
        
        return SettlementResult(
            order_id=order.id,
            user_id=user_id,
            symbol=symbol,
            qty=qty,
            price=price,
            total_amount=total,
            mode=mode,
            balance=to_money(entry.balance_after),
            holding=holding,
            created_at=order.created_at,
        )
    
    async def _append_order(
        self,
        uow: UnitOfWork,
        user_id: str,
        symbol: str,
        qty: int,
        price: Decimal,
        mode: str,
    ) -> OrderRecord:
        return await OrderRecordRepository(uow.session).add(OrderRecord(
            user_id=user_id,
            symbol=symbol,
            qty=qty,
            price=price,
            mode=mode,
        ))


class _HeldLock:
    """Acquire a lock within a timeout, failing with Busy."""
    
    def __init__(self, lock: asyncio.Lock, user_id: str, timeout: float):
        self._lock = lock
        self._user_id = user_id
        self._timeout = timeout
    
    async def __aenter__(self) -> asyncio.Lock:
        try:
            await asyncio.wait_for(self._lock.acquire(), timeout=self._timeout)
        except asyncio.TimeoutError:
            raise Busy(self._user_id, self._timeout)
        return self._lock
    
    async def __aexit__(self, exc_type, exc, tb) -> None:
        self._lock.release()
