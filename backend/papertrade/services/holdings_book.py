"""
Holdings Book
PaperTrade Platform

Sole owner of positions. A position is created on the first BUY of a
symbol, re-averaged on every further BUY, reduced on SELL and deleted
when it reaches zero.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from papertrade.core.exceptions import InsufficientPosition, require_user
from papertrade.db.models.trading import Holding
from papertrade.db.repositories.trading import HoldingRepository
from papertrade.market.price_oracle import normalize_symbol
from papertrade.services.unit_of_work import UnitOfWork, unit_scope
from papertrade.services.wallet_ledger import to_money


AVG_COST_PLACES = Decimal("0.0001")


def weighted_average(old_qty: int, old_avg: Decimal, qty: int, price: Decimal) -> Decimal:
    """Quantity-weighted average cost after buying qty at price."""
    total_qty = old_qty + qty
    total_cost = Decimal(old_qty) * Decimal(old_avg) + Decimal(qty) * Decimal(price)
    return (total_cost / total_qty).quantize(AVG_COST_PLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class HoldingSnapshot:
    """Read-only view of a position."""
    symbol: str
    qty: int
    avg_cost: Decimal
    last_price: Decimal
    
    @classmethod
    def from_model(cls, holding: Holding) -> "HoldingSnapshot":
        return cls(
            symbol=holding.symbol,
            qty=holding.qty,
            avg_cost=Decimal(holding.avg_cost).quantize(AVG_COST_PLACES),
            last_price=to_money(holding.last_price),
        )
    
    @property
    def cost_basis(self) -> Decimal:
        return to_money(self.avg_cost * self.qty)
    
    @property
    def market_value(self) -> Decimal:
        return to_money(self.last_price * self.qty)
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "qty": self.qty,
            "avg_cost": float(self.avg_cost),
            "last_price": float(self.last_price),
            "cost_basis": float(self.cost_basis),
            "market_value": float(self.market_value),
        }


class HoldingsBook:
    """
    Position bookkeeping.
    
    Writes are meant to run inside the settlement's unit of work so they
    commit or roll back together with the paired wallet transaction.
    """
    
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
    
    # =========================================================================
    # Writes
    # =========================================================================
    
    async def apply_buy(
        self,
        user_id: str,
        symbol: str,
        qty: int,
        price: Decimal,
        uow: Optional[UnitOfWork] = None,
    ) -> HoldingSnapshot:
        user_id = require_user(user_id)
        symbol = normalize_symbol(symbol)
        price = to_money(price)
        
        async with unit_scope(uow, self._session_factory) as scope:
            repo = HoldingRepository(scope.session)
            holding = await repo.get_position(user_id, symbol, for_update=True)
            
            if holding is None:
                holding = await repo.add(Holding(
                    user_id=user_id,
                    symbol=symbol,
                    qty=qty,
                    avg_cost=price,
                    last_price=price,
                ))
            else:
                holding.avg_cost = weighted_average(holding.qty, holding.avg_cost, qty, price)
                holding.qty = holding.qty + qty
                holding.last_price = price
                await scope.session.flush()
            
            logger.debug(f"Holding {user_id}/{symbol}: +{qty} -> {holding.qty} @ avg {holding.avg_cost}")
            return HoldingSnapshot.from_model(holding)
    
    async def apply_sell(
        self,
        user_id: str,
        symbol: str,
        qty: int,
        price: Decimal,
        uow: Optional[UnitOfWork] = None,
    ) -> Optional[HoldingSnapshot]:
        """
        Reduce a position. Returns the remaining position, or None when it
        was sold out and deleted. avg_cost is left untouched.
        
        Raises:
            InsufficientPosition: no position, or fewer shares than qty.
        """
        user_id = require_user(user_id)
        symbol = normalize_symbol(symbol)
        price = to_money(price)
        
        async with unit_scope(uow, self._session_factory) as scope:
            repo = HoldingRepository(scope.session)
            holding = await repo.get_position(user_id, symbol, for_update=True)
            
            available = holding.qty if holding is not None else 0
            if available < qty:
                raise InsufficientPosition(symbol, requested=qty, available=available)
            
            remaining = available - qty
            if remaining == 0:
                await repo.remove(holding)
                logger.debug(f"Holding {user_id}/{symbol}: sold out")
                return None
            
            holding.qty = remaining
            holding.last_price = price
            await scope.session.flush()
            logger.debug(f"Holding {user_id}/{symbol}: -{qty} -> {remaining}")
            return HoldingSnapshot.from_model(holding)
    
    # =========================================================================
    # Reads
    # =========================================================================
    
    async def get_quantity(
        self,
        user_id: str,
        symbol: str,
        uow: Optional[UnitOfWork] = None,
    ) -> int:
        async with unit_scope(uow, self._session_factory) as scope:
            holding = await HoldingRepository(scope.session).get_position(
                require_user(user_id), normalize_symbol(symbol), for_update=uow is not None,
            )
            return holding.qty if holding is not None else 0
    
    async def get_holding(self, user_id: str, symbol: str) -> Optional[HoldingSnapshot]:
        async with UnitOfWork(self._session_factory) as uow:
            holding = await HoldingRepository(uow.session).get_position(
                require_user(user_id), normalize_symbol(symbol),
            )
            return HoldingSnapshot.from_model(holding) if holding is not None else None
    
    async def get_holdings(self, user_id: str) -> List[HoldingSnapshot]:
        """All positions of a user, ordered by symbol."""
        async with UnitOfWork(self._session_factory) as uow:
            holdings = await HoldingRepository(uow.session).get_by_user(require_user(user_id))
            return [HoldingSnapshot.from_model(h) for h in holdings]
