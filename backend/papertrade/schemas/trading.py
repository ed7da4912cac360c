"""
Pydantic Schemas - Trading
PaperTrade Platform

API schemas for:
- Market prices
- Wallets and transactions
- Orders
- Holdings
"""

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field, ConfigDict


# =============================================================================
# Base Schemas
# =============================================================================

class BaseSchema(BaseModel):
    """Base schema with common configuration."""
    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Market Schemas
# =============================================================================

class PriceResponse(BaseSchema):
    """Current price state of one symbol."""
    symbol: str
    price: float
    base_price: float
    change: float
    change_percent: float
    is_down: bool
    last_updated: datetime


class PriceListResponse(BaseModel):
    """Prices for a requested symbol list."""
    prices: List[PriceResponse]
    not_found: List[str] = []
    count: int


class WatchlistItem(BaseModel):
    """Price shaped for the watchlist widget."""
    name: str
    price: float
    percent: str
    is_down: bool


class PriceHistoryResponse(BaseModel):
    """Recent prices of one symbol, oldest first."""
    symbol: str
    base_price: float
    prices: List[float]
    count: int


# =============================================================================
# Wallet Schemas
# =============================================================================

class WalletResponse(BaseSchema):
    """Wallet balance."""
    user_id: str
    balance: float
    currency: str
    updated_at: Optional[datetime] = None


class WalletTransactionResponse(BaseSchema):
    """One wallet ledger entry."""
    id: int
    type: str
    amount: float
    symbol: str
    quantity: int
    price: float
    balance_after: float
    timestamp: datetime


# =============================================================================
# Order Schemas
# =============================================================================

class OrderRequest(BaseModel):
    """
    Market order.
    
    qty and mode are validated by the settlement service so that malformed
    values surface as INVALID_ORDER rather than a schema error. price is
    the client's quote and is informational only.
    """
    symbol: str = Field(..., max_length=20)
    qty: Union[int, float, str]
    mode: str = Field(..., max_length=4)
    price: Optional[float] = None


class HoldingResponse(BaseSchema):
    """Current position in one symbol."""
    symbol: str
    qty: int
    avg_cost: float
    last_price: float
    cost_basis: float
    market_value: float


class OrderResponse(BaseSchema):
    """Settled order with the resulting wallet and position."""
    order_id: int
    symbol: str
    qty: int
    price: float
    total_amount: float
    mode: str
    balance: float
    holding: Optional[HoldingResponse] = None
    created_at: datetime


class OrderRecordResponse(BaseSchema):
    """Order history entry."""
    id: int
    symbol: str
    qty: int
    price: float
    mode: str
    created_at: datetime
