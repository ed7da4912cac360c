"""
Market data subsystem.

Public API:
    PriceOracle          - Owner of the simulated price map
    PriceState           - Immutable price snapshot
    next_price           - Pure bounded random-walk step
    SubscriptionRegistry - connection id -> watched symbols
    Broadcaster          - Per-connection watchlist fan-out
    MarketTicker         - Recurring tick task
"""

from papertrade.market.price_oracle import PriceOracle, PriceState, next_price
from papertrade.market.subscriptions import SubscriptionRegistry, SubscriptionResult
from papertrade.market.broadcaster import Broadcaster
from papertrade.market.ticker import MarketTicker

__all__ = [
    "PriceOracle",
    "PriceState",
    "next_price",
    "SubscriptionRegistry",
    "SubscriptionResult",
    "Broadcaster",
    "MarketTicker",
]
