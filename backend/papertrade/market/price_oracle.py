"""
Price Oracle
PaperTrade Platform

In-memory simulated market. Each tick moves every symbol by a bounded
random walk around its fixed base price:

    candidate = current * (1 + U(-2%, +2%))
    below 70% of base  -> 70% of base + U(0, 5% of base)
    above 130% of base -> 130% of base - U(0, 5% of base)

The price map is mutated only by tick() and reset(); every other caller
gets read-only snapshots. Lookups of unknown symbols return None rather
than raising so hot paths (order validation) can branch on the result.
"""

import random
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP
from typing import Any, Deque, Dict, List, Mapping, Optional, Union

from loguru import logger


# Demo universe (NSE large caps) and their base prices
DEFAULT_BASE_PRICES: Dict[str, Decimal] = {
    "INFY": Decimal("1450.00"),
    "TCS": Decimal("3200.00"),
    "WIPRO": Decimal("450.00"),
    "HDFCBANK": Decimal("1600.00"),
    "RELIANCE": Decimal("2400.00"),
    "BHARTIARTL": Decimal("850.00"),
    "ITC": Decimal("420.00"),
    "SBIN": Decimal("580.00"),
    "TATAMOTORS": Decimal("650.00"),
    "ASIANPAINT": Decimal("3100.00"),
    "HINDUNILVR": Decimal("2500.00"),
    "MARUTI": Decimal("9500.00"),
    "LT": Decimal("2800.00"),
    "KOTAKBANK": Decimal("1750.00"),
    "ICICIBANK": Decimal("950.00"),
}

MAX_STEP = 0.02         # per-tick move, fraction of current price
LOWER_BOUND = Decimal("0.7")
UPPER_BOUND = Decimal("1.3")
REBOUND = 0.05          # re-entry band, fraction of base price
CENT = Decimal("0.01")


def normalize_symbol(symbol: str) -> str:
    return symbol.strip().upper()


def next_price(current: Decimal, base: Decimal, rng: random.Random) -> Decimal:
    """
    Advance one price by one random-walk step.

    Pure function of its inputs and the supplied RNG; the result is
    rounded to cents and always lies within [0.7 * base, 1.3 * base].
    """
    base_f = float(base)
    lower = base_f * float(LOWER_BOUND)
    upper = base_f * float(UPPER_BOUND)

    candidate = float(current) * (1 + rng.uniform(-MAX_STEP, MAX_STEP))
    if candidate < lower:
        candidate = lower + rng.uniform(0, REBOUND * base_f)
    elif candidate > upper:
        candidate = upper - rng.uniform(0, REBOUND * base_f)

    rounded = Decimal(str(candidate)).quantize(CENT, rounding=ROUND_HALF_UP)

    # Rounding to cents must not step outside the band
    floor = (base * LOWER_BOUND).quantize(CENT, rounding=ROUND_CEILING)
    ceiling = (base * UPPER_BOUND).quantize(CENT, rounding=ROUND_FLOOR)
    return min(max(rounded, floor), ceiling)


@dataclass(frozen=True)
class PriceState:
    """Immutable price snapshot of one symbol."""
    symbol: str
    base_price: Decimal
    price: Decimal
    change: Decimal = Decimal("0.00")
    change_percent: Decimal = Decimal("0.00")
    is_down: bool = False
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def at(
        cls,
        symbol: str,
        base_price: Decimal,
        price: Decimal,
        last_updated: Optional[datetime] = None,
    ) -> "PriceState":
        change = (price - base_price).quantize(CENT, rounding=ROUND_HALF_UP)
        change_percent = (change * 100 / base_price).quantize(CENT, rounding=ROUND_HALF_UP)
        return cls(
            symbol=symbol,
            base_price=base_price,
            price=price,
            change=change,
            change_percent=change_percent,
            is_down=change < 0,
            last_updated=last_updated or datetime.now(timezone.utc),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "price": float(self.price),
            "base_price": float(self.base_price),
            "change": float(self.change),
            "change_percent": float(self.change_percent),
            "is_down": self.is_down,
            "last_updated": self.last_updated.isoformat(),
        }


class PriceOracle:
    """
    Owner of the simulated price map.

    Usage:
        oracle = PriceOracle(rng=random.Random(42))
        oracle.tick()
        state = oracle.get_price("infy")
    """

    def __init__(
        self,
        base_prices: Optional[Mapping[str, Decimal]] = None,
        rng: Optional[random.Random] = None,
        history_size: int = 100,
    ):
        table = base_prices if base_prices is not None else DEFAULT_BASE_PRICES
        self._base_prices: Dict[str, Decimal] = {
            normalize_symbol(symbol): Decimal(str(price)).quantize(CENT)
            for symbol, price in table.items()
        }
        self._rng = rng or random.Random()
        self._history_size = history_size

        self._prices: Dict[str, PriceState] = {}
        self._history: Dict[str, Deque[Decimal]] = {}
        self._tick_count = 0

        for symbol in self._base_prices:
            self._restore(symbol)

    @property
    def tick_count(self) -> int:
        """Number of ticks applied since construction."""
        return self._tick_count

    # =========================================================================
    # Mutation (tick task only)
    # =========================================================================

    def tick(self) -> List[PriceState]:
        """
        Advance every symbol by one step.

        Runs without suspension points, so no reader observes a partially
        applied tick. Returns the new states in symbol order.
        """
        now = datetime.now(timezone.utc)
        updated = []
        for symbol, base in self._base_prices.items():
            current = self._prices[symbol].price
            state = PriceState.at(symbol, base, next_price(current, base, self._rng), now)
            self._prices[symbol] = state
            self._history[symbol].append(state.price)
            updated.append(state)

        self._tick_count += 1
        return updated

    def reset(
        self,
        symbol: Optional[str] = None,
    ) -> Union[PriceState, List[PriceState], None]:
        """
        Restore prices to base.

        With a symbol, returns its reset state (None if unknown);
        without one, resets everything and returns all states.
        """
        if symbol is None:
            for each in self._base_prices:
                self._restore(each)
            logger.info(f"Reset {len(self._base_prices)} symbols to base prices")
            return self.get_all_prices()

        key = normalize_symbol(symbol)
        if key not in self._base_prices:
            return None
        state = self._restore(key)
        logger.info(f"Reset {key} to base price {state.price}")
        return state

    def _restore(self, symbol: str) -> PriceState:
        base = self._base_prices[symbol]
        state = PriceState.at(symbol, base, base)
        self._prices[symbol] = state
        self._history[symbol] = deque([base], maxlen=self._history_size)
        return state

    # =========================================================================
    # Read-only views
    # =========================================================================

    def get_price(self, symbol: str) -> Optional[PriceState]:
        """Case-insensitive lookup; None for unknown symbols."""
        if not symbol:
            return None
        return self._prices.get(normalize_symbol(symbol))

    def is_known(self, symbol: str) -> bool:
        return self.get_price(symbol) is not None

    def get_all_prices(self) -> List[PriceState]:
        return [self._prices[symbol] for symbol in self._base_prices]

    def get_symbols(self) -> List[str]:
        return list(self._base_prices)

    def get_base_price(self, symbol: str) -> Optional[Decimal]:
        if not symbol:
            return None
        return self._base_prices.get(normalize_symbol(symbol))

    def get_price_history(self, symbol: str, limit: int = 50) -> List[Decimal]:
        """Most recent `limit` prices of a symbol, oldest first."""
        history = self._history.get(normalize_symbol(symbol)) if symbol else None
        if not history or limit <= 0:
            return []
        return list(history)[-limit:]

    def get_watchlist_prices(self) -> List[Dict[str, Any]]:
        """Prices shaped for the watchlist widget."""
        watchlist = []
        for state in self.get_all_prices():
            sign = "-" if state.is_down else "+"
            watchlist.append({
                "name": state.symbol,
                "price": float(state.price),
                "percent": f"{sign}{abs(state.change_percent)}%",
                "is_down": state.is_down,
            })
        return watchlist
