"""
Subscription Registry
PaperTrade Platform

Maps a connection id to the set of symbols it watches. A subscription is
replaced wholesale on re-subscribe and removed on unsubscribe or
disconnect. This registry is the only owner of that mapping.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from loguru import logger

from papertrade.market.price_oracle import PriceOracle, normalize_symbol


@dataclass(frozen=True)
class SubscriptionResult:
    """Outcome of a subscribe request."""
    connection_id: str
    accepted: List[str] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.accepted)


class SubscriptionRegistry:
    """
    connection id -> watched symbols.

    Symbols are normalised and filtered against the oracle's universe
    before they are stored.
    """

    def __init__(self, oracle: PriceOracle):
        self._oracle = oracle
        self._subscriptions: Dict[str, Tuple[str, ...]] = {}

    def subscribe(self, connection_id: str, symbols: Iterable[str]) -> SubscriptionResult:
        """
        Replace a connection's subscription.

        Unknown symbols are dropped. If nothing valid remains the request
        is rejected and any previous subscription is left untouched.
        """
        accepted: List[str] = []
        rejected: List[str] = []
        for raw in symbols or []:
            if not isinstance(raw, str) or not raw.strip():
                rejected.append(str(raw))
                continue
            symbol = normalize_symbol(raw)
            if not self._oracle.is_known(symbol):
                rejected.append(symbol)
            elif symbol not in accepted:
                accepted.append(symbol)

        result = SubscriptionResult(connection_id, accepted, rejected)
        if not result.ok:
            logger.warning(f"Client {connection_id} sent invalid subscription: {rejected}")
            return result

        self._subscriptions[connection_id] = tuple(accepted)
        logger.info(f"Client {connection_id} subscribed to: {', '.join(accepted)}")
        return result

    def unsubscribe(self, connection_id: str) -> bool:
        """Remove a subscription. Idempotent; returns whether one existed."""
        symbols = self._subscriptions.pop(connection_id, None)
        if symbols is not None:
            logger.info(f"Client {connection_id} unsubscribed from: {', '.join(symbols)}")
        return symbols is not None

    def on_disconnect(self, connection_id: str) -> None:
        self.unsubscribe(connection_id)

    def get(self, connection_id: str) -> Optional[Tuple[str, ...]]:
        return self._subscriptions.get(connection_id)

    def items(self) -> List[Tuple[str, Tuple[str, ...]]]:
        """Snapshot of (connection id, symbols) pairs."""
        return list(self._subscriptions.items())

    def __len__(self) -> int:
        return len(self._subscriptions)

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._subscriptions
