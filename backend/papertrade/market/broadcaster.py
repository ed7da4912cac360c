"""
Watchlist Broadcaster
PaperTrade Platform

Point-to-point fan-out of price updates to WebSocket clients. Each
connection receives only the symbols it subscribed to, once per tick.

Protocol (server -> client):
    {"type": "connected", "client_id": "..."}
    {"type": "subscribed", "symbols": [...], "rejected": [...]}
    {"type": "subscription_rejected", "rejected": [...], "available_symbols": [...]}
    {"type": "unsubscribed", "success": true}
    {"type": "watchlist_update", "tick": 12, "data": [{price state}, ...]}
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from loguru import logger

from papertrade.market.price_oracle import PriceOracle
from papertrade.market.subscriptions import SubscriptionRegistry, SubscriptionResult


@dataclass
class ClientConnection:
    """WebSocket client connection info."""
    id: str
    websocket: Any  # anything with an async send_json()
    send_lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class Broadcaster:
    """
    Delivers watchlist updates to subscribed connections.

    Connection lifecycle hooks (connect/disconnect) and subscription
    changes go through this class; the subscription table itself is
    owned by the SubscriptionRegistry.
    """

    def __init__(
        self,
        oracle: PriceOracle,
        registry: SubscriptionRegistry,
        send_timeout: float = 5.0,
    ):
        self._oracle = oracle
        self._registry = registry
        self._send_timeout = send_timeout
        self._clients: Dict[str, ClientConnection] = {}
        self._client_lock = asyncio.Lock()

        # Stats
        self._messages_sent = 0
        self._ticks_broadcast = 0

    # =========================================================================
    # Connection lifecycle
    # =========================================================================

    async def connect(self, websocket: Any, client_id: Optional[str] = None) -> str:
        """
        Register a new WebSocket client.

        Returns:
            Client ID for future reference.
        """
        client_id = client_id or str(uuid.uuid4())[:8]
        async with self._client_lock:
            self._clients[client_id] = ClientConnection(id=client_id, websocket=websocket)

        logger.info(f"Client {client_id} connected")
        await self.send(client_id, {
            "type": "connected",
            "client_id": client_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })
        return client_id

    async def disconnect(self, client_id: str) -> None:
        """Forget a client and release its subscription. Idempotent."""
        async with self._client_lock:
            known = self._clients.pop(client_id, None) is not None
        self._registry.on_disconnect(client_id)
        if known:
            logger.info(f"Client {client_id} disconnected")

    # =========================================================================
    # Subscriptions
    # =========================================================================

    async def subscribe(self, client_id: str, symbols: Iterable[str]) -> SubscriptionResult:
        """Replace a client's watchlist and push an immediate snapshot."""
        result = self._registry.subscribe(client_id, symbols)
        if not result.ok:
            await self.send(client_id, {
                "type": "subscription_rejected",
                "rejected": result.rejected,
                "available_symbols": self._oracle.get_symbols(),
            })
            return result

        await self.send(client_id, {
            "type": "subscribed",
            "symbols": result.accepted,
            "rejected": result.rejected,
        })
        await self.send(client_id, self._build_update(result.accepted))
        return result

    async def unsubscribe(self, client_id: str) -> bool:
        removed = self._registry.unsubscribe(client_id)
        await self.send(client_id, {"type": "unsubscribed", "success": removed})
        return removed

    # =========================================================================
    # Tick fan-out
    # =========================================================================

    async def on_tick(self) -> int:
        """
        Push the current prices to every subscribed client.

        Called once per tick, after all symbols were updated. Returns the
        number of clients reached.
        """
        deliveries = []
        for client_id, symbols in self._registry.items():
            message = self._build_update(symbols)
            if message["data"]:
                deliveries.append(self.send(client_id, message))

        results = await asyncio.gather(*deliveries)
        self._ticks_broadcast += 1
        return sum(1 for delivered in results if delivered)

    def _build_update(self, symbols: Iterable[str]) -> Dict[str, Any]:
        data = []
        for symbol in symbols:
            state = self._oracle.get_price(symbol)
            if state is not None:
                data.append(state.to_dict())
        return {
            "type": "watchlist_update",
            "tick": self._oracle.tick_count,
            "data": data,
        }

    async def send(self, client_id: str, message: Dict[str, Any]) -> bool:
        """
        Send a message to a specific client.

        Messages to one client are serialised by its send lock, so a
        client sees its updates in tick order. A send that fails or does not
        finish within the send timeout drops the client, so one stalled
        connection cannot hold up a tick.
        """
        async with self._client_lock:
            client = self._clients.get(client_id)
        if client is None:
            return False

        try:
            async with client.send_lock:
                await asyncio.wait_for(client.websocket.send_json(message), timeout=self._send_timeout)
            self._messages_sent += 1
            return True
        except asyncio.TimeoutError:
            logger.warning(f"Send to client {client_id} timed out after {self._send_timeout}s")
            await self.disconnect(client_id)
            return False
        except Exception as e:
            logger.warning(f"Error sending to client {client_id}: {e}")
            await self.disconnect(client_id)
            return False

    # =========================================================================
    # Status
    # =========================================================================

    @property
    def connection_count(self) -> int:
        return len(self._clients)

    def get_status(self) -> Dict[str, Any]:
        return {
            "connections": len(self._clients),
            "subscriptions": len(self._registry),
            "messages_sent": self._messages_sent,
            "ticks_broadcast": self._ticks_broadcast,
        }

    async def close_all(self) -> None:
        """Close every client connection."""
        async with self._client_lock:
            clients = list(self._clients.values())
            self._clients.clear()

        for client in clients:
            self._registry.on_disconnect(client.id)
            try:
                await client.websocket.close()
            except Exception as e:
                logger.debug(f"Closing client {client.id} failed: {e}")
