"""
Service Registry
PaperTrade Platform

Builds every component of one application instance and wires their
dependencies. Nothing here is a module-level singleton; the registry is
created by the application lifespan (or a test) and handed out through
FastAPI dependencies.
"""

import random
from typing import Any, Dict, Optional

from loguru import logger

from papertrade.core.config import Settings, get_settings
from papertrade.db.session import Database
from papertrade.market.broadcaster import Broadcaster
from papertrade.market.price_oracle import PriceOracle
from papertrade.market.subscriptions import SubscriptionRegistry
from papertrade.market.ticker import MarketTicker
from papertrade.services.holdings_book import HoldingsBook
from papertrade.services.order_settlement import OrderSettlement
from papertrade.services.wallet_ledger import WalletLedger


class ServiceRegistry:
    """Registry for all trading services."""
    
    def __init__(
        self,
        settings: Optional[Settings] = None,
        database: Optional[Database] = None,
        oracle: Optional[PriceOracle] = None,
    ):
        self.settings = settings or get_settings()
        market = self.settings.market
        
        self.database = database or Database(self.settings.DATABASE_URL, self.settings.db)
        self.oracle = oracle or PriceOracle(
            rng=random.Random(market.random_seed),
            history_size=market.history_size,
        )
        self.subscriptions = SubscriptionRegistry(self.oracle)
        self.broadcaster = Broadcaster(self.oracle, self.subscriptions, send_timeout=market.send_timeout_seconds)
        self.ticker = MarketTicker(self.oracle, self.broadcaster, interval=market.tick_interval_seconds)
        
        session_factory = self.database.session_factory
        self.ledger = WalletLedger(session_factory, self.settings.wallet)
        self.holdings = HoldingsBook(session_factory)
        self.settlement = OrderSettlement(
            self.oracle,
            self.ledger,
            self.holdings,
            session_factory,
            self.settings.settlement,
        )
        self._started = False
    
    async def start_all(self) -> None:
        """Create the schema and start the tick loop if configured."""
        if self._started:
            return
        
        logger.info("Starting trading services...")
        await self.database.init_db()
        if self.settings.market.auto_tick:
            await self.ticker.start()
        else:
            logger.info("Market auto-update disabled")
        
        self._started = True
        logger.info("✓ Trading services started")
    
    async def stop_all(self) -> None:
        """Stop services in reverse order."""
        logger.info("Stopping trading services...")
        
        try:
            await self.ticker.stop()
        except Exception as e:
            logger.error(f"Error stopping market ticker: {e}")
        
        try:
            await self.broadcaster.close_all()
        except Exception as e:
            logger.error(f"Error closing WebSocket clients: {e}")
        
        try:
            await self.database.close()
            logger.info("✓ Database connections closed")
        except Exception as e:
            logger.error(f"Error closing database: {e}")
        
        self._started = False
    
    def get_status(self) -> Dict[str, Any]:
        return {
            "ticker": self.ticker.get_status(),
            "broadcaster": self.broadcaster.get_status(),
            "settlement": self.settlement.get_status(),
        }
