"""
Market Ticker
PaperTrade Platform

The single recurring task that drives the market: advance the oracle,
then broadcast. Ticks never overlap; the next sleep starts only after
the previous broadcast finished.
"""

import asyncio
from typing import Any, Dict, Optional

from loguru import logger

from papertrade.market.broadcaster import Broadcaster
from papertrade.market.price_oracle import PriceOracle


class MarketTicker:
    """
    Periodic price updater.
    
    Usage:
        ticker = MarketTicker(oracle, broadcaster, interval=3.0)
        await ticker.start()
        ...
        await ticker.stop()
    """
    
    def __init__(
        self,
        oracle: PriceOracle,
        broadcaster: Broadcaster,
        interval: float = 60.0,
    ):
        self._oracle = oracle
        self._broadcaster = broadcaster
        self._interval = interval
        self._task: Optional[asyncio.Task] = None
        self._tick_lock = asyncio.Lock()
    
    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()
    
    async def tick_once(self) -> int:
        """Apply one tick and broadcast it. Returns clients reached."""
        async with self._tick_lock:
            self._oracle.tick()
            return await self._broadcaster.on_tick()
    
    async def start(self) -> None:
        """Start the tick loop (restarts it if already running)."""
        await self.stop()
        self._task = asyncio.create_task(self._run(), name="market-ticker")
        logger.info(f"Market data auto-update started (interval: {self._interval}s)")
    
    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Market data auto-update stopped")
    
    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                reached = await self.tick_once()
                logger.debug(f"Tick {self._oracle.tick_count} pushed to {reached} clients")
            except Exception as e:
                logger.exception(f"Market tick failed: {e}")
    
    def get_status(self) -> Dict[str, Any]:
        return {
            "running": self.is_running,
            "interval_seconds": self._interval,
            "ticks": self._oracle.tick_count,
        }
