"""
Test configuration and shared fixtures for PaperTrade backend tests.
"""

import random
from decimal import Decimal

import pytest
import pytest_asyncio

from papertrade.core.config import SettlementSettings, WalletSettings
from papertrade.db.session import Database
from papertrade.market.broadcaster import Broadcaster
from papertrade.market.price_oracle import PriceOracle
from papertrade.market.subscriptions import SubscriptionRegistry
from papertrade.services.holdings_book import HoldingsBook
from papertrade.services.order_settlement import OrderSettlement
from papertrade.services.wallet_ledger import WalletLedger


# =============================================================================
# Market
# =============================================================================

TEST_BASE_PRICES = {
    "AAPL": Decimal("150.00"),
    "INFY": Decimal("1450.00"),
    "TCS": Decimal("3200.00"),
}


@pytest.fixture
def oracle():
    """Oracle with a small universe and a seeded random walk."""
    return PriceOracle(base_prices=TEST_BASE_PRICES, rng=random.Random(42))


@pytest.fixture
def registry(oracle):
    return SubscriptionRegistry(oracle)


@pytest.fixture
def broadcaster(oracle, registry):
    return Broadcaster(oracle, registry)


# =============================================================================
# Storage
# =============================================================================

@pytest_asyncio.fixture
async def database(tmp_path):
    """Throwaway SQLite database per test."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'papertrade.db'}")
    await db.init_db()
    yield db
    await db.close()


@pytest.fixture
def session_factory(database):
    return database.session_factory


@pytest.fixture
def ledger(session_factory):
    return WalletLedger(session_factory, WalletSettings(starting_balance=Decimal("100000")))


@pytest.fixture
def holdings(session_factory):
    return HoldingsBook(session_factory)


@pytest.fixture
def settlement_config():
    return SettlementSettings(lock_timeout_seconds=1.0, max_attempts=3, retry_backoff_seconds=0)


@pytest.fixture
def settlement(oracle, ledger, holdings, session_factory, settlement_config):
    return OrderSettlement(oracle, ledger, holdings, session_factory, settlement_config)
