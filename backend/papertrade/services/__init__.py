"""
Trading services.

Public API:
    UnitOfWork      - Explicit transaction scope shared across components
    WalletLedger    - Wallets and their transaction log
    HoldingsBook    - Positions per user and symbol
    OrderSettlement - Atomic order placement
"""

from papertrade.services.unit_of_work import UnitOfWork, unit_scope
from papertrade.services.wallet_ledger import WalletLedger
from papertrade.services.holdings_book import HoldingSnapshot, HoldingsBook
from papertrade.services.order_settlement import (
    OrderSettlement,
    SettlementResult,
    validate_order,
)

__all__ = [
    "UnitOfWork",
    "unit_scope",
    "WalletLedger",
    "HoldingSnapshot",
    "HoldingsBook",
    "OrderSettlement",
    "SettlementResult",
    "validate_order",
]
