"""
Repository Package
PaperTrade Platform
"""

from papertrade.db.repositories.trading import (
    WalletRepository,
    WalletTransactionRepository,
    HoldingRepository,
    OrderRecordRepository,
)

__all__ = [
    "WalletRepository",
    "WalletTransactionRepository",
    "HoldingRepository",
    "OrderRecordRepository",
]
