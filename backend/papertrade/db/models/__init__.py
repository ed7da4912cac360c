"""
Database Models Package
PaperTrade Platform

Exports all SQLAlchemy models for the application.
"""

# Import Base
from papertrade.db.base import Base

from papertrade.db.models.trading import (
    Wallet,
    WalletTransaction,
    Holding,
    OrderRecord,
)

__all__ = [
    "Base",
    "Wallet",
    "WalletTransaction",
    "Holding",
    "OrderRecord",
]
