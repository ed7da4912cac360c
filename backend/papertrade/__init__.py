"""
PaperTrade - paper-trading backend.

Simulated market data, virtual wallets and atomic order settlement.
"""

__version__ = "1.0.0"
