"""
Domain Models - Wallets, Holdings & Orders
PaperTrade Platform

SQLAlchemy models for:
- Wallet (one per user, optimistic version column)
- Wallet Transaction (append-only ledger entries)
- Holding (one per user and symbol)
- Order Record (append-only order history)
"""

from datetime import datetime
from decimal import Decimal
from typing import List

from sqlalchemy import (
    String, Integer, DateTime, Numeric, ForeignKey, Index,
    UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from papertrade.db.base import Base, TimestampMixin, utc_now


class Wallet(TimestampMixin, Base):
    """
    Virtual cash wallet.

    `version` is bumped on every update; a write against a stale version
    fails instead of overwriting a concurrent change.
    """
    __tablename__ = "wallets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    balance: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    transactions: Mapped[List["WalletTransaction"]] = relationship(
        back_populates="wallet",
        order_by="WalletTransaction.id",
    )

    __table_args__ = (
        CheckConstraint("balance >= 0", name="balance_non_negative"),
    )

    __mapper_args__ = {"version_id_col": version}


class WalletTransaction(Base):
    """
    Immutable wallet ledger entry.
    """
    __tablename__ = "wallet_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    wallet_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("wallets.id"),
        nullable=False,
    )

    type: Mapped[str] = mapped_column(String(4), nullable=False)  # BUY, SELL
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    symbol: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)

    # Relationships
    wallet: Mapped["Wallet"] = relationship(back_populates="transactions")

    __table_args__ = (
        Index('idx_wallet_tx_wallet_time', 'wallet_id', 'timestamp'),
    )


class Holding(TimestampMixin, Base):
    """
    Current position in one symbol. Zero-quantity holdings are deleted.
    """
    __tablename__ = "holdings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    symbol: Mapped[str] = mapped_column(String(20), nullable=False)
    qty: Mapped[int] = mapped_column(Integer, nullable=False)
    avg_cost: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False)
    last_price: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=Decimal("0"))

    __table_args__ = (
        UniqueConstraint('user_id', 'symbol', name='uq_holdings_user_symbol'),
        CheckConstraint("qty >= 0", name="qty_non_negative"),
        CheckConstraint("avg_cost >= 0", name="avg_cost_non_negative"),
        Index('idx_holdings_user', 'user_id'),
    )


class OrderRecord(Base):
    """
    Settled market order. Never updated or deleted.
    """
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    symbol: Mapped[str] = mapped_column(String(20), nullable=False)
    qty: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    mode: Mapped[str] = mapped_column(String(4), nullable=False)  # BUY, SELL
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (
        CheckConstraint("qty > 0", name="qty_positive"),
        CheckConstraint("price >= 0", name="price_non_negative"),
        Index('idx_orders_user_created', 'user_id', 'created_at'),
    )
