"""Initial schema - wallets, holdings and orders

Revision ID: 20261018_001
Revises: 
Create Date: 2026-10-18

Tables:
- wallets (one per user, optimistic version column)
- wallet_transactions (append-only ledger)
- holdings (one per user and symbol)
- orders (append-only order history)
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '20261018_001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ========================================================================
    # WALLETS
    # ========================================================================
    op.create_table(
        'wallets',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('balance', sa.Numeric(18, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('version', sa.Integer, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True)),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
        
        sa.PrimaryKeyConstraint('id', name='pk_wallets'),
        sa.UniqueConstraint('user_id', name='uq_wallets_user_id'),
        sa.CheckConstraint('balance >= 0', name='ck_wallets_balance_non_negative'),
    )
    
    op.create_table(
        'wallet_transactions',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('wallet_id', sa.Integer, nullable=False),
        sa.Column('type', sa.String(4), nullable=False),  # BUY, SELL
        sa.Column('amount', sa.Numeric(18, 2), nullable=False),
        sa.Column('symbol', sa.String(20), nullable=False),
        sa.Column('quantity', sa.Integer, nullable=False),
        sa.Column('price', sa.Numeric(18, 2), nullable=False),
        sa.Column('balance_after', sa.Numeric(18, 2), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        
        sa.PrimaryKeyConstraint('id', name='pk_wallet_transactions'),
        sa.ForeignKeyConstraint(
            ['wallet_id'], ['wallets.id'],
            name='fk_wallet_transactions_wallet_id_wallets',
        ),
    )
    op.create_index('idx_wallet_tx_wallet_time', 'wallet_transactions', ['wallet_id', 'timestamp'])
    
    # ========================================================================
    # HOLDINGS
    # ========================================================================
    op.create_table(
        'holdings',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('symbol', sa.String(20), nullable=False),
        sa.Column('qty', sa.Integer, nullable=False),
        sa.Column('avg_cost', sa.Numeric(18, 4), nullable=False),
        sa.Column('last_price', sa.Numeric(18, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True)),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
        
        sa.PrimaryKeyConstraint('id', name='pk_holdings'),
        sa.UniqueConstraint('user_id', 'symbol', name='uq_holdings_user_symbol'),
        sa.CheckConstraint('qty >= 0', name='ck_holdings_qty_non_negative'),
        sa.CheckConstraint('avg_cost >= 0', name='ck_holdings_avg_cost_non_negative'),
    )
    op.create_index('idx_holdings_user', 'holdings', ['user_id'])
    
    # ========================================================================
    # ORDERS
    # ========================================================================
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('symbol', sa.String(20), nullable=False),
        sa.Column('qty', sa.Integer, nullable=False),
        sa.Column('price', sa.Numeric(18, 2), nullable=False),
        sa.Column('mode', sa.String(4), nullable=False),  # BUY, SELL
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        
        sa.PrimaryKeyConstraint('id', name='pk_orders'),
        sa.CheckConstraint('qty > 0', name='ck_orders_qty_positive'),
        sa.CheckConstraint('price >= 0', name='ck_orders_price_non_negative'),
    )
    op.create_index('idx_orders_user_created', 'orders', ['user_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('idx_orders_user_created', table_name='orders')
    op.drop_table('orders')
    op.drop_index('idx_holdings_user', table_name='holdings')
    op.drop_table('holdings')
    op.drop_index('idx_wallet_tx_wallet_time', table_name='wallet_transactions')
    op.drop_table('wallet_transactions')
    op.drop_table('wallets')
