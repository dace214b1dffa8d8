"""Initial schema - wallets, orders and the balance ledger

Revision ID: 20261017_001
Revises:
Create Date: 2026-10-17

Tables:
- account (one simulated cash wallet per user)
- orders (order lifecycle, cash fills and margin positions)
- ledger_entry (append-only record of every balance change)
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '20261017_001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


AMOUNT = sa.Numeric(20, 8)
JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    # ========================================================================
    # 1. ACCOUNT
    # ========================================================================
    op.create_table(
        'account',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('initial_balance', AMOUNT, nullable=False),
        sa.Column('balance', AMOUNT, nullable=False),
        sa.Column('equity', AMOUNT, nullable=False),
        sa.Column('margin', AMOUNT, nullable=False),
        sa.Column('free_margin', AMOUNT, nullable=False),
        sa.Column('currency', sa.String(3)),
        sa.Column('leverage', sa.Integer()),
        sa.Column('status', sa.String(20)),  # active, suspended, frozen, closed
        sa.Column('total_deposits', AMOUNT),
        sa.Column('total_withdrawals', AMOUNT),
        sa.Column('total_trading_profit', AMOUNT),
        sa.Column('total_trading_loss', AMOUNT),
        sa.Column('total_fees', AMOUNT),
        sa.Column('highest_balance', AMOUNT, nullable=False),
        sa.Column('lowest_balance', AMOUNT, nullable=False),
        sa.Column('last_reset_at', sa.DateTime(timezone=True)),
        sa.Column('last_activity_at', sa.DateTime(timezone=True)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True)),

        sa.PrimaryKeyConstraint('id', name='pk_account'),
        sa.UniqueConstraint('user_id', name='uq_account_user_id'),
        sa.CheckConstraint('balance >= 0', name='ck_account_balance_non_negative'),
        sa.CheckConstraint('margin >= 0', name='ck_account_margin_non_negative'),
    )
    op.create_index('idx_account_status', 'account', ['status'])

    # ========================================================================
    # 2. ORDERS
    # ========================================================================
    op.create_table(
        'orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('symbol', sa.String(10), nullable=False),
        sa.Column('symbol_type', sa.String(20)),
        sa.Column('action', sa.String(4), nullable=False),  # buy, sell
        sa.Column('order_type', sa.String(20), nullable=False),
        sa.Column('time_in_force', sa.String(3)),
        sa.Column('quantity', AMOUNT, nullable=False),
        sa.Column('limit_price', AMOUNT),
        sa.Column('stop_price', AMOUNT),
        sa.Column('requested_price', AMOUNT, nullable=False),
        sa.Column('entry_price', AMOUNT, nullable=False),
        sa.Column('exit_price', AMOUNT),
        sa.Column('current_price', AMOUNT),
        sa.Column('stop_loss', AMOUNT),
        sa.Column('take_profit', AMOUNT),
        sa.Column('risk_reward', AMOUNT),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('settlement_type', sa.String(10)),  # cash, margin
        sa.Column('close_reason', sa.String(20)),
        sa.Column('cancel_reason', sa.Text()),
        sa.Column('commission', AMOUNT),
        sa.Column('swap', AMOUNT),
        sa.Column('slippage', AMOUNT),
        sa.Column('reserved_amount', AMOUNT),
        sa.Column('margin', AMOUNT),
        sa.Column('leverage', sa.Integer()),
        sa.Column('market_conditions', JSON_TYPE),
        sa.Column('profit', AMOUNT),
        sa.Column('loss', AMOUNT),
        sa.Column('net_profit_loss', AMOUNT),
        sa.Column('profit_loss_percentage', sa.Numeric(12, 4)),
        sa.Column('notes', sa.String(500)),
        sa.Column('open_time', sa.DateTime(timezone=True)),
        sa.Column('close_time', sa.DateTime(timezone=True)),
        sa.Column('expiration_time', sa.DateTime(timezone=True)),
        sa.Column('cancelled_at', sa.DateTime(timezone=True)),
        sa.Column('duration_seconds', sa.Integer()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True)),

        sa.PrimaryKeyConstraint('id', name='pk_orders'),
        sa.CheckConstraint('quantity > 0', name='ck_orders_quantity_positive'),
        sa.CheckConstraint('entry_price > 0', name='ck_orders_entry_price_positive'),
    )
    op.create_index('idx_order_user_status', 'orders', ['user_id', 'status'])
    op.create_index('idx_order_user_symbol', 'orders', ['user_id', 'symbol'])
    op.create_index('idx_order_user_created', 'orders', ['user_id', 'created_at'])
    op.create_index('idx_order_status_expiry', 'orders', ['status', 'expiration_time'])

    # ========================================================================
    # 3. LEDGER
    # ========================================================================
    op.create_table(
        'ledger_entry',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Uuid(), nullable=False),
        sa.Column('entry_type', sa.String(20), nullable=False),
        sa.Column('amount', AMOUNT, nullable=False),
        sa.Column('balance_before', AMOUNT, nullable=False),
        sa.Column('balance_after', AMOUNT, nullable=False),
        sa.Column('description', sa.String(200), nullable=False),
        sa.Column('reference', sa.Uuid()),
        sa.Column('metadata', JSON_TYPE),
        sa.Column('status', sa.String(20)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),

        sa.PrimaryKeyConstraint('id', name='pk_ledger_entry'),
        sa.ForeignKeyConstraint(
            ['account_id'], ['account.id'],
            name='fk_ledger_entry_account_id_account', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['reference'], ['orders.id'],
            name='fk_ledger_entry_reference_orders',
        ),
    )
    op.create_index('idx_ledger_account', 'ledger_entry', ['account_id', 'id'])
    op.create_index('idx_ledger_reference', 'ledger_entry', ['reference'])


def downgrade() -> None:
    op.drop_index('idx_ledger_reference', table_name='ledger_entry')
    op.drop_index('idx_ledger_account', table_name='ledger_entry')
    op.drop_table('ledger_entry')

    op.drop_index('idx_order_status_expiry', table_name='orders')
    op.drop_index('idx_order_user_created', table_name='orders')
    op.drop_index('idx_order_user_symbol', table_name='orders')
    op.drop_index('idx_order_user_status', table_name='orders')
    op.drop_table('orders')

    op.drop_index('idx_account_status', table_name='account')
    op.drop_table('account')
