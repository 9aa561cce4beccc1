"""Create ledger, trading, funds request and investment tables

Revision ID: 001_create_ledger_tables
Revises: 
Create Date: 2025-01-15

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_create_ledger_tables'
down_revision = None
branch_labels = None
depends_on = None

MONEY = sa.Numeric(18, 2)
QUANTITY = sa.Numeric(20, 8)


def upgrade():
    op.create_table(
        'wallets',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('balance', MONEY, nullable=False, server_default='0'),
        sa.Column('currency', sa.String(10), nullable=False, server_default='USD'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_wallets_user_id', 'wallets', ['user_id'], unique=True)

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='completed'),
        sa.Column('reference_id', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_transactions_user_id', 'transactions', ['user_id'])
    op.create_index('ix_transactions_reference_id', 'transactions', ['reference_id'])
    op.create_index('ix_transactions_created_at', 'transactions', ['created_at'])
    op.create_index('idx_transactions_user_created', 'transactions', ['user_id', 'created_at'])

    op.create_table(
        'holdings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('asset_type', sa.String(20), nullable=False),
        sa.Column('symbol', sa.String(20), nullable=False),
        sa.Column('asset_name', sa.String(200), nullable=False),
        sa.Column('quantity', QUANTITY, nullable=False),
        sa.Column('average_price', MONEY, nullable=False),
        sa.Column('current_price', MONEY, nullable=False),
        sa.Column('total_cost', MONEY, nullable=False),
        sa.Column('current_value', MONEY, nullable=False),
        sa.Column('profit_loss', MONEY, nullable=False, server_default='0'),
        sa.Column('profit_loss_pct', MONEY, nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('user_id', 'asset_type', 'symbol', name='uq_holdings_user_asset_symbol'),
    )
    op.create_index('ix_holdings_user_id', 'holdings', ['user_id'])

    op.create_table(
        'trades',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('asset_type', sa.String(20), nullable=False),
        sa.Column('symbol', sa.String(20), nullable=False),
        sa.Column('asset_name', sa.String(200), nullable=False),
        sa.Column('trade_type', sa.String(10), nullable=False),
        sa.Column('quantity', QUANTITY, nullable=False),
        sa.Column('price', MONEY, nullable=False),
        sa.Column('total_amount', MONEY, nullable=False),
        sa.Column('fee', MONEY, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='executed'),
        sa.Column('executed_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_trades_user_id', 'trades', ['user_id'])
    op.create_index('ix_trades_symbol', 'trades', ['symbol'])
    op.create_index('ix_trades_executed_at', 'trades', ['executed_at'])

    op.create_table(
        'deposits',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('payment_method', sa.String(50), nullable=False),
        sa.Column('crypto_type', sa.String(20), nullable=True),
        sa.Column('transaction_hash', sa.String(200), nullable=True),
        sa.Column('proof_notes', sa.Text(), nullable=True),
        sa.Column('settlement_details', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(30), nullable=False, server_default='pending'),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('reviewed_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_deposits_user_id', 'deposits', ['user_id'])
    op.create_index('ix_deposits_status', 'deposits', ['status'])

    op.create_table(
        'withdrawals',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('withdrawal_method', sa.String(50), nullable=False),
        sa.Column('wallet_address', sa.String(200), nullable=True),
        sa.Column('bank_details', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('reviewed_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_withdrawals_user_id', 'withdrawals', ['user_id'])
    op.create_index('ix_withdrawals_status', 'withdrawals', ['status'])

    op.create_table(
        'investment_plans',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('min_amount', MONEY, nullable=False),
        sa.Column('max_amount', MONEY, nullable=False),
        sa.Column('return_percentage', sa.Numeric(7, 2), nullable=False),
        sa.Column('duration_days', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'user_investments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('plan_id', sa.Integer(), sa.ForeignKey('investment_plans.id'), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='ACTIVE'),
        sa.Column('expected_return', MONEY, nullable=False),
        sa.Column('custom_duration_days', sa.Integer(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_user_investments_user_id', 'user_investments', ['user_id'])
    op.create_index('ix_user_investments_end_date', 'user_investments', ['end_date'])
    op.create_index('ix_user_investments_status', 'user_investments', ['status'])

    op.create_table(
        'algorithm_applications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('answers', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('reviewed_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_algorithm_applications_user_id', 'algorithm_applications', ['user_id'], unique=True)

    op.create_table(
        'user_algorithm_access',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('plan_id', sa.Integer(), sa.ForeignKey('investment_plans.id'), nullable=False),
        sa.Column('custom_duration_days', sa.Integer(), nullable=True),
        sa.Column('granted_at', sa.DateTime(), nullable=False),
        sa.Column('granted_by', sa.Integer(), nullable=True),
        sa.UniqueConstraint('user_id', 'plan_id', name='uq_algorithm_access_user_plan'),
    )
    op.create_index('ix_user_algorithm_access_user_id', 'user_algorithm_access', ['user_id'])


def downgrade():
    op.drop_table('user_algorithm_access')
    op.drop_table('algorithm_applications')
    op.drop_table('user_investments')
    op.drop_table('investment_plans')
    op.drop_table('withdrawals')
    op.drop_table('deposits')
    op.drop_table('trades')
    op.drop_table('holdings')
    op.drop_table('transactions')
    op.drop_table('wallets')
