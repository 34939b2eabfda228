"""create accounts and transactions

Revision ID: 4c1f2a9e7b3d
Revises:
Create Date: 2026-10-18 09:00:00.000000+00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c1f2a9e7b3d'
down_revision = None
branch_labels = None
depends_on = None

currency_code = sa.Enum('KES', 'NGN', 'USD', name='currency_code')
transaction_status = sa.Enum('pending', 'completed', 'failed', name='transaction_status')


def upgrade() -> None:
    # Create accounts table
    op.create_table(
        'accounts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('currency', currency_code, nullable=False),
        sa.Column('balance', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('balance >= 0', name='ck_accounts_balance_non_negative'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_accounts_name'), 'accounts', ['name'], unique=True)
    op.create_index(op.f('ix_accounts_currency'), 'accounts', ['currency'], unique=False)

    # Create transactions table (account names are not foreign keys)
    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('transaction_id', sa.String(length=36), nullable=False),
        sa.Column('from_account', sa.String(length=255), nullable=False),
        sa.Column('to_account', sa.String(length=255), nullable=False),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('currency', currency_code, nullable=False),
        sa.Column('exchange_rate', sa.Numeric(precision=18, scale=8), nullable=False),
        sa.Column('converted_amount', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('note', sa.Text(), nullable=False),
        sa.Column('status', transaction_status, nullable=False),
        sa.Column('transfer_date', sa.Date(), nullable=True),
        sa.Column('idempotency_key', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('idempotency_key')
    )
    op.create_index(op.f('ix_transactions_transaction_id'), 'transactions', ['transaction_id'], unique=True)
    op.create_index(op.f('ix_transactions_from_account'), 'transactions', ['from_account'], unique=False)
    op.create_index(op.f('ix_transactions_to_account'), 'transactions', ['to_account'], unique=False)
    op.create_index(op.f('ix_transactions_created_at'), 'transactions', ['created_at'], unique=False)
    op.create_index('ix_transactions_created_at_id', 'transactions', ['created_at', 'id'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_transactions_created_at_id', table_name='transactions')
    op.drop_index(op.f('ix_transactions_created_at'), table_name='transactions')
    op.drop_index(op.f('ix_transactions_to_account'), table_name='transactions')
    op.drop_index(op.f('ix_transactions_from_account'), table_name='transactions')
    op.drop_index(op.f('ix_transactions_transaction_id'), table_name='transactions')
    op.drop_table('transactions')

    op.drop_index(op.f('ix_accounts_currency'), table_name='accounts')
    op.drop_index(op.f('ix_accounts_name'), table_name='accounts')
    op.drop_table('accounts')

    transaction_status.drop(op.get_bind(), checkfirst=True)
    currency_code.drop(op.get_bind(), checkfirst=True)
