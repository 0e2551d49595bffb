"""Create referral network and commission ledger tables

Revision ID: 20261018_000001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261018_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ANCESTOR_COLUMNS = [f'ancestor_{level}' for level in range(1, 6)]


def upgrade() -> None:
    # Create accounts table
    op.create_table(
        'accounts',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('referral_code', sa.String(length=32), nullable=False),
        sa.Column('sponsor_code', sa.String(length=32), nullable=True),
        *[
            sa.Column(column, sa.String(length=32), nullable=True)
            for column in ANCESTOR_COLUMNS
        ],
        sa.Column(
            'balance', sa.DECIMAL(precision=18, scale=8),
            nullable=False, server_default='0'
        ),
        sa.Column(
            'referral_earnings', sa.DECIMAL(precision=18, scale=8),
            nullable=False, server_default='0'
        ),
        sa.Column(
            'direct_referral_count', sa.Integer(),
            nullable=False, server_default='0'
        ),
        sa.Column(
            'status', sa.String(length=20),
            nullable=False, server_default='active'
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        *[
            sa.ForeignKeyConstraint([column], ['accounts.id'], )
            for column in ANCESTOR_COLUMNS
        ],
        sa.CheckConstraint(
            'balance >= 0', name='check_account_balance_non_negative'
        ),
        sa.CheckConstraint(
            'referral_earnings >= 0',
            name='check_account_referral_earnings_non_negative'
        ),
        sa.CheckConstraint(
            'direct_referral_count >= 0',
            name='check_account_direct_referral_count_non_negative'
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_accounts_email', 'accounts', ['email'], unique=True)
    op.create_index(
        'ix_accounts_referral_code', 'accounts',
        ['referral_code'], unique=True
    )
    op.create_index('ix_accounts_status', 'accounts', ['status'], unique=False)
    # One index per level: downline counts are lookups on a single column
    for column in ANCESTOR_COLUMNS:
        op.create_index(
            f'ix_accounts_{column}', 'accounts', [column], unique=False
        )

    # Create commission_events table
    op.create_table(
        'commission_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('event_key', sa.String(length=128), nullable=False),
        sa.Column('beneficiary_id', sa.String(length=32), nullable=False),
        sa.Column(
            'source', sa.String(length=20),
            nullable=False, server_default='deposit'
        ),
        sa.Column(
            'gross_amount', sa.DECIMAL(precision=18, scale=8), nullable=False
        ),
        sa.Column(
            'pool_rate', sa.DECIMAL(precision=10, scale=6), nullable=False
        ),
        sa.Column(
            'pool_amount', sa.DECIMAL(precision=18, scale=8), nullable=False
        ),
        sa.Column(
            'total_credited', sa.DECIMAL(precision=18, scale=8),
            nullable=False, server_default='0'
        ),
        sa.Column(
            'status', sa.String(length=20),
            nullable=False, server_default='pending'
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('applied_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['beneficiary_id'], ['accounts.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_commission_events_event_key', 'commission_events',
        ['event_key'], unique=True
    )
    op.create_index(
        'ix_commission_events_beneficiary_id', 'commission_events',
        ['beneficiary_id'], unique=False
    )
    op.create_index(
        'ix_commission_events_status', 'commission_events',
        ['status'], unique=False
    )

    # Create commission_credits table
    op.create_table(
        'commission_credits',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('ancestor_id', sa.String(length=32), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('rate', sa.DECIMAL(precision=10, scale=6), nullable=False),
        sa.Column('amount', sa.DECIMAL(precision=18, scale=8), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ['event_id'], ['commission_events.id'], ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(['ancestor_id'], ['accounts.id'], ),
        sa.UniqueConstraint(
            'event_id', 'level', name='uq_commission_credit_event_level'
        ),
        sa.UniqueConstraint(
            'event_id', 'ancestor_id',
            name='uq_commission_credit_event_ancestor'
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_commission_credits_event_id', 'commission_credits',
        ['event_id'], unique=False
    )
    op.create_index(
        'ix_commission_credits_ancestor_id', 'commission_credits',
        ['ancestor_id'], unique=False
    )

    # Create withdrawal_requests table
    op.create_table(
        'withdrawal_requests',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.String(length=32), nullable=False),
        sa.Column('amount', sa.DECIMAL(precision=18, scale=8), nullable=False),
        sa.Column('method', sa.String(length=64), nullable=False),
        sa.Column('details', sa.Text(), nullable=False),
        sa.Column(
            'status', sa.String(length=20),
            nullable=False, server_default='pending'
        ),
        sa.Column('admin_note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ),
        sa.CheckConstraint(
            'amount > 0', name='check_withdrawal_amount_positive'
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_withdrawal_requests_account_id', 'withdrawal_requests',
        ['account_id'], unique=False
    )
    op.create_index(
        'ix_withdrawal_requests_status', 'withdrawal_requests',
        ['status'], unique=False
    )


def downgrade() -> None:
    op.drop_index(
        'ix_withdrawal_requests_status', table_name='withdrawal_requests'
    )
    op.drop_index(
        'ix_withdrawal_requests_account_id', table_name='withdrawal_requests'
    )
    op.drop_table('withdrawal_requests')
    op.drop_index(
        'ix_commission_credits_ancestor_id', table_name='commission_credits'
    )
    op.drop_index(
        'ix_commission_credits_event_id', table_name='commission_credits'
    )
    op.drop_table('commission_credits')
    op.drop_index(
        'ix_commission_events_status', table_name='commission_events'
    )
    op.drop_index(
        'ix_commission_events_beneficiary_id', table_name='commission_events'
    )
    op.drop_index(
        'ix_commission_events_event_key', table_name='commission_events'
    )
    op.drop_table('commission_events')
    for column in reversed(ANCESTOR_COLUMNS):
        op.drop_index(f'ix_accounts_{column}', table_name='accounts')
    op.drop_index('ix_accounts_status', table_name='accounts')
    op.drop_index('ix_accounts_referral_code', table_name='accounts')
    op.drop_index('ix_accounts_email', table_name='accounts')
    op.drop_table('accounts')
