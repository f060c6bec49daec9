"""create_billing_sync_tables

Revision ID: 3f9c1a7e2b10
Revises:
Create Date: 2026-10-19 09:12:44.318205

Tables:
- accounts: registered principals with subscription state and the daily usage window
- applied_events: idempotency ledger, one row per provider event id
- payment_records: payment history from invoices and paid checkouts
- subscription_events: audit trail of applied subscription events
- usage_ledger: one row per allowed usage consumption
- anonymous_usage_counters: daily counters for anonymous principals, keyed by (key, date)
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f9c1a7e2b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create billing sync tables with indexes and constraints."""

    op.create_table(
        'accounts',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('is_registered', sa.Boolean(), nullable=False, server_default='true'),

        # Provider linkage
        sa.Column('external_customer_id', sa.String(255), nullable=True),
        sa.Column('external_subscription_id', sa.String(255), nullable=True),

        # Subscription state (tier is derived, not stored)
        sa.Column('subscription_status', sa.String(50), nullable=False, server_default='none'),
        sa.Column('current_period_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancel_at_period_end', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('subscription_event_at', sa.DateTime(timezone=True), nullable=True),

        # Daily quota window
        sa.Column('daily_usage_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('usage_window_start', sa.Date(), nullable=True),

        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),

        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('daily_usage_count >= 0', name='ck_accounts_daily_usage_non_negative'),
    )
    op.create_index('ix_accounts_email', 'accounts', ['email'])
    op.create_index('ix_accounts_external_customer_id', 'accounts', ['external_customer_id'], unique=True)
    op.create_index('ix_accounts_external_subscription_id', 'accounts', ['external_subscription_id'])
    op.create_index('ix_accounts_subscription_status', 'accounts', ['subscription_status'])
    op.create_index('idx_accounts_status_window', 'accounts', ['subscription_status', 'usage_window_start'])

    op.create_table(
        'applied_events',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('event_id', sa.String(255), nullable=False),
        sa.Column('event_type', sa.String(100), nullable=False),
        sa.Column('outcome', sa.String(50), nullable=False),
        sa.Column('account_id', sa.String(64), nullable=True),
        sa.Column('applied_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_applied_events_event_id', 'applied_events', ['event_id'], unique=True)
    op.create_index('ix_applied_events_event_type', 'applied_events', ['event_type'])
    op.create_index('ix_applied_events_account_id', 'applied_events', ['account_id'])

    op.create_table(
        'payment_records',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('account_id', sa.String(64), nullable=False),
        sa.Column('event_id', sa.String(255), nullable=False),
        sa.Column('invoice_id', sa.String(255), nullable=True),
        sa.Column('payment_intent_id', sa.String(255), nullable=True),
        sa.Column('subscription_id', sa.String(255), nullable=True),
        sa.Column('amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_payment_records_account_id', 'payment_records', ['account_id'])
    op.create_index('ix_payment_records_event_id', 'payment_records', ['event_id'])
    op.create_index('ix_payment_records_invoice_id', 'payment_records', ['invoice_id'])
    op.create_index('ix_payment_records_created_at', 'payment_records', ['created_at'])

    op.create_table(
        'subscription_events',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('account_id', sa.String(64), nullable=False),
        sa.Column('event_id', sa.String(255), nullable=False),
        sa.Column('event_type', sa.String(100), nullable=False),
        sa.Column('old_status', sa.String(50), nullable=True),
        sa.Column('new_status', sa.String(50), nullable=True),
        sa.Column('subscription_id', sa.String(255), nullable=True),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='{}'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_subscription_events_account_id', 'subscription_events', ['account_id'])
    op.create_index('idx_subscription_events_account_date', 'subscription_events', ['account_id', 'created_at'])

    # High volume, append-only
    op.create_table(
        'usage_ledger',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('principal_kind', sa.String(20), nullable=False),
        sa.Column('principal_key', sa.String(255), nullable=False),
        sa.Column('calculator_kind', sa.String(100), nullable=False),
        sa.Column('input_metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='{}'),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_usage_ledger_calculator_kind', 'usage_ledger', ['calculator_kind'])
    op.create_index('ix_usage_ledger_occurred_at', 'usage_ledger', ['occurred_at'])
    op.create_index('idx_usage_ledger_principal_date', 'usage_ledger', ['principal_key', 'occurred_at'])

    op.create_table(
        'anonymous_usage_counters',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('principal_key', sa.String(255), nullable=False),
        sa.Column('usage_date', sa.Date(), nullable=False),
        sa.Column('usage_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('principal_key', 'usage_date', name='uq_anonymous_usage_key_date'),
    )


def downgrade() -> None:
    """Drop billing sync tables."""
    op.drop_table('anonymous_usage_counters')
    op.drop_table('usage_ledger')
    op.drop_table('subscription_events')
    op.drop_table('payment_records')
    op.drop_table('applied_events')
    op.drop_table('accounts')
