"""initial sync schema

Revision ID: 3c1a7e52d9b4
Revises:
Create Date: 2026-10-19 10:12:41.228406

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1a7e52d9b4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('families',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('name', sa.String(), nullable=False),
    sa.Column('currency', sa.String(length=3), nullable=False),
    sa.Column('auto_categorize_enabled', sa.Boolean(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_table('connections',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('family_id', sa.String(length=36), nullable=False),
    sa.Column('name', sa.String(), nullable=False),
    sa.Column('session_token', sa.Text(), nullable=False),
    sa.Column('external_id', sa.String(), nullable=True),
    sa.Column('status', sa.String(), nullable=False),
    sa.Column('sync_state', sa.String(), nullable=False),
    sa.Column('last_synced_at', sa.DateTime(), nullable=True),
    sa.Column('scheduled_for_deletion', sa.Boolean(), nullable=False),
    sa.Column('institution_id', sa.String(), nullable=True),
    sa.Column('institution_name', sa.String(), nullable=True),
    sa.Column('institution_url', sa.String(), nullable=True),
    sa.Column('institution_color', sa.String(), nullable=True),
    sa.Column('raw_institution_payload', sa.JSON(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=True),
    sa.Column('updated_at', sa.DateTime(), nullable=True),
    sa.ForeignKeyConstraint(['family_id'], ['families.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_connections_family_id'), 'connections', ['family_id'], unique=False)
    op.create_index(op.f('ix_connections_external_id'), 'connections', ['external_id'], unique=False)
    op.create_table('ledger_accounts',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('family_id', sa.String(length=36), nullable=False),
    sa.Column('name', sa.String(), nullable=False),
    sa.Column('mask', sa.String(length=4), nullable=True),
    sa.Column('institution_name', sa.String(), nullable=True),
    sa.Column('currency', sa.String(length=3), nullable=False),
    sa.Column('account_kind', sa.String(), nullable=False),
    sa.Column('kind_details', sa.JSON(), nullable=False),
    sa.Column('balance_minor_units', sa.BigInteger(), nullable=True),
    sa.Column('external_id', sa.String(), nullable=True),
    sa.Column('provider', sa.String(), nullable=True),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.Column('last_synced_at', sa.DateTime(), nullable=True),
    sa.Column('sync_error', sa.Text(), nullable=True),
    sa.Column('sync_error_at', sa.DateTime(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=True),
    sa.Column('updated_at', sa.DateTime(), nullable=True),
    sa.ForeignKeyConstraint(['family_id'], ['families.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_ledger_accounts_family_id'), 'ledger_accounts', ['family_id'], unique=False)
    op.create_table('merchants',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('family_id', sa.String(length=36), nullable=False),
    sa.Column('name', sa.String(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=True),
    sa.ForeignKeyConstraint(['family_id'], ['families.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('family_id', 'name', name='uix_merchant_family_name')
    )
    op.create_index(op.f('ix_merchants_family_id'), 'merchants', ['family_id'], unique=False)
    op.create_table('external_account_snapshots',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('connection_id', sa.String(length=36), nullable=False),
    sa.Column('external_account_id', sa.String(), nullable=False),
    sa.Column('ledger_account_id', sa.String(length=36), nullable=True),
    sa.Column('raw_payload', sa.JSON(), nullable=False),
    sa.Column('last_synced_at', sa.DateTime(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=True),
    sa.ForeignKeyConstraint(['connection_id'], ['connections.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['ledger_account_id'], ['ledger_accounts.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('connection_id', 'external_account_id', name='uix_snapshot_connection_external')
    )
    op.create_index(op.f('ix_external_account_snapshots_connection_id'), 'external_account_snapshots', ['connection_id'], unique=False)
    op.create_index(op.f('ix_external_account_snapshots_ledger_account_id'), 'external_account_snapshots', ['ledger_account_id'], unique=False)
    op.create_table('imported_transactions',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('ledger_account_id', sa.String(length=36), nullable=False),
    sa.Column('external_id', sa.String(), nullable=False),
    sa.Column('amount_minor_units', sa.BigInteger(), nullable=False),
    sa.Column('currency', sa.String(length=3), nullable=False),
    sa.Column('date', sa.Date(), nullable=False),
    sa.Column('description', sa.String(), nullable=False),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.Column('category', sa.String(), nullable=False),
    sa.Column('merchant_id', sa.String(length=36), nullable=True),
    sa.Column('provider', sa.String(), nullable=True),
    sa.Column('raw_payload', sa.JSON(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=True),
    sa.ForeignKeyConstraint(['ledger_account_id'], ['ledger_accounts.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['merchant_id'], ['merchants.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('ledger_account_id', 'external_id', name='uix_transaction_account_external')
    )
    op.create_index(op.f('ix_imported_transactions_ledger_account_id'), 'imported_transactions', ['ledger_account_id'], unique=False)
    op.create_table('account_balances',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('ledger_account_id', sa.String(length=36), nullable=False),
    sa.Column('date', sa.Date(), nullable=False),
    sa.Column('balance_minor_units', sa.BigInteger(), nullable=False),
    sa.Column('currency', sa.String(length=3), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=True),
    sa.Column('updated_at', sa.DateTime(), nullable=True),
    sa.ForeignKeyConstraint(['ledger_account_id'], ['ledger_accounts.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('ledger_account_id', 'date', name='uix_balance_account_date')
    )
    op.create_index(op.f('ix_account_balances_ledger_account_id'), 'account_balances', ['ledger_account_id'], unique=False)
    op.create_table('sync_runs',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('connection_id', sa.String(length=36), nullable=False),
    sa.Column('status', sa.String(), nullable=False),
    sa.Column('started_at', sa.DateTime(), nullable=False),
    sa.Column('completed_at', sa.DateTime(), nullable=True),
    sa.Column('error_message', sa.Text(), nullable=True),
    sa.Column('window_start', sa.Date(), nullable=True),
    sa.Column('window_end', sa.Date(), nullable=True),
    sa.Column('accounts_imported', sa.Integer(), nullable=True),
    sa.Column('transactions_imported', sa.Integer(), nullable=True),
    sa.ForeignKeyConstraint(['connection_id'], ['connections.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_sync_runs_connection_id'), 'sync_runs', ['connection_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_sync_runs_connection_id'), table_name='sync_runs')
    op.drop_table('sync_runs')
    op.drop_index(op.f('ix_account_balances_ledger_account_id'), table_name='account_balances')
    op.drop_table('account_balances')
    op.drop_index(op.f('ix_imported_transactions_ledger_account_id'), table_name='imported_transactions')
    op.drop_table('imported_transactions')
    op.drop_index(op.f('ix_external_account_snapshots_ledger_account_id'), table_name='external_account_snapshots')
    op.drop_index(op.f('ix_external_account_snapshots_connection_id'), table_name='external_account_snapshots')
    op.drop_table('external_account_snapshots')
    op.drop_index(op.f('ix_merchants_family_id'), table_name='merchants')
    op.drop_table('merchants')
    op.drop_index(op.f('ix_ledger_accounts_family_id'), table_name='ledger_accounts')
    op.drop_table('ledger_accounts')
    op.drop_index(op.f('ix_connections_external_id'), table_name='connections')
    op.drop_index(op.f('ix_connections_family_id'), table_name='connections')
    op.drop_table('connections')
    op.drop_table('families')
