"""add connection sync_started_at

Revision ID: 8e4d21f0b6a3
Revises: 3c1a7e52d9b4
Create Date: 2026-10-20 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8e4d21f0b6a3'
down_revision: Union[str, Sequence[str], None] = '3c1a7e52d9b4'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    from sqlalchemy import inspect as sa_inspect
    conn = op.get_bind()
    existing = [c['name'] for c in sa_inspect(conn).get_columns('connections')]

    if 'sync_started_at' not in existing:
        op.add_column('connections', sa.Column('sync_started_at', sa.DateTime(), nullable=True))
    # Claims taken before this column existed have no timestamp and are
    # treated as abandoned by the next sync.


def downgrade() -> None:
    """Downgrade schema."""
    from sqlalchemy import inspect as sa_inspect
    conn = op.get_bind()
    existing = [c['name'] for c in sa_inspect(conn).get_columns('connections')]
    if 'sync_started_at' in existing:
        op.drop_column('connections', 'sync_started_at')
