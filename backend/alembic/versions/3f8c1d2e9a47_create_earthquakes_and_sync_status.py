"""create_earthquakes_and_sync_status

Revision ID: 3f8c1d2e9a47
Revises:
Create Date: 2026-01-12 09:41:27.518204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f8c1d2e9a47'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create earthquakes and sync_status tables."""
    op.create_table(
        'earthquakes',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('source', sa.Text(), nullable=False),
        sa.Column('source_event_id', sa.Text(), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('depth_km', sa.Float(), nullable=True),
        sa.Column('magnitude', sa.Float(), nullable=False),
        sa.Column('magnitude_type', sa.String(length=16), nullable=True),
        sa.Column('place', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=True),
        sa.Column('tsunami_warning', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('felt_reports', sa.Integer(), nullable=True),
        sa.Column('cdi', sa.Float(), nullable=True),
        sa.Column('mmi', sa.Float(), nullable=True),
        sa.Column('alert', sa.String(length=16), nullable=True),
        sa.Column('canonical_event_id', sa.BigInteger(), nullable=True),
        sa.Column('is_canonical', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'idx_earthquakes_source_unique',
        'earthquakes',
        ['source', 'source_event_id'],
        unique=True,
    )
    op.create_index('idx_earthquakes_magnitude', 'earthquakes', ['magnitude'])
    op.create_index(
        'idx_earthquakes_time_mag',
        'earthquakes',
        [sa.text('time DESC'), sa.text('magnitude DESC')],
    )

    op.create_table(
        'sync_status',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('source', sa.Text(), nullable=False),
        sa.Column('last_sync_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_event_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('events_synced', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_sync_status_created', 'sync_status', ['created_at'])


def downgrade() -> None:
    """Drop earthquakes and sync_status tables."""
    op.drop_index('idx_sync_status_created', table_name='sync_status')
    op.drop_table('sync_status')
    op.drop_index('idx_earthquakes_time_mag', table_name='earthquakes')
    op.drop_index('idx_earthquakes_magnitude', table_name='earthquakes')
    op.drop_index('idx_earthquakes_source_unique', table_name='earthquakes')
    op.drop_table('earthquakes')
