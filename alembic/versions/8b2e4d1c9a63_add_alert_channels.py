"""Add alert channels table

Revision ID: 8b2e4d1c9a63
Revises: 3f9c1a2b7d40
Create Date: 2026-10-26 14:03:18.552091

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '8b2e4d1c9a63'
down_revision: Union[str, Sequence[str], None] = '3f9c1a2b7d40'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the alert_channels table."""
    op.create_table(
        'alert_channels',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('monitor_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False, default='webhook'),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('enabled', sa.Boolean(), nullable=False, default=True),
        sa.Column('config', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['monitor_id'], ['monitors.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_alert_channels_monitor_id', 'alert_channels', ['monitor_id'], unique=False)


def downgrade() -> None:
    """Drop the alert_channels table."""
    op.drop_index('ix_alert_channels_monitor_id', table_name='alert_channels')
    op.drop_table('alert_channels')
