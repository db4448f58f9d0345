"""Initial schema for monitors, incidents, pings and status groups

Revision ID: 3f9c1a2b7d40
Revises: 
Create Date: 2026-10-19 09:12:44.301127

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3f9c1a2b7d40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables for CronGuard."""

    # Create monitors table
    op.create_table(
        'monitors',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('owner_id', sa.String(length=128), nullable=True),
        sa.Column('team_id', sa.String(length=128), nullable=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('slug', sa.String(length=160), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, default='PENDING'),
        sa.Column('expected_interval', sa.Integer(), nullable=False),
        sa.Column('grace_period', sa.Integer(), nullable=False, default=300),
        sa.Column('last_ping_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('next_expected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_duration_ms', sa.Integer(), nullable=True),
        sa.Column('webhook_url', sa.Text(), nullable=True),
        sa.Column('timezone', sa.String(length=64), nullable=False, default='UTC'),
        sa.Column('status_page_enabled', sa.Boolean(), nullable=False, default=False),
        sa.Column('status_page_title', sa.String(length=100), nullable=True),
        sa.Column('status_page_description', sa.Text(), nullable=True),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delete_after', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_monitors_owner_id', 'monitors', ['owner_id'], unique=False)
    op.create_index('ix_monitors_team_id', 'monitors', ['team_id'], unique=False)
    op.create_index('ix_monitors_slug', 'monitors', ['slug'], unique=True)
    op.create_index('ix_monitors_status', 'monitors', ['status'], unique=False)
    op.create_index('ix_monitors_next_expected_at', 'monitors', ['next_expected_at'], unique=False)
    op.create_index('ix_monitors_delete_after', 'monitors', ['delete_after'], unique=False)

    # Create incidents table
    op.create_table(
        'incidents',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('monitor_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('type', sa.String(length=20), nullable=False, default='missed'),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('duration_ms', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['monitor_id'], ['monitors.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_incidents_monitor_id', 'incidents', ['monitor_id'], unique=False)
    op.create_index('ix_incidents_started_at', 'incidents', ['started_at'], unique=False)

    # Create pings table
    op.create_table(
        'pings',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('monitor_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False, default='success'),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('duration_ms', sa.Integer(), nullable=True),
        sa.Column('ip_address', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['monitor_id'], ['monitors.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_pings_monitor_id', 'pings', ['monitor_id'], unique=False)
    op.create_index('ix_pings_received_at', 'pings', ['received_at'], unique=False)

    # Create status_groups table
    op.create_table(
        'status_groups',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('owner_id', sa.String(length=128), nullable=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('slug', sa.String(length=160), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('custom_title', sa.String(length=100), nullable=True),
        sa.Column('custom_description', sa.Text(), nullable=True),
        sa.Column('enabled', sa.Boolean(), nullable=False, default=True),
        sa.Column('monitor_ids', postgresql.JSONB(astext_type=sa.Text()), nullable=False, default=[]),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_status_groups_owner_id', 'status_groups', ['owner_id'], unique=False)
    op.create_index('ix_status_groups_slug', 'status_groups', ['slug'], unique=True)


def downgrade() -> None:
    """Drop all tables in reverse order."""
    op.drop_index('ix_status_groups_slug', table_name='status_groups')
    op.drop_index('ix_status_groups_owner_id', table_name='status_groups')
    op.drop_table('status_groups')
    op.drop_index('ix_pings_received_at', table_name='pings')
    op.drop_index('ix_pings_monitor_id', table_name='pings')
    op.drop_table('pings')
    op.drop_index('ix_incidents_started_at', table_name='incidents')
    op.drop_index('ix_incidents_monitor_id', table_name='incidents')
    op.drop_table('incidents')
    op.drop_index('ix_monitors_delete_after', table_name='monitors')
    op.drop_index('ix_monitors_next_expected_at', table_name='monitors')
    op.drop_index('ix_monitors_status', table_name='monitors')
    op.drop_index('ix_monitors_slug', table_name='monitors')
    op.drop_index('ix_monitors_team_id', table_name='monitors')
    op.drop_index('ix_monitors_owner_id', table_name='monitors')
    op.drop_table('monitors')
