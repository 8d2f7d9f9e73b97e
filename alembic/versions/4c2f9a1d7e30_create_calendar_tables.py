"""create calendar connection and event tables

Revision ID: 4c2f9a1d7e30
Revises:
Create Date: 2026-02-14 18:22:41.508113

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '4c2f9a1d7e30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    # 1. Create user_calendar_connections table
    op.create_table(
        'user_calendar_connections',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('provider', sa.String(20), nullable=False),
        sa.Column('provider_user_id', sa.String(255), nullable=True),
        sa.Column('access_token_encrypted', sa.Text, nullable=False),
        sa.Column('access_token_iv', sa.String(32), nullable=True),
        sa.Column('refresh_token_encrypted', sa.Text, nullable=True),
        sa.Column('refresh_token_iv', sa.String(32), nullable=True),
        sa.Column('token_expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('calendar_id', sa.String(255), nullable=False),
        sa.Column('calendar_email', sa.String(255), nullable=True),
        sa.Column('calendar_name', sa.String(255), nullable=True),
        sa.Column('connected_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_refresh_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.UniqueConstraint('user_id', 'provider', name='uq_calendar_connection_user_provider'),
        sa.CheckConstraint("provider IN ('google', 'microsoft')", name='ck_calendar_connection_provider'),
    )

    # Indexes for user_calendar_connections
    op.create_index('ix_user_calendar_connections_user_id', 'user_calendar_connections', ['user_id'])
    op.create_index('ix_user_calendar_connections_provider', 'user_calendar_connections', ['provider'])
    op.create_index('idx_calendar_connections_expiry', 'user_calendar_connections', ['token_expires_at'])

    # 2. Create calendar_events table
    op.create_table(
        'calendar_events',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('resource_id', sa.String(255), nullable=False),
        sa.Column('provider', sa.String(20), nullable=False),
        sa.Column('external_event_id', sa.String(1024), nullable=False),
        sa.Column('calendar_id', sa.String(255), nullable=False),
        sa.Column('event_title', sa.Text, nullable=False),
        sa.Column('event_start', sa.DateTime(timezone=True), nullable=False),
        sa.Column('event_end', sa.DateTime(timezone=True), nullable=False),
        sa.Column('event_notes', sa.Text, nullable=True),
        sa.Column('event_url', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.UniqueConstraint('provider', 'external_event_id', name='uq_calendar_event_provider_external_id'),
        sa.CheckConstraint("provider IN ('google', 'microsoft')", name='ck_calendar_event_provider'),
    )

    # Indexes for calendar_events
    op.create_index('ix_calendar_events_user_id', 'calendar_events', ['user_id'])
    op.create_index('ix_calendar_events_resource_id', 'calendar_events', ['resource_id'])
    op.create_index('ix_calendar_events_created_at', 'calendar_events', ['created_at'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_calendar_events_created_at', table_name='calendar_events')
    op.drop_index('ix_calendar_events_resource_id', table_name='calendar_events')
    op.drop_index('ix_calendar_events_user_id', table_name='calendar_events')
    op.drop_table('calendar_events')

    op.drop_index('idx_calendar_connections_expiry', table_name='user_calendar_connections')
    op.drop_index('ix_user_calendar_connections_provider', table_name='user_calendar_connections')
    op.drop_index('ix_user_calendar_connections_user_id', table_name='user_calendar_connections')
    op.drop_table('user_calendar_connections')
