"""Initial schema

Revision ID: 001_initial
Revises:
Create Date: 2025-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create initial database schema:
    - users table: Link owners
    - links table: Short code to destination mappings with click counter
    - analytics_events table: One row per recorded click
    """
    bind = op.get_bind()
    inspector = inspect(bind)
    existing_tables = inspector.get_table_names()

    if 'users' not in existing_tables:
        op.create_table(
            'users',
            sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
            sa.Column('email', sa.String(length=255), nullable=False),
            sa.Column('name', sa.String(length=100), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_users_email', 'users', ['email'], unique=True)

    if 'links' not in existing_tables:
        op.create_table(
            'links',
            sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
            sa.Column('short_code', sa.String(length=50), nullable=False),
            sa.Column('original_url', sa.Text(), nullable=False),
            sa.Column('custom_slug', sa.String(length=50), nullable=True),
            sa.Column('domain', sa.String(length=255), nullable=False),
            sa.Column('clicks', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
            sa.Column('tags', sa.Text(), nullable=False, server_default=''),
            sa.Column('user_id', sa.Integer(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint('id'),
            sqlite_autoincrement=True,
        )
        op.create_index('ix_links_short_code', 'links', ['short_code'], unique=True)
        op.create_index('ix_links_status', 'links', ['status'])
        op.create_index('ix_links_user_id', 'links', ['user_id'])
        op.create_index('ix_links_created_at', 'links', ['created_at'])

    if 'analytics_events' not in existing_tables:
        # link_id is deliberately not a foreign key: events of a deleted link
        # are kept when LINK_DELETE_CASCADE_ANALYTICS is disabled
        op.create_table(
            'analytics_events',
            sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
            sa.Column('link_id', sa.Integer(), nullable=False),
            sa.Column('short_code', sa.String(length=50), nullable=False),
            sa.Column('ip', sa.String(length=45), nullable=False, server_default=''),
            sa.Column('user_agent', sa.String(length=500), nullable=False, server_default=''),
            sa.Column('device', sa.String(length=16), nullable=False, server_default='unknown'),
            sa.Column('browser', sa.String(length=100), nullable=False, server_default='unknown'),
            sa.Column('os', sa.String(length=100), nullable=False, server_default='unknown'),
            sa.Column('country', sa.String(length=100), nullable=False, server_default='Unknown'),
            sa.Column('city', sa.String(length=100), nullable=False, server_default='Unknown'),
            sa.Column('referrer', sa.Text(), nullable=False, server_default=''),
            sa.Column('referrer_domain', sa.String(length=255), nullable=False, server_default='direct'),
            sa.Column('is_qr_scan', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('clicked_at', sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_analytics_events_link_id', 'analytics_events', ['link_id'])
        op.create_index('ix_analytics_events_short_code', 'analytics_events', ['short_code'])
        op.create_index('ix_analytics_events_clicked_at', 'analytics_events', ['clicked_at'])
        op.create_index(
            'ix_analytics_events_link_id_clicked_at',
            'analytics_events',
            ['link_id', 'clicked_at']
        )
        op.create_index(
            'ix_analytics_events_short_code_clicked_at',
            'analytics_events',
            ['short_code', 'clicked_at']
        )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('analytics_events')
    op.drop_table('links')
    op.drop_table('users')
