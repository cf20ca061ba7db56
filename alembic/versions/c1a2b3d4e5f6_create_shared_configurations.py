"""create profiles and shared_configurations tables

Revision ID: c1a2b3d4e5f6
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'c1a2b3d4e5f6'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'profiles',
        sa.Column('id', postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column('username', sa.Text(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username'),
        schema='public'
    )

    # Public share links; short_code uniqueness is enforced here, not in the app
    op.create_table(
        'shared_configurations',
        sa.Column('id', postgresql.UUID(as_uuid=False), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('short_code', sa.String(length=8), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column('username', sa.Text(), nullable=True),
        sa.Column('map_type', sa.Text(), nullable=False),
        sa.Column('parameters', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('view_count', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('short_code', name='shared_configurations_short_code_unique'),
        sa.CheckConstraint('expires_at > created_at', name='chk_shared_configurations_expires_after_created'),
        sa.ForeignKeyConstraint(['user_id'], ['public.profiles.id'], ondelete='CASCADE'),
        schema='public'
    )
    # Quota window read: WHERE user_id = ? AND created_at >= ?
    op.create_index(
        'shared_configurations_user_created_at_idx',
        'shared_configurations',
        ['user_id', 'created_at'],
        schema='public'
    )
    # Expired-share purge
    op.create_index(
        'shared_configurations_expires_at_idx',
        'shared_configurations',
        ['expires_at'],
        schema='public'
    )


def downgrade() -> None:
    op.drop_index('shared_configurations_expires_at_idx', table_name='shared_configurations', schema='public')
    op.drop_index('shared_configurations_user_created_at_idx', table_name='shared_configurations', schema='public')
    op.drop_table('shared_configurations', schema='public')
    op.drop_table('profiles', schema='public')
