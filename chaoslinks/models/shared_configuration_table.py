# chaoslinks/models/shared_configuration_table.py
# Model for public share links of chaos map configurations

from sqlalchemy import (
    Table, Column, Text, String, Integer, TIMESTAMP, Index,
    ForeignKey, UniqueConstraint, CheckConstraint, text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID

from chaoslinks.constants import SHARE_CODE_LENGTH, SHORT_CODE_CONSTRAINT
from chaoslinks.db.base import metadata


shared_configurations = Table(
    'shared_configurations',
    metadata,
    Column('id', UUID(as_uuid=False), primary_key=True, server_default=text('gen_random_uuid()')),
    Column('short_code', String(SHARE_CODE_LENGTH), nullable=False),
    # owner deletion cascades to their shares
    Column('user_id', UUID(as_uuid=False), ForeignKey('public.profiles.id', ondelete='CASCADE'), nullable=False),
    Column('username', Text, nullable=True),  # attribution shown to viewers
    Column('map_type', Text, nullable=False),
    Column('parameters', JSONB, nullable=False),
    Column('view_count', Integer, nullable=False, server_default=text('0')),
    Column('created_at', TIMESTAMP(timezone=True), nullable=False, server_default=text('now()')),
    Column('expires_at', TIMESTAMP(timezone=True), nullable=False),
    UniqueConstraint('short_code', name=SHORT_CODE_CONSTRAINT),
    CheckConstraint('expires_at > created_at', name='chk_shared_configurations_expires_after_created'),
    Index('shared_configurations_user_created_at_idx', 'user_id', 'created_at'),
    Index('shared_configurations_expires_at_idx', 'expires_at'),
    schema='public',
)
