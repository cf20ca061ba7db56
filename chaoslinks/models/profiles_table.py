# chaoslinks/models/profiles_table.py
# Owner profiles, keyed by the auth provider's user id

from sqlalchemy import Table, Column, Text, TIMESTAMP, text
from sqlalchemy.dialects.postgresql import UUID

from chaoslinks.db.base import metadata


profiles = Table(
    'profiles',
    metadata,
    Column('id', UUID(as_uuid=False), primary_key=True),  # matches auth provider user id
    Column('username', Text, unique=True, nullable=False),
    Column('created_at', TIMESTAMP(timezone=True), nullable=False, server_default=text('now()')),
    Column('updated_at', TIMESTAMP(timezone=True), nullable=False, server_default=text('now()')),
    schema='public',
)
