"""
Schema configuration helper for Alembic migrations.

Migrations read the target schema from DB_SCHEMA so separate environments
(e.g. "journal" and "journal_test") can share one database.

Usage in migrations:
    from schema_config import get_schema

    def upgrade():
        schema = get_schema()
        op.create_table('my_table', ..., schema=schema)
"""
from voice_journal.config import settings


def get_schema() -> str:
    """Database schema name for migrations (DB_SCHEMA, default 'journal')."""
    return settings.DB_SCHEMA
