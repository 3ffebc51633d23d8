"""create_users_and_entries

Revision ID: 3c5e7a91d2b4
Revises:
Create Date: 2025-07-01 10:12:44.318204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from schema_config import get_schema


# revision identifiers, used by Alembic.
revision: str = '3c5e7a91d2b4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    schema = get_schema()

    op.create_table('users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        schema=schema
    )
    op.create_index('idx_users_email', 'users', ['email'], unique=False, schema=schema)
    op.create_index('idx_users_is_active', 'users', ['is_active'], unique=False, schema=schema)

    op.create_table('entries',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(length=255), server_default='', nullable=False),
        sa.Column('original_audio_path', sa.Text(), nullable=False),
        sa.Column('processed_audio_path', sa.Text(), nullable=True),
        sa.Column('transcription', sa.Text(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], [f'{schema}.users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        schema=schema
    )
    op.create_index('idx_entries_user_id', 'entries', ['user_id'], unique=False, schema=schema)
    op.create_index('idx_entries_created_at', 'entries', ['created_at'], unique=False, schema=schema)


def downgrade() -> None:
    schema = get_schema()

    op.drop_index('idx_entries_created_at', table_name='entries', schema=schema)
    op.drop_index('idx_entries_user_id', table_name='entries', schema=schema)
    op.drop_table('entries', schema=schema)

    op.drop_index('idx_users_is_active', table_name='users', schema=schema)
    op.drop_index('idx_users_email', table_name='users', schema=schema)
    op.drop_table('users', schema=schema)
