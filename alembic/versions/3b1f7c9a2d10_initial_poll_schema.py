"""Initial poll schema: users, polls, options and votes

Revision ID: 3b1f7c9a2d10
Revises:
Create Date: 2026-10-17 09:00:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.schema import CreateSequence, DropSequence, Sequence as SQLASequence

revision: str = '3b1f7c9a2d10'
down_revision: Union[str, Sequence, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.execute(CreateSequence(SQLASequence('id_seq', start=1000)))

    op.create_table('users',
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=100), nullable=True),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('id', sa.Integer(), server_default=sa.text("nextval('id_seq')"), nullable=False),
        sa.Column('uuid', sa.UUID(), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('uuid'),
    )

    op.create_table('poll',
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('creator_id', sa.Integer(), nullable=False),
        sa.Column('is_public', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('allow_multiple_votes', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('version_id', sa.Integer(), server_default='1', nullable=False),
        sa.Column('id', sa.Integer(), server_default=sa.text("nextval('id_seq')"), nullable=False),
        sa.Column('uuid', sa.UUID(), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.CheckConstraint('char_length(title) >= 3 AND char_length(title) <= 200', name='ck_poll_title_length'),
        sa.ForeignKeyConstraint(['creator_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
    )
    op.create_index('ix_poll_creator_id', 'poll', ['creator_id'])
    op.create_index('ix_poll_is_public', 'poll', ['is_public'])
    op.create_index('ix_poll_expires_at', 'poll', ['expires_at'], postgresql_where=sa.text('expires_at IS NOT NULL'))

    op.create_table('poll_options',
        sa.Column('poll_id', sa.Integer(), nullable=False),
        sa.Column('text', sa.String(length=200), nullable=False),
        sa.Column('vote_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('order_index', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('id', sa.Integer(), server_default=sa.text("nextval('id_seq')"), nullable=False),
        sa.Column('uuid', sa.UUID(), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.CheckConstraint('vote_count >= 0', name='ck_poll_options_vote_count_non_negative'),
        sa.ForeignKeyConstraint(['poll_id'], ['poll.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('poll_id', 'order_index', name='uq_poll_options_poll_order'),
        sa.UniqueConstraint('uuid'),
    )
    op.create_index('ix_poll_options_poll_id', 'poll_options', ['poll_id'])

    op.create_table('votes',
        sa.Column('poll_id', sa.Integer(), nullable=False),
        sa.Column('option_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('id', sa.Integer(), server_default=sa.text("nextval('id_seq')"), nullable=False),
        sa.Column('uuid', sa.UUID(), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.ForeignKeyConstraint(['poll_id'], ['poll.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['option_id'], ['poll_options.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('poll_id', 'user_id', 'option_id', name='uq_votes_poll_user_option'),
        sa.UniqueConstraint('uuid'),
    )
    op.create_index('ix_votes_poll_id', 'votes', ['poll_id'])
    op.create_index('ix_votes_user_id', 'votes', ['user_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_votes_user_id', table_name='votes')
    op.drop_index('ix_votes_poll_id', table_name='votes')
    op.drop_table('votes')
    op.drop_index('ix_poll_options_poll_id', table_name='poll_options')
    op.drop_table('poll_options')
    op.drop_index('ix_poll_expires_at', table_name='poll')
    op.drop_index('ix_poll_is_public', table_name='poll')
    op.drop_index('ix_poll_creator_id', table_name='poll')
    op.drop_table('poll')
    op.drop_table('users')

    op.execute(DropSequence(SQLASequence('id_seq')))
