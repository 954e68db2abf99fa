"""Create leitner_card table

Revision ID: 001_create_leitner_card
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_create_leitner_card'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """
    Create leitner_card table holding one scheduled word per owner.
    """
    op.create_table(
        'leitner_card',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('word', sa.String(length=32), nullable=False),
        sa.Column('meaning', sa.String(length=300), nullable=True),
        sa.Column('notes', sa.String(length=500), nullable=True),
        sa.Column('source_word_ref', sa.String(), nullable=True),
        sa.Column('source_level_ref', sa.String(), nullable=True),
        sa.Column('stage', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('next_review_at', sa.DateTime(), nullable=False),
        sa.Column('last_reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('last_result', sa.String(), nullable=True),
        sa.Column('repetitions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('successful_reviews', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('failed_reviews', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='leitner_card_pkey'),
        sa.UniqueConstraint('owner_id', 'word', name='uq_leitner_card_owner_word'),
        sa.CheckConstraint('stage BETWEEN 1 AND 5', name='leitner_card_stage_check'),
        sa.CheckConstraint(
            "last_result IS NULL OR last_result IN ('success', 'fail')",
            name='leitner_card_last_result_check'
        ),
    )

    # Indexes for owner-scoped queries
    op.create_index(op.f('ix_leitner_card_owner_id'), 'leitner_card', ['owner_id'], unique=False)
    op.create_index('ix_leitner_card_owner_next_review', 'leitner_card', ['owner_id', 'next_review_at'], unique=False)
    op.create_index('ix_leitner_card_owner_stage', 'leitner_card', ['owner_id', 'stage'], unique=False)


def downgrade() -> None:
    """
    Drop leitner_card table.
    """
    op.drop_index('ix_leitner_card_owner_stage', table_name='leitner_card')
    op.drop_index('ix_leitner_card_owner_next_review', table_name='leitner_card')
    op.drop_index(op.f('ix_leitner_card_owner_id'), table_name='leitner_card')
    op.drop_table('leitner_card')
