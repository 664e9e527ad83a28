"""Reviews - post-completion ratings between participants

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = '0002'
down_revision: Union[str, None] = '0001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'reviews',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('exchange_id', sa.Uuid(), sa.ForeignKey('exchanges.id', ondelete='CASCADE'), nullable=False),
        sa.Column('reviewer_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('reviewee_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('comment', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('exchange_id', 'reviewer_id', name='uq_reviews_exchange_reviewer'),
    )
    op.create_index('ix_reviews_reviewee', 'reviews', ['reviewee_id'])


def downgrade() -> None:
    op.drop_index('ix_reviews_reviewee', table_name='reviews')
    op.drop_table('reviews')
