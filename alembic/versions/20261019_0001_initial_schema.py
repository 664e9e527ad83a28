"""Initial schema - users, skills, exchanges, negotiation, disputes, audit log

Revision ID: 0001
Revises: 
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Users table
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('supabase_id', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('email', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('name', sa.String(60), nullable=False),
        sa.Column('avatar_url', sa.String(1000), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('location', sa.String(100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_active', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rating', sa.Float(), nullable=False, server_default='0'),
        sa.Column('review_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('successful_exchanges', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('disputes_handled', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_admin_activity', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    # Skills table
    op.create_table(
        'skills',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('owner_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('owner_supabase_id', sa.String(255), nullable=False, index=True),
        sa.Column('title', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('category', sa.String(50), nullable=False, index=True),
        sa.Column('level', sa.String(50), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('location', sa.String(100), nullable=True),
        sa.Column('delivery_method', sa.String(50), nullable=False, server_default='Both'),
        sa.Column('estimated_duration', sa.String(100), nullable=True),
        sa.Column('is_available', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('exchange_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('view_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    # Exchanges table
    op.create_table(
        'exchanges',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('reference', sa.String(64), unique=True, nullable=False),
        sa.Column('initiator_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('initiator_supabase_id', sa.String(255), nullable=False, index=True),
        sa.Column('recipient_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('recipient_supabase_id', sa.String(255), nullable=False, index=True),
        sa.Column('exchange_type', sa.String(50), nullable=False),
        sa.Column('status', sa.String(50), nullable=False, server_default='pending'),
        sa.Column('initiator_accepted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('recipient_accepted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('initiator_accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('recipient_accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('fully_accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('negotiation_completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('negotiation_completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('has_dispute', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status_changed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_exchanges_pair', 'exchanges', ['initiator_supabase_id', 'recipient_supabase_id'])

    # One offer per side of an exchange
    op.create_table(
        'exchange_offers',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('exchange_id', sa.Uuid(), sa.ForeignKey('exchanges.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('side', sa.String(20), nullable=False),
        sa.Column('offer_type', sa.String(20), nullable=False, server_default='skill'),
        sa.Column('skill_id', sa.Uuid(), sa.ForeignKey('skills.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('skill_title', sa.String(100), nullable=True),
        sa.Column('monetary_amount', sa.Float(), nullable=True),
        sa.Column('currency', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('estimated_hours', sa.Float(), nullable=True),
        sa.Column('delivery_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivery_method', sa.String(50), nullable=True),
        sa.UniqueConstraint('exchange_id', 'side', name='uq_exchange_offers_side'),
    )

    # Negotiation sessions table
    op.create_table(
        'negotiation_sessions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('exchange_id', sa.Uuid(), sa.ForeignKey('exchanges.id', ondelete='CASCADE'), unique=True, nullable=False),
        sa.Column('initiator_description', sa.String(500), nullable=True),
        sa.Column('recipient_description', sa.String(500), nullable=True),
        sa.Column('initiator_skill_id', sa.Uuid(), nullable=True),
        sa.Column('recipient_skill_id', sa.Uuid(), nullable=True),
        sa.Column('initiator_hours', sa.Float(), nullable=False, server_default='0'),
        sa.Column('recipient_hours', sa.Float(), nullable=False, server_default='0'),
        sa.Column('deadline', sa.DateTime(timezone=True), nullable=True),
        sa.Column('amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('payment_timeline', sa.String(20), nullable=False, server_default='completion'),
        sa.Column('method', sa.String(20), nullable=False, server_default='flexible'),
        sa.Column('initiator_agreed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('recipient_agreed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('initiator_agreed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('recipient_agreed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('execution_started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('contact_shared', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('status', sa.String(20), nullable=False, server_default='drafting', index=True),
        sa.Column('stats_updated', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_modified_by', sa.String(255), nullable=True),
        *_timestamps(),
    )

    # Deliverables table
    op.create_table(
        'deliverables',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('negotiation_id', sa.Uuid(), sa.ForeignKey('negotiation_sessions.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('side', sa.String(20), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('confirmed_by', sa.Uuid(), nullable=True),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('dispute_raised', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('dispute_reason', sa.String(1000), nullable=True),
    )

    # Disputes table
    op.create_table(
        'disputes',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('reference', sa.String(64), unique=True, nullable=False),
        sa.Column('exchange_id', sa.Uuid(), sa.ForeignKey('exchanges.id', ondelete='CASCADE'), nullable=False),
        sa.Column('raised_by', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('evidence', sa.Text(), nullable=True),
        sa.Column('deliverable_side', sa.String(20), nullable=True),
        sa.Column('deliverable_position', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='open'),
        sa.Column('resolved_by', sa.Uuid(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('decision', sa.Text(), nullable=True),
        sa.Column('reasoning', sa.Text(), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_disputes_status_created', 'disputes', ['status', 'created_at'])
    op.create_index('ix_disputes_exchange', 'disputes', ['exchange_id'])
    op.create_index('ix_disputes_raised_by', 'disputes', ['raised_by'])

    # Event logs table (append-only)
    op.create_table(
        'event_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('event_type', sa.String(100), nullable=False, index=True),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False, index=True),
        sa.Column('user_id', sa.Uuid(), nullable=True, index=True),
        sa.Column('exchange_id', sa.Uuid(), nullable=True, index=True),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
    )
    op.create_index('ix_event_logs_entity', 'event_logs', ['entity_type', 'entity_id'])
    op.create_index('ix_event_logs_user_time', 'event_logs', ['user_id', 'created_at'])


def downgrade() -> None:
    op.drop_table('event_logs')
    op.drop_table('disputes')
    op.drop_table('deliverables')
    op.drop_table('negotiation_sessions')
    op.drop_table('exchange_offers')
    op.drop_table('exchanges')
    op.drop_table('skills')
    op.drop_table('users')
