"""Initial migration - create all tables

Revision ID: 001_initial
Revises: None
Create Date: 2024-01-15

Creates all database tables read by the admin reporting service:
- users: Students and admins with self-reported and identity-provider fields
- game_sessions: Quiz attempts with score, timing and per-question answers
- financial_items: Quiz questions (soft-deleted via is_active)

Also creates indexes for the listing and aggregation query patterns.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Users Table ───────────────────────────────────────────
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('role', sa.String(16), nullable=False, server_default='student'),
        sa.Column('student_name', sa.Text(), nullable=True),
        sa.Column('student_id', sa.Text(), nullable=True),
        sa.Column('mobile_number', sa.Text(), nullable=True),
        sa.Column('external_auth_email', sa.Text(), nullable=True),
        sa.Column('external_auth_display_name', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_users_role_active', 'users', ['role', 'is_active'])
    op.create_index('ix_users_created_at', 'users', ['created_at'])

    # ── Game Sessions Table ───────────────────────────────────
    op.create_table(
        'game_sessions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_questions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('percentage', sa.Float(), nullable=False, server_default='0'),
        sa.Column('time_taken_seconds', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('start_time', sa.DateTime(), nullable=True),
        sa.Column('end_time', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='in_progress'),
        sa.Column('accuracy', sa.Float(), nullable=True),
        sa.Column('average_time_per_question', sa.Float(), nullable=True),
        sa.Column('feedback_text', sa.Text(), nullable=True),
        sa.Column('answers', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_game_sessions_user_id', 'game_sessions', ['user_id'])
    op.create_index('ix_game_sessions_status_level', 'game_sessions', ['status', 'level'])
    op.create_index('ix_game_sessions_created_at', 'game_sessions', ['created_at'])

    # ── Financial Items Table ─────────────────────────────────
    op.create_table(
        'financial_items',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('item_id', sa.String(64), nullable=False, unique=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('category', sa.Text(), nullable=True),
        sa.Column('multi_categories', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('explanation', sa.Text(), nullable=True),
        sa.Column('level', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('difficulty', sa.String(16), nullable=True),
        sa.Column('tags', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('usage_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('correct_answer_rate', sa.Float(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_financial_items_level', 'financial_items', ['level'])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_index('ix_financial_items_level', table_name='financial_items')
    op.drop_table('financial_items')
    op.drop_index('ix_game_sessions_created_at', table_name='game_sessions')
    op.drop_index('ix_game_sessions_status_level', table_name='game_sessions')
    op.drop_index('ix_game_sessions_user_id', table_name='game_sessions')
    op.drop_table('game_sessions')
    op.drop_index('ix_users_created_at', table_name='users')
    op.drop_index('ix_users_role_active', table_name='users')
    op.drop_table('users')
