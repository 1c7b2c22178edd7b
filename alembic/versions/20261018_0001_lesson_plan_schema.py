"""Lesson plan schema - topics, lesson plans, editing sessions

Revision ID: 0001
Revises: 
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'topics',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('owner_id', sa.String(255), nullable=False, index=True),
        sa.Column('name', sa.String(500), nullable=False),
        sa.Column('content', sa.Text(), nullable=False, server_default=''),
        sa.Column('is_subtopic', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('parent_name', sa.String(500), nullable=True),
        sa.Column('main_topic_name', sa.String(500), nullable=False, server_default=''),
        sa.Column('sort_order', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('owner_id', 'main_topic_name', 'name', name='uq_topics_owner_main_name'),
    )

    op.create_table(
        'lesson_plans',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('owner_id', sa.String(255), nullable=False, index=True),
        sa.Column('name', sa.String(500), nullable=False),
        sa.Column('main_topic_name', sa.String(500), nullable=False),
        sa.Column('topics', sa.JSON(), nullable=False),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.false(), index=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'editing_sessions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('owner_id', sa.String(255), nullable=False, index=True),
        sa.Column('state', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('editing_sessions')
    op.drop_table('lesson_plans')
    op.drop_table('topics')
