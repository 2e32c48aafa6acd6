"""baseline_entitlements_and_orders

Revision ID: 4b7e1c2d9a10
Revises:
Create Date: 2026-10-19 09:12:41.118203

Production-safe migration: only creates tables that do not exist yet.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '4b7e1c2d9a10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def table_exists(table_name: str) -> bool:
    """Check if a table exists in the database."""
    bind = op.get_bind()
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    ]


def upgrade() -> None:
    if not table_exists('users'):
        op.create_table('users',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('email', sa.String(), nullable=False),
            sa.Column('full_name', sa.String(), nullable=True),
            sa.Column('password_hash', sa.String(), nullable=True),
            sa.Column('role', sa.String(), server_default='user', nullable=False),
            sa.Column('current_plan', sa.String(), server_default='basic', nullable=False),
            sa.Column('plan_start_date', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            *_timestamps(),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    if not table_exists('cvs'):
        op.create_table('cvs',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('user_id', sa.String(length=36), nullable=False),
            sa.Column('template_id', sa.String(), nullable=True),
            sa.Column('full_name', sa.String(), nullable=False),
            sa.Column('email', sa.String(), nullable=False),
            sa.Column('phone', sa.String(), nullable=True),
            sa.Column('location', sa.String(), nullable=True),
            sa.Column('website', sa.String(), nullable=True),
            sa.Column('linkedin', sa.String(), nullable=True),
            sa.Column('github', sa.String(), nullable=True),
            sa.Column('summary', sa.Text(), nullable=True),
            sa.Column('photo_url', sa.String(), nullable=True),
            sa.Column('experience', sa.JSON(), nullable=False),
            sa.Column('education', sa.JSON(), nullable=False),
            sa.Column('skills', sa.JSON(), nullable=False),
            sa.Column('certifications', sa.JSON(), nullable=False),
            sa.Column('achievements', sa.JSON(), nullable=False),
            sa.Column('custom_sections', sa.JSON(), nullable=False),
            sa.Column('references', sa.JSON(), nullable=False),
            *_timestamps(),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_cvs_user_id'), 'cvs', ['user_id'], unique=False)

    if not table_exists('orders'):
        op.create_table('orders',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('user_id', sa.String(length=36), nullable=False),
            sa.Column('cv_id', sa.String(length=36), nullable=True),
            sa.Column('package_type', sa.String(), nullable=False),
            sa.Column('amount', sa.Integer(), nullable=False),
            sa.Column('currency', sa.String(), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('progress', sa.Integer(), nullable=False),
            sa.Column('payment_reference', sa.String(), nullable=True),
            sa.Column('payment_access_code', sa.String(), nullable=True),
            sa.Column('package_snapshot', sa.JSON(), nullable=False),
            sa.Column('edits_remaining', sa.Integer(), nullable=False),
            sa.Column('has_cover_letter', sa.Boolean(), nullable=False),
            sa.Column('has_linkedin_optimization', sa.Boolean(), nullable=False),
            sa.Column('template_count', sa.Integer(), nullable=False),
            sa.Column('download_url', sa.String(), nullable=True),
            sa.Column('pdf_file_name', sa.String(), nullable=True),
            *_timestamps(),
            sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.ForeignKeyConstraint(['cv_id'], ['cvs.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('payment_reference')
        )
        op.create_index(op.f('ix_orders_user_id'), 'orders', ['user_id'], unique=False)
        op.create_index(op.f('ix_orders_cv_id'), 'orders', ['cv_id'], unique=False)
        op.create_index(op.f('ix_orders_status'), 'orders', ['status'], unique=False)
        op.create_index('idx_orders_user_status_created', 'orders', ['user_id', 'status', 'created_at'], unique=False)

    if not table_exists('usage_counters'):
        op.create_table('usage_counters',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.String(length=36), nullable=False),
            sa.Column('feature', sa.String(length=40), nullable=False),
            sa.Column('period_start', sa.DateTime(), nullable=False),
            sa.Column('period_end', sa.DateTime(), nullable=False),
            sa.Column('count', sa.Integer(), nullable=False),
            *_timestamps(),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_id', 'feature', 'period_start', name='uq_usage_user_feature_period')
        )
        op.create_index(op.f('ix_usage_counters_id'), 'usage_counters', ['id'], unique=False)
        op.create_index(op.f('ix_usage_counters_user_id'), 'usage_counters', ['user_id'], unique=False)
        op.create_index('idx_usage_user_period', 'usage_counters', ['user_id', 'period_start'], unique=False)

    if not table_exists('cover_letters'):
        op.create_table('cover_letters',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('user_id', sa.String(length=36), nullable=False),
            sa.Column('cv_id', sa.String(length=36), nullable=True),
            sa.Column('job_title', sa.String(), nullable=False),
            sa.Column('company_name', sa.String(), nullable=False),
            sa.Column('company_description', sa.Text(), nullable=True),
            sa.Column('content', sa.Text(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.ForeignKeyConstraint(['cv_id'], ['cvs.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_cover_letters_user_id'), 'cover_letters', ['user_id'], unique=False)


def downgrade() -> None:
    for table in ('cover_letters', 'usage_counters', 'orders', 'cvs', 'users'):
        if table_exists(table):
            op.drop_table(table)
