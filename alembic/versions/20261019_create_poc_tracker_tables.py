"""create_poc_tracker_tables

Revision ID: 3f9c1d2e7a10
Revises:
Create Date: 2026-10-19 09:12:41.204117

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9c1d2e7a10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

KEY_COLUMNS = ['company_code', 'project', 'phase_code']


def _key_columns(phase_nullable: bool = False):
    return [
        sa.Column('company_code', sa.String(length=10), nullable=False),
        sa.Column('project', sa.String(length=50), nullable=False),
        sa.Column('phase_code', sa.String(length=20), nullable=phase_nullable, server_default=''),
    ]


def upgrade() -> None:
    """Create POC, completion date, redistribution, allow-list and sales recognition tables."""
    op.create_table(
        'poc_per_month',
        sa.Column('id', sa.Integer(), nullable=False),
        *_key_columns(),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('value', sa.Float(), nullable=False),
        sa.Column('type', sa.String(length=1), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('created_by', sa.String(length=100), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('updated_by', sa.String(length=100), nullable=True),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.Column('deleted_by', sa.String(length=100), nullable=True),
        sa.Column('deletion_reason', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_poc_per_month_id', 'poc_per_month', ['id'])
    op.create_index('ix_poc_per_month_active', 'poc_per_month', ['active'])
    op.create_index('ix_poc_key_period', 'poc_per_month', KEY_COLUMNS + ['year', 'month'])
    # One active row per period; deactivated history rows are not constrained
    op.create_index(
        'uq_poc_active_period',
        'poc_per_month',
        KEY_COLUMNS + ['year', 'month'],
        unique=True,
        sqlite_where=sa.text('active = 1'),
        postgresql_where=sa.text('active'),
    )

    op.create_table(
        'completion_dates',
        sa.Column('id', sa.Integer(), nullable=False),
        *_key_columns(),
        sa.Column('type', sa.String(length=1), nullable=False),
        sa.Column('completion_date', sa.Date(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('created_by', sa.String(length=100), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_completion_dates_id', 'completion_dates', ['id'])
    op.create_index('ix_completion_key_type', 'completion_dates', KEY_COLUMNS + ['type'])

    op.create_table(
        'pending_redistributions',
        sa.Column('id', sa.Integer(), nullable=False),
        *_key_columns(),
        sa.Column('orphaned_total', sa.Float(), nullable=False),
        sa.Column('new_completion_date', sa.Date(), nullable=False),
        sa.Column('old_completion_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=30), nullable=False, server_default='pending_manual_entry'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('created_by', sa.String(length=100), nullable=True),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.Column('resolved_by', sa.String(length=100), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_pending_redistributions_id', 'pending_redistributions', ['id'])
    op.create_index('ix_pending_redistributions_status', 'pending_redistributions', ['status'])
    op.create_index('ix_redistribution_key', 'pending_redistributions', KEY_COLUMNS)

    op.create_table(
        'project_phase_validation',
        sa.Column('id', sa.Integer(), nullable=False),
        *_key_columns(phase_nullable=True),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_code', 'project', 'phase_code', name='uq_project_phase'),
    )
    op.create_index('ix_project_phase_validation_id', 'project_phase_validation', ['id'])

    op.create_table(
        'sales_recognition',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('account_no', sa.String(length=30), nullable=False),
        sa.Column('recognition_date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sales_recognition_id', 'sales_recognition', ['id'])
    op.create_index('ix_sales_recognition_account_no', 'sales_recognition', ['account_no'], unique=True)


def downgrade() -> None:
    """Drop all POC tracker tables."""
    op.drop_index('ix_sales_recognition_account_no', table_name='sales_recognition')
    op.drop_index('ix_sales_recognition_id', table_name='sales_recognition')
    op.drop_table('sales_recognition')

    op.drop_index('ix_project_phase_validation_id', table_name='project_phase_validation')
    op.drop_table('project_phase_validation')

    op.drop_index('ix_redistribution_key', table_name='pending_redistributions')
    op.drop_index('ix_pending_redistributions_status', table_name='pending_redistributions')
    op.drop_index('ix_pending_redistributions_id', table_name='pending_redistributions')
    op.drop_table('pending_redistributions')

    op.drop_index('ix_completion_key_type', table_name='completion_dates')
    op.drop_index('ix_completion_dates_id', table_name='completion_dates')
    op.drop_table('completion_dates')

    op.drop_index('uq_poc_active_period', table_name='poc_per_month')
    op.drop_index('ix_poc_key_period', table_name='poc_per_month')
    op.drop_index('ix_poc_per_month_active', table_name='poc_per_month')
    op.drop_index('ix_poc_per_month_id', table_name='poc_per_month')
    op.drop_table('poc_per_month')
