"""Create allocation engine tables

Revision ID: 001_allocation_tables
Revises: 
Create Date: 2026-10-18

This migration adds:
- employees table with the assigned flag and the cached utilization table
- projects table with the embedded JSON phase list
- allocations table with the range and booking-key indexes
- tasks table, removed together with its allocation
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_allocation_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('full_name', sa.String(length=150), nullable=False),
        sa.Column('email', sa.String(length=150), nullable=True),
        sa.Column('position', sa.String(length=100), nullable=True),
        sa.Column('assigned', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('utilization', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )

    op.create_table(
        'projects',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='planned'),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('phases', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )

    op.create_table(
        'allocations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('project_id', sa.Integer(), nullable=False),
        sa.Column('phases', sa.JSON(), nullable=False),
        sa.Column('normalized_phase_ids', sa.String(length=1000), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('hours_week', sa.Float(), nullable=False, server_default='40'),
        sa.Column('status', sa.String(length=30), nullable=False, server_default='active'),
        sa.Column('charge_out_rate', sa.Float(), nullable=True),
        sa.Column('charge_type', sa.String(length=30), nullable=True),
        sa.Column('can_override', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], name='fk_allocations_employee_id'),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], name='fk_allocations_project_id'),
        sa.PrimaryKeyConstraint('id')
    )

    # Overlap detection scans an employee's bookings by date range
    op.create_index('ix_allocations_employee_range', 'allocations', ['employee_id', 'start_date', 'end_date'])
    op.create_index('ix_allocations_booking_key', 'allocations',
                    ['employee_id', 'project_id', 'normalized_phase_ids'])

    op.create_table(
        'tasks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('allocation_id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('project_id', sa.Integer(), nullable=False),
        sa.Column('phase_id', sa.String(length=100), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('estimated_hours', sa.Float(), nullable=False, server_default='0'),
        sa.Column('actual_hours', sa.Float(), nullable=False, server_default='0'),
        sa.Column('task_date', sa.Date(), nullable=False),
        sa.Column('reason_for_rejection', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['allocation_id'], ['allocations.id'], name='fk_tasks_allocation_id',
                                ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], name='fk_tasks_employee_id'),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], name='fk_tasks_project_id'),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_index('ix_tasks_allocation_id', 'tasks', ['allocation_id'])
    op.create_index('ix_tasks_employee_id', 'tasks', ['employee_id'])
    op.create_index('ix_tasks_project_phase', 'tasks', ['project_id', 'phase_id'])


def downgrade():
    op.drop_index('ix_tasks_project_phase', table_name='tasks')
    op.drop_index('ix_tasks_employee_id', table_name='tasks')
    op.drop_index('ix_tasks_allocation_id', table_name='tasks')
    op.drop_table('tasks')

    op.drop_index('ix_allocations_booking_key', table_name='allocations')
    op.drop_index('ix_allocations_employee_range', table_name='allocations')
    op.drop_table('allocations')

    op.drop_table('projects')
    op.drop_table('employees')
