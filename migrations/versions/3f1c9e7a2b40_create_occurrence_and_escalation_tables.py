"""Create recurrence, workforce, task and corrective action tables

Revision ID: 3f1c9e7a2b40
Revises:
Create Date: 2026-10-12 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f1c9e7a2b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Recurrence rules and their materialized occurrences
    op.create_table('recurrence_rules',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('rule_type', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('location_id', sa.String(length=36), nullable=True),
        sa.Column('pattern', sa.String(length=20), nullable=False),
        sa.Column('anchor_date', sa.Date(), nullable=True),
        sa.Column('day_of_week', sa.Integer(), nullable=True),
        sa.Column('day_of_month', sa.Integer(), nullable=True),
        sa.Column('start_time', sa.Time(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('assigned_user_id', sa.String(length=36), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('last_generated_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_recurrence_rules_type_active', 'recurrence_rules', ['rule_type', 'is_active'], unique=False)

    op.create_table('occurrences',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('rule_id', sa.String(length=36), nullable=False),
        sa.Column('entity_type', sa.String(length=20), nullable=False),
        sa.Column('occurrence_date', sa.Date(), nullable=False),
        sa.Column('scheduled_for', sa.DateTime(timezone=True), nullable=False),
        sa.Column('scheduled_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('location_id', sa.String(length=36), nullable=True),
        sa.Column('assigned_user_id', sa.String(length=36), nullable=True),
        sa.Column('title', sa.String(length=200), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='scheduled'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['rule_id'], ['recurrence_rules.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('rule_id', 'occurrence_date', name='uq_occurrence_rule_date')
    )
    op.create_index('idx_occurrences_date', 'occurrences', ['occurrence_date'], unique=False)

    # Workforce
    op.create_table('employees',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('full_name', sa.String(length=120), nullable=False),
        sa.Column('role', sa.String(length=80), nullable=True),
        sa.Column('location_id', sa.String(length=36), nullable=True),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('profile_id', sa.String(length=36), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )
    op.create_index('idx_employees_location', 'employees', ['location_id'], unique=False)

    op.create_table('shifts',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('location_id', sa.String(length=36), nullable=False),
        sa.Column('shift_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=True),
        sa.Column('end_time', sa.Time(), nullable=True),
        sa.Column('role', sa.String(length=80), nullable=True),
        sa.Column('role_id', sa.String(length=36), nullable=True),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_shifts_date_location', 'shifts', ['shift_date', 'location_id'], unique=False)

    op.create_table('shift_assignments',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('shift_id', sa.String(length=36), nullable=False),
        sa.Column('staff_id', sa.String(length=36), nullable=False),
        sa.Column('approval_status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.ForeignKeyConstraint(['shift_id'], ['shifts.id']),
        sa.ForeignKeyConstraint(['staff_id'], ['employees.id']),
        sa.PrimaryKeyConstraint('id')
    )

    # Tasks and per-occurrence completions
    op.create_table('tasks',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('location_id', sa.String(length=36), nullable=True),
        sa.Column('execution_mode', sa.String(length=20), nullable=False, server_default='shift_based'),
        sa.Column('assigned_role_id', sa.String(length=36), nullable=True),
        sa.Column('assigned_role_name', sa.String(length=80), nullable=True),
        sa.Column('assigned_to', sa.String(length=36), nullable=True),
        sa.Column('start_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('task_completions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('task_id', sa.String(length=80), nullable=False),
        sa.Column('occurrence_date', sa.String(length=10), nullable=False),
        sa.Column('completed_by_employee_id', sa.String(length=36), nullable=True),
        sa.Column('completed_by_raw', sa.JSON(), nullable=True),
        sa.Column('completed_by_user_id', sa.String(length=36), nullable=True),
        sa.Column('completed_by_profile_id', sa.String(length=36), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('completion_mode', sa.String(length=20), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('task_id', 'occurrence_date', name='uq_task_completion_occurrence')
    )

    # Corrective actions, escalation history and location restrictions
    op.create_table('corrective_actions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('location_id', sa.String(length=36), nullable=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('severity', sa.String(length=20), nullable=False, server_default='medium'),
        sa.Column('status', sa.String(length=30), nullable=False, server_default='open'),
        sa.Column('stop_the_line', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('due_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('stop_released_by', sa.String(length=36), nullable=True),
        sa.Column('stop_released_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('stop_release_reason', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_corrective_actions_status', 'corrective_actions', ['status'], unique=False)

    op.create_table('escalation_events',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('corrective_action_id', sa.String(length=36), nullable=False),
        sa.Column('level', sa.String(length=20), nullable=False),
        sa.Column('pct_elapsed', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['corrective_action_id'], ['corrective_actions.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('corrective_action_id', 'level', name='uq_escalation_ca_level')
    )

    op.create_table('location_restriction_states',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('location_id', sa.String(length=36), nullable=False),
        sa.Column('is_restricted', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('restricting_ca_id', sa.String(length=36), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('location_id')
    )


def downgrade():
    op.drop_table('location_restriction_states')
    op.drop_table('escalation_events')
    op.drop_index('idx_corrective_actions_status', table_name='corrective_actions')
    op.drop_table('corrective_actions')

    op.drop_table('task_completions')
    op.drop_table('tasks')

    op.drop_table('shift_assignments')
    op.drop_index('idx_shifts_date_location', table_name='shifts')
    op.drop_table('shifts')
    op.drop_index('idx_employees_location', table_name='employees')
    op.drop_table('employees')

    op.drop_index('idx_occurrences_date', table_name='occurrences')
    op.drop_table('occurrences')
    op.drop_index('idx_recurrence_rules_type_active', table_name='recurrence_rules')
    op.drop_table('recurrence_rules')
