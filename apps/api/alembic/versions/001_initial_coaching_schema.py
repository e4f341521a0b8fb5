"""initial coaching schema

Revision ID: 001
Revises:
Create Date: 2025-01-06 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        'client',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('full_name', sa.Text(), nullable=True),
        sa.Column('role', sa.Text(), server_default='client', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.UniqueConstraint('email'),
    )

    op.create_table(
        'program',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('category', sa.Text(), nullable=True),
        sa.Column('duration_weeks', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
    )

    op.create_table(
        'program_workout',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('program_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=True),
        sa.Column('week_number', sa.Integer(), nullable=True),
        sa.Column('parent_workout_id', sa.Uuid(), nullable=True),
        sa.Column('order_index', sa.Integer(), server_default='0', nullable=False),
        sa.ForeignKeyConstraint(['program_id'], ['program.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['parent_workout_id'], ['program_workout.id'], ondelete='CASCADE'),
        sa.CheckConstraint('day_of_week IS NULL OR (day_of_week >= 0 AND day_of_week <= 6)', name='ck_program_workout_day_of_week'),
        sa.CheckConstraint('week_number IS NULL OR week_number >= 1', name='ck_program_workout_week_number'),
    )
    op.create_index('ix_program_workout_program_id', 'program_workout', ['program_id'])

    op.create_table(
        'workout_exercise',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('workout_id', sa.Uuid(), nullable=False),
        sa.Column('exercise_name', sa.Text(), nullable=False),
        sa.Column('order_index', sa.Integer(), server_default='0', nullable=False),
        sa.ForeignKeyConstraint(['workout_id'], ['program_workout.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_workout_exercise_workout_id', 'workout_exercise', ['workout_id'])

    op.create_table(
        'client_program',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('client_id', sa.Uuid(), nullable=False),
        sa.Column('program_id', sa.Uuid(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('duration_weeks', sa.Integer(), nullable=False),
        sa.Column('order_index', sa.Integer(), server_default='0', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['client.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['program_id'], ['program.id']),
        sa.CheckConstraint('duration_weeks > 0', name='ck_client_program_duration_positive'),
    )
    op.create_index('ix_client_program_client_order', 'client_program', ['client_id', 'order_index'])
    op.create_index('ix_client_program_client_active', 'client_program', ['client_id', 'is_active'])

    op.create_table(
        'workout_log',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('client_id', sa.Uuid(), nullable=False),
        sa.Column('workout_id', sa.Uuid(), nullable=True),
        sa.Column('trainer_id', sa.Uuid(), nullable=True),
        sa.Column('scheduled_date', sa.Date(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['client_id'], ['client.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['workout_id'], ['program_workout.id']),
        sa.ForeignKeyConstraint(['trainer_id'], ['client.id']),
    )
    op.create_index('ix_workout_log_client_id', 'workout_log', ['client_id'])

    op.create_table(
        'workout_completion',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('client_id', sa.Uuid(), nullable=False),
        sa.Column('workout_id', sa.Uuid(), nullable=False),
        sa.Column('client_program_id', sa.Uuid(), nullable=True),
        sa.Column('workout_log_id', sa.Uuid(), nullable=True),
        sa.Column('scheduled_date', sa.Date(), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['client.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['workout_id'], ['program_workout.id']),
        sa.ForeignKeyConstraint(['client_program_id'], ['client_program.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['workout_log_id'], ['workout_log.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_workout_completion_client_scheduled', 'workout_completion', ['client_id', 'scheduled_date'])
    op.create_index('ix_workout_completion_client_completed', 'workout_completion', ['client_id', 'completed_at'])

    op.create_table(
        'set_log',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('workout_log_id', sa.Uuid(), nullable=False),
        sa.Column('exercise_id', sa.Uuid(), nullable=False),
        sa.Column('set_number', sa.Integer(), server_default='1', nullable=False),
        sa.Column('weight_kg', sa.Float(), nullable=True),
        sa.Column('reps_completed', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['workout_log_id'], ['workout_log.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['exercise_id'], ['workout_exercise.id']),
    )
    op.create_index('ix_set_log_workout_log_id', 'set_log', ['workout_log_id'])
    op.create_index('ix_set_log_created_at', 'set_log', ['created_at'])

    op.create_table(
        'client_one_rep_max',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('client_id', sa.Uuid(), nullable=False),
        sa.Column('exercise_name', sa.Text(), nullable=False),
        sa.Column('weight_kg', sa.Float(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['client.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('client_id', 'exercise_name', name='uq_client_one_rep_max_client_exercise'),
    )

    op.create_table(
        'client_streak',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('client_id', sa.Uuid(), nullable=False),
        sa.Column('current_streak', sa.Integer(), server_default='0', nullable=False),
        sa.Column('longest_streak', sa.Integer(), server_default='0', nullable=False),
        sa.Column('last_workout_date', sa.Date(), nullable=True),
        sa.Column('streak_start_date', sa.Date(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['client.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('client_id'),
        sa.CheckConstraint('longest_streak >= current_streak', name='ck_client_streak_longest_ge_current'),
    )

    op.create_table(
        'personal_record',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('client_id', sa.Uuid(), nullable=False),
        sa.Column('exercise_name', sa.Text(), nullable=False),
        sa.Column('weight_kg', sa.Float(), nullable=False),
        sa.Column('reps', sa.Integer(), nullable=False),
        sa.Column('estimated_1rm', sa.Float(), nullable=False),
        sa.Column('achieved_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['client.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('client_id', 'exercise_name', name='uq_personal_record_client_exercise'),
    )

    op.create_table(
        'admin_notification',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('client_id', sa.Uuid(), nullable=False),
        sa.Column('type', sa.Text(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('metadata', JSONType, nullable=True),
        sa.Column('is_dismissed', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['client.id'], ondelete='CASCADE'),
    )
    op.create_index(
        'ix_admin_notification_dedup',
        'admin_notification',
        ['client_id', 'type', 'is_dismissed', 'created_at'],
    )


def downgrade() -> None:
    op.drop_index('ix_admin_notification_dedup', table_name='admin_notification')
    op.drop_table('admin_notification')
    op.drop_table('personal_record')
    op.drop_table('client_streak')
    op.drop_table('client_one_rep_max')
    op.drop_index('ix_set_log_created_at', table_name='set_log')
    op.drop_index('ix_set_log_workout_log_id', table_name='set_log')
    op.drop_table('set_log')
    op.drop_index('ix_workout_completion_client_completed', table_name='workout_completion')
    op.drop_index('ix_workout_completion_client_scheduled', table_name='workout_completion')
    op.drop_table('workout_completion')
    op.drop_index('ix_workout_log_client_id', table_name='workout_log')
    op.drop_table('workout_log')
    op.drop_index('ix_client_program_client_active', table_name='client_program')
    op.drop_index('ix_client_program_client_order', table_name='client_program')
    op.drop_table('client_program')
    op.drop_index('ix_workout_exercise_workout_id', table_name='workout_exercise')
    op.drop_table('workout_exercise')
    op.drop_index('ix_program_workout_program_id', table_name='program_workout')
    op.drop_table('program_workout')
    op.drop_table('program')
    op.drop_table('client')
