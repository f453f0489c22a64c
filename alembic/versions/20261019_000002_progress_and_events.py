"""Progress reports, events and volunteer hours

Revision ID: 20261019_000002
Revises: 20261001_000001
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '20261019_000002'
down_revision: Union[str, None] = '20261001_000001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    # === PROGRESS REPORTS ===
    op.create_table(
        'progress_reports',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('student_id', sa.Uuid(), nullable=False),
        sa.Column('academy_id', sa.Uuid(), nullable=False),
        sa.Column('level_id', sa.Uuid(), nullable=True),
        sa.Column('teacher_id', sa.Uuid(), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=True),
        sa.Column('comments', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['academy_id'], ['academies.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['level_id'], ['levels.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['teacher_id'], ['profiles.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_progress_reports_student_id', 'progress_reports', ['student_id'])
    op.create_index('idx_progress_reports_academy_date', 'progress_reports', ['academy_id', 'date'])

    # === EVENTS ===
    op.create_table(
        'events',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.String(length=10), nullable=True),
        sa.Column('end_time', sa.String(length=10), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='upcoming'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_events_date', 'events', ['date'])

    op.create_table(
        'volunteer_hours',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('event_id', sa.Uuid(), nullable=False),
        sa.Column('volunteer_code', sa.String(length=50), nullable=False),
        sa.Column('volunteer_name', sa.String(length=200), nullable=False),
        sa.Column('volunteer_email', sa.String(length=255), nullable=True),
        sa.Column('check_in_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('check_out_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_hours', sa.Numeric(6, 2), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='checked-in'),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_volunteer_hours_event_id', 'volunteer_hours', ['event_id'])
    op.create_index('ix_volunteer_hours_volunteer_code', 'volunteer_hours', ['volunteer_code'])


def downgrade() -> None:
    op.drop_table('volunteer_hours')
    op.drop_table('events')
    op.drop_table('progress_reports')
