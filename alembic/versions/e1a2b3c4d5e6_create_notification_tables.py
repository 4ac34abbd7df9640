"""create users, exam results, notifications and study reminders

Revision ID: e1a2b3c4d5e6
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = 'e1a2b3c4d5e6'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('full_name', sa.String(200), nullable=False),
        sa.Column('phone_number', sa.String(20), nullable=True),
        sa.Column('device_id', sa.String(255), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='USER'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('fcm_token', sa.String(500), nullable=True),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_phone_number', 'users', ['phone_number'], unique=True)

    op.create_table(
        'exam_results',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('exam_id', sa.Uuid(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('passed', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('completed_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_exam_results_id', 'exam_results', ['id'])
    op.create_index('ix_exam_results_user_id', 'exam_results', ['user_id'])
    op.create_index('ix_exam_results_exam_id', 'exam_results', ['exam_id'])
    op.create_index('ix_exam_results_completed_at', 'exam_results', ['completed_at'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('data', sa.JSON(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('is_push_sent', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('scheduled_for', sa.DateTime(timezone=True), nullable=True),
        sa.Column('priority', sa.String(10), nullable=False, server_default='MEDIUM'),
        sa.Column('category', sa.String(20), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_notifications_id', 'notifications', ['id'])
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_type', 'notifications', ['type'])
    op.create_index('ix_notifications_is_read', 'notifications', ['is_read'])
    op.create_index('ix_notifications_scheduled_for', 'notifications', ['scheduled_for'])
    op.create_index('ix_notifications_category', 'notifications', ['category'])

    op.create_table(
        'notification_preferences',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('push_notifications', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('sms_notifications', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('exam_reminders', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('payment_updates', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('system_announcements', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('study_reminders', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('achievement_notifications', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('weekly_reports', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('quiet_hours_enabled', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('quiet_hours_start', sa.Time(), nullable=False, server_default='22:00:00'),
        sa.Column('quiet_hours_end', sa.Time(), nullable=False, server_default='07:00:00'),
        sa.Column('vibration_enabled', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('sound_enabled', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        *_timestamps(),
    )
    op.create_index('ix_notification_preferences_id', 'notification_preferences', ['id'])
    op.create_index('ix_notification_preferences_user_id', 'notification_preferences', ['user_id'], unique=True)

    op.create_table(
        'study_reminders',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('is_enabled', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('reminder_time', sa.Time(), nullable=False),
        sa.Column('days_of_week', sa.JSON(), nullable=False),
        sa.Column('study_goal_minutes', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('timezone', sa.String(64), nullable=False, server_default='UTC'),
        sa.Column('last_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('next_scheduled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        *_timestamps(),
    )
    op.create_index('ix_study_reminders_id', 'study_reminders', ['id'])
    op.create_index('ix_study_reminders_user_id', 'study_reminders', ['user_id'])
    op.create_index('ix_study_reminders_is_enabled', 'study_reminders', ['is_enabled'])
    op.create_index('ix_study_reminders_reminder_time', 'study_reminders', ['reminder_time'])
    op.create_index('ix_study_reminders_next_scheduled_at', 'study_reminders', ['next_scheduled_at'])
    op.create_index('ix_study_reminders_is_active', 'study_reminders', ['is_active'])


def downgrade() -> None:
    op.drop_table('study_reminders')
    op.drop_table('notification_preferences')
    op.drop_table('notifications')
    op.drop_table('exam_results')
    op.drop_table('users')
