"""Add accountability partnership tables

Revision ID: 3f1c2b7a9d10
Revises:
Create Date: 2026-10-18 10:12:41.502113

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f1c2b7a9d10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

habit_type = sa.Enum('CORE', 'CUSTOM', name='habittype')
partnership_mode = sa.Enum('SUPPORTIVE', 'COMPETITIVE', name='partnershipmode')
partnership_status = sa.Enum('PENDING', 'ACCEPTED', 'DECLINED', 'CANCELLED', name='partnershipstatus')


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('username', sa.String(), nullable=True, unique=True),
        sa.Column('display_name', sa.String(), nullable=True),
        sa.Column('avatar_url', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        'custom_habits',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('title', sa.String(), nullable=False, index=True),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('emoji', sa.String(), nullable=True),
        sa.Column('color', sa.String(), nullable=True),
        sa.Column('accent_color', sa.String(), nullable=True),
        sa.Column('schedule_days', postgresql.JSONB(), nullable=True),
        sa.Column('target_quantity', sa.Float(), nullable=True),
        sa.Column('target_unit', sa.String(), nullable=True),
        sa.Column('reminder_time', sa.String(), nullable=True),
        sa.Column('timezone', sa.String(), nullable=True),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_table(
        'user_core_habits',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('habit_key', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('user_id', 'habit_key', name='uq_user_core_habit'),
    )
    op.create_table(
        'core_habit_schedules',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('habit_key', sa.String(), nullable=False),
        sa.Column('days', postgresql.JSONB(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('user_id', 'habit_key', name='uq_core_habit_schedule'),
    )
    op.create_table(
        'habit_accountability_partners',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('inviter_id', sa.String(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('invitee_id', sa.String(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('habit_type', habit_type, nullable=False),
        sa.Column('habit_identifier', sa.String(), nullable=False),
        sa.Column('habit_key', sa.String(), nullable=True),
        sa.Column('custom_habit_id', sa.String(), nullable=True),
        sa.Column('inviter_habit_id', sa.String(), nullable=True, index=True),
        sa.Column('invitee_habit_id', sa.String(), nullable=True, index=True),
        sa.Column('habit_snapshot', postgresql.JSONB(), nullable=True),
        sa.Column('mode', partnership_mode, nullable=False),
        sa.Column('status', partnership_status, nullable=False, index=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('inviter_id', 'invitee_id', 'habit_type', 'habit_identifier', name='uq_partnership_invite'),
    )
    op.create_table(
        'habit_partner_progress',
        sa.Column('partnership_id', sa.String(), sa.ForeignKey('habit_accountability_partners.id'), primary_key=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id'), primary_key=True),
        sa.Column('date', sa.Date(), primary_key=True),
        sa.Column('completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('streak_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        'habit_nudges',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('partnership_id', sa.String(), sa.ForeignKey('habit_accountability_partners.id'), nullable=False, index=True),
        sa.Column('nudger_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('nudged_user_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('habit_type', habit_type, nullable=False),
        sa.Column('habit_key', sa.String(), nullable=True),
        sa.Column('custom_habit_id', sa.String(), nullable=True),
        sa.Column('nudged_at', sa.DateTime(timezone=True), nullable=False, index=True),
    )
    op.create_table(
        'notifications',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id'), index=True),
        sa.Column('from_user_id', sa.String(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('type', sa.String()),
        sa.Column('title', sa.String()),
        sa.Column('message', sa.String()),
        sa.Column('data', sa.Text()),
        sa.Column('is_read', sa.Boolean(), server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        'device_tokens',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id'), index=True),
        sa.Column('token', sa.String(), index=True),
        sa.Column('platform', sa.String()),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table('device_tokens')
    op.drop_table('notifications')
    op.drop_table('habit_nudges')
    op.drop_table('habit_partner_progress')
    op.drop_table('habit_accountability_partners')
    op.drop_table('core_habit_schedules')
    op.drop_table('user_core_habits')
    op.drop_table('custom_habits')
    op.drop_table('users')
    op.execute('DROP TYPE IF EXISTS partnershipstatus')
    op.execute('DROP TYPE IF EXISTS partnershipmode')
    op.execute('DROP TYPE IF EXISTS habittype')
