"""Create tenant, user, team and invitation tables

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    ]


def _id() -> sa.Column:
    return sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()'))


def upgrade() -> None:
    """Create TeamDesk core tables."""
    op.create_table(
        'tenants',
        _id(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('branding_config', sa.JSON, nullable=False, server_default='{}'),
        sa.Column('channel_config', sa.JSON, nullable=False, server_default='{}'),
        sa.Column('workflow_config', sa.JSON, nullable=False, server_default='{}'),
        *_timestamps(),
        sa.CheckConstraint('LENGTH(name) > 0', name='tenant_name_not_empty'),
    )
    op.create_index('ix_tenants_name', 'tenants', ['name'], unique=True)

    op.create_table(
        'users',
        _id(),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False, server_default=''),
        sa.Column('last_name', sa.String(100), nullable=False, server_default=''),
        sa.Column('password_hash', sa.String(255), nullable=True),
        sa.Column('role', sa.String(32), nullable=False, server_default='viewer'),
        sa.Column('status', sa.String(16), nullable=False, server_default='active'),
        sa.Column('permissions', sa.JSON, nullable=False, server_default='[]'),
        *_timestamps(),
        sa.UniqueConstraint('tenant_id', 'email', name='uq_users_tenant_email'),
    )
    op.create_index('ix_users_tenant_id', 'users', ['tenant_id'])

    op.create_table(
        'teams',
        _id(),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('color', sa.String(7), nullable=False),
        sa.Column('is_default', sa.Boolean, nullable=False, server_default='false'),
        *_timestamps(),
        sa.UniqueConstraint('tenant_id', 'name', name='uq_teams_tenant_name'),
    )
    op.create_index('ix_teams_tenant_id', 'teams', ['tenant_id'])
    op.create_index(
        'uq_teams_tenant_default', 'teams', ['tenant_id'],
        unique=True, postgresql_where=sa.text('is_default'),
    )

    op.create_table(
        'team_members',
        _id(),
        sa.Column('team_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('teams.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.String(16), nullable=False, server_default='member'),
        sa.Column('permissions', sa.JSON, nullable=False, server_default='[]'),
        sa.Column('skills', sa.JSON, nullable=False, server_default='[]'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default='true'),
        sa.Column('joined_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('team_id', 'user_id', name='uq_team_members_team_user'),
    )
    op.create_index('ix_team_members_team_id', 'team_members', ['team_id'])
    op.create_index('ix_team_members_user_id', 'team_members', ['user_id'])

    op.create_table(
        'invitation_templates',
        _id(),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('role', sa.String(32), nullable=False),
        sa.Column('subject', sa.String(255), nullable=False),
        sa.Column('content', sa.Text, nullable=False),
        sa.Column('is_default', sa.Boolean, nullable=False, server_default='false'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default='true'),
        *_timestamps(),
        sa.UniqueConstraint('tenant_id', 'name', name='uq_invitation_templates_tenant_name'),
    )
    op.create_index('ix_invitation_templates_tenant_id', 'invitation_templates', ['tenant_id'])

    op.create_table(
        'invitations',
        _id(),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('inviter_user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('role', sa.String(32), nullable=False),
        sa.Column('token', sa.String(128), nullable=False, unique=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='pending'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('custom_message', sa.Text, nullable=True),
        sa.Column('team_ids', sa.JSON, nullable=False, server_default='[]'),
        sa.Column('permissions', sa.JSON, nullable=False, server_default='[]'),
        sa.Column('template_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('invitation_templates.id', ondelete='SET NULL'), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_invitations_tenant_email', 'invitations', ['tenant_id', 'email'])
    op.create_index('ix_invitations_expires_at', 'invitations', ['expires_at'])
    # One pending invitation per (tenant, email)
    op.create_index(
        'uq_invitations_pending_email', 'invitations', ['tenant_id', 'email'],
        unique=True, postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        'audit_events',
        _id(),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('action', sa.String(40), nullable=False),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('diff_json', sa.JSON, nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_audit_events_tenant_id', 'audit_events', ['tenant_id'])
    op.create_index('ix_audit_events_user_id', 'audit_events', ['user_id'])
    op.create_index('idx_audit_events_entity', 'audit_events', ['entity_type', 'entity_id'])


def downgrade() -> None:
    """Drop TeamDesk core tables."""
    op.drop_table('audit_events')
    op.drop_table('invitations')
    op.drop_table('invitation_templates')
    op.drop_table('team_members')
    op.drop_table('teams')
    op.drop_table('users')
    op.drop_table('tenants')
