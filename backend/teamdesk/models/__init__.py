"""SQLAlchemy models."""

from teamdesk.models.audit_event import AuditEvent
from teamdesk.models.base import Base, BaseModel
from teamdesk.models.enums import (
    AuditAction,
    ChannelType,
    InvitationRole,
    InvitationStatus,
    TeamMemberRole,
    UserRole,
    UserStatus,
)
from teamdesk.models.invitation import Invitation
from teamdesk.models.invitation_template import InvitationTemplate
from teamdesk.models.team import Team, TeamMember
from teamdesk.models.tenant import Tenant
from teamdesk.models.user import User

__all__ = [
    "Base",
    "BaseModel",
    "UserRole",
    "UserStatus",
    "InvitationRole",
    "InvitationStatus",
    "TeamMemberRole",
    "ChannelType",
    "AuditAction",
    "Tenant",
    "User",
    "Team",
    "TeamMember",
    "Invitation",
    "InvitationTemplate",
    "AuditEvent",
]
