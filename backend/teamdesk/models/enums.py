"""Enumerations for roles, statuses and audit actions."""

from enum import Enum


class UserRole(str, Enum):
    """Tenant-level user role.

    Authorization hierarchy (see ``teamdesk.core.permissions``):
    OWNER > SUPER_ADMIN > {ADMIN, MANAGER, AGENT} > VIEWER
    """

    OWNER = "owner"
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    MANAGER = "manager"
    AGENT = "agent"
    VIEWER = "viewer"


class InvitationRole(str, Enum):
    """Roles an invitation may grant."""

    AGENT = "agent"
    ADMIN = "admin"
    MANAGER = "manager"

    def to_user_role(self) -> UserRole:
        return UserRole(self.value)


class InvitationStatus(str, Enum):
    """Invitation lifecycle status.

    PENDING is the only non-terminal state.
    """

    PENDING = "pending"
    ACCEPTED = "accepted"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class UserStatus(str, Enum):
    ACTIVE = "active"
    REMOVED = "removed"


class TeamMemberRole(str, Enum):
    """Role of a user within a single team."""

    MEMBER = "member"
    LEAD = "lead"
    ADMIN = "admin"


class ChannelType(str, Enum):
    WHATSAPP = "whatsapp"
    INSTAGRAM = "instagram"
    EMAIL = "email"


class AuditAction(str, Enum):
    """Audit action enumeration for tracking administrative actions."""

    # Tenant
    TENANT_CREATE = "tenant.create"
    TENANT_UPDATE = "tenant.update"
    TENANT_CONFIGURE = "tenant.configure"

    # User
    USER_CREATE = "user.create"

    # Invitation
    INVITATION_CREATE = "invitation.create"
    INVITATION_RESEND = "invitation.resend"
    INVITATION_ACCEPT = "invitation.accept"
    INVITATION_EXPIRE = "invitation.expire"
    INVITATION_REVOKE = "invitation.revoke"

    # Team
    TEAM_CREATE = "team.create"
    TEAM_UPDATE = "team.update"
    TEAM_DELETE = "team.delete"
    TEAM_MEMBER_ADD = "team.member_add"
    TEAM_MEMBER_UPDATE = "team.member_update"
    TEAM_MEMBER_REMOVE = "team.member_remove"

    # Invitation template
    TEMPLATE_CREATE = "template.create"
    TEMPLATE_UPDATE = "template.update"


def enum_values(enum_cls: type[Enum]) -> list[str]:
    """``values_callable`` for SQLAlchemy Enum columns (store values, not names)."""
    return [member.value for member in enum_cls]
