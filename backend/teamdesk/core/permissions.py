"""Role hierarchy and permission resolution.

All authorization decisions go through this module: HTTP guards, services and
the ``/me/permissions`` endpoint never compare role strings themselves.

Hierarchy::

    owner > super_admin > {admin, manager, agent} > viewer

``owner`` satisfies every check. ``super_admin`` satisfies admin, manager and
agent checks. The three middle roles are siblings: an admin does not
automatically pass an agent-only check.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamdesk.models.enums import UserRole, UserStatus
from teamdesk.models.user import User


class Permission(str, Enum):
    """Catalog of named permissions."""

    # Viewer-level
    TEAMS_VIEW = "teams.view"
    SETTINGS_VIEW = "settings.view"
    TICKETS_VIEW = "tickets.view"

    # Agent-level
    TICKETS_REPLY = "tickets.reply"
    CONVERSATIONS_HANDLE = "conversations.handle"
    CUSTOMERS_EDIT = "customers.edit"

    # Manager-level
    TICKETS_ASSIGN = "tickets.assign"
    ANALYTICS_VIEW = "analytics.view"

    # Admin-level
    INVITATIONS_MANAGE = "invitations.manage"
    TEAMS_MANAGE = "teams.manage"
    SETTINGS_MANAGE = "settings.manage"
    CHANNELS_MANAGE = "channels.manage"
    USERS_MANAGE = "users.manage"

    # Owner-only
    TENANT_DELETE = "tenant.delete"
    BILLING_MANAGE = "billing.manage"


# Roles each role satisfies when a check asks for a specific role
ROLE_SATISFIES: dict[UserRole, frozenset[UserRole]] = {
    UserRole.OWNER: frozenset(UserRole),
    UserRole.SUPER_ADMIN: frozenset(
        {
            UserRole.SUPER_ADMIN,
            UserRole.ADMIN,
            UserRole.MANAGER,
            UserRole.AGENT,
            UserRole.VIEWER,
        }
    ),
    UserRole.ADMIN: frozenset({UserRole.ADMIN, UserRole.VIEWER}),
    UserRole.MANAGER: frozenset({UserRole.MANAGER, UserRole.VIEWER}),
    UserRole.AGENT: frozenset({UserRole.AGENT, UserRole.VIEWER}),
    UserRole.VIEWER: frozenset({UserRole.VIEWER}),
}

# Minimum role gating each permission
PERMISSION_GATES: dict[Permission, UserRole] = {
    Permission.TEAMS_VIEW: UserRole.VIEWER,
    Permission.SETTINGS_VIEW: UserRole.VIEWER,
    Permission.TICKETS_VIEW: UserRole.VIEWER,
    Permission.TICKETS_REPLY: UserRole.AGENT,
    Permission.CONVERSATIONS_HANDLE: UserRole.AGENT,
    Permission.CUSTOMERS_EDIT: UserRole.AGENT,
    Permission.TICKETS_ASSIGN: UserRole.MANAGER,
    Permission.ANALYTICS_VIEW: UserRole.MANAGER,
    Permission.INVITATIONS_MANAGE: UserRole.ADMIN,
    Permission.TEAMS_MANAGE: UserRole.ADMIN,
    Permission.SETTINGS_MANAGE: UserRole.ADMIN,
    Permission.CHANNELS_MANAGE: UserRole.ADMIN,
    Permission.USERS_MANAGE: UserRole.ADMIN,
    Permission.TENANT_DELETE: UserRole.OWNER,
    Permission.BILLING_MANAGE: UserRole.OWNER,
}


class PermissionSubject(Protocol):
    """Anything carrying a role and explicit grants (users, JWT claims)."""

    role: UserRole
    permissions: list[str] | None


def _coerce_role(role: UserRole | str | None) -> UserRole | None:
    if role is None or isinstance(role, UserRole):
        return role
    try:
        return UserRole(role)
    except ValueError:
        return None


def _lookup_permission(name: Permission | str) -> Permission | None:
    if isinstance(name, Permission):
        return name
    try:
        return Permission(name)
    except ValueError:
        return None


def role_satisfies(role: UserRole | str | None, required_role: UserRole) -> bool:
    """Whether ``role`` passes a check that asks for ``required_role``."""
    resolved = _coerce_role(role)
    if resolved is None:
        return False
    return required_role in ROLE_SATISFIES[resolved]


def role_default_permissions(role: UserRole | str | None) -> frozenset[Permission]:
    """Permissions implied by a role without any explicit grant."""
    resolved = _coerce_role(role)
    if resolved is None:
        return frozenset()
    return frozenset(
        permission
        for permission, gate in PERMISSION_GATES.items()
        if gate in ROLE_SATISFIES[resolved]
    )


def _explicit_grants(grants: Iterable[str] | None) -> frozenset[Permission]:
    resolved = (_lookup_permission(name) for name in grants or ())
    return frozenset(permission for permission in resolved if permission is not None)


def effective_permissions(user: PermissionSubject | None) -> frozenset[Permission]:
    """Explicit grants unioned with role defaults."""
    if user is None:
        return frozenset()
    return role_default_permissions(user.role) | _explicit_grants(user.permissions)


def has_permission(user: PermissionSubject | None, permission_name: Permission | str) -> bool:
    """Decide a single permission check.

    Fails closed: a missing user or an unknown permission name is denied.
    """
    if user is None:
        return False

    role = _coerce_role(user.role)
    if role == UserRole.OWNER:
        return True

    permission = _lookup_permission(permission_name)
    if permission is None:
        return False

    if role is not None and PERMISSION_GATES[permission] in ROLE_SATISFIES[role]:
        return True

    return permission in _explicit_grants(user.permissions)


async def resolve_permission(
    db: AsyncSession,
    tenant_id: UUID,
    user_id: UUID,
    permission_name: Permission | str,
) -> bool:
    """Load a user and check a permission; never raises for a missing user."""
    result = await db.execute(
        select(User).where(User.id == user_id, User.tenant_id == tenant_id)
    )
    user = result.scalar_one_or_none()
    if user is None or user.status != UserStatus.ACTIVE:
        return False
    return has_permission(user, permission_name)
