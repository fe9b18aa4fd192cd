"""Domain events returned by lifecycle operations.

Services never publish side effects themselves; they return events and the
caller hands them to ``EventDispatcher``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, ClassVar
from uuid import UUID

from teamdesk.models.enums import AuditAction


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class DomainEvent:
    """Base event. Subclasses set ``name``, ``action`` and ``entity_type``."""

    name: ClassVar[str] = "domain_event"
    action: ClassVar[AuditAction | None] = None
    entity_type: ClassVar[str] = "invitation"

    tenant_id: UUID | None
    actor_id: UUID | None
    occurred_at: datetime = field(default_factory=_now, kw_only=True)

    @property
    def entity_id(self) -> UUID | None:
        return None

    def payload(self) -> dict[str, Any]:
        return {}


@dataclass(frozen=True)
class InvitationCreated(DomainEvent):
    name: ClassVar[str] = "invitation_created"
    action: ClassVar[AuditAction] = AuditAction.INVITATION_CREATE

    invitation_id: UUID
    email: str
    role: str
    expires_at: datetime
    notified: bool

    @property
    def entity_id(self) -> UUID:
        return self.invitation_id

    def payload(self) -> dict[str, Any]:
        return {
            "email": self.email,
            "role": self.role,
            "expires_at": self.expires_at.isoformat(),
            "notified": self.notified,
        }


@dataclass(frozen=True)
class InvitationResent(DomainEvent):
    name: ClassVar[str] = "invitation_resent"
    action: ClassVar[AuditAction] = AuditAction.INVITATION_RESEND

    invitation_id: UUID
    expires_at: datetime
    notified: bool

    @property
    def entity_id(self) -> UUID:
        return self.invitation_id

    def payload(self) -> dict[str, Any]:
        return {"expires_at": self.expires_at.isoformat(), "notified": self.notified}


@dataclass(frozen=True)
class InvitationCancelled(DomainEvent):
    name: ClassVar[str] = "invitation_cancelled"
    action: ClassVar[AuditAction] = AuditAction.INVITATION_REVOKE

    invitation_id: UUID
    email: str

    @property
    def entity_id(self) -> UUID:
        return self.invitation_id

    def payload(self) -> dict[str, Any]:
        return {"email": self.email}


@dataclass(frozen=True)
class InvitationAccepted(DomainEvent):
    name: ClassVar[str] = "invitation_accepted"
    action: ClassVar[AuditAction] = AuditAction.INVITATION_ACCEPT

    invitation_id: UUID
    user_id: UUID
    email: str
    role: str
    team_ids: tuple[str, ...] = ()

    @property
    def entity_id(self) -> UUID:
        return self.invitation_id

    def payload(self) -> dict[str, Any]:
        return {
            "user_id": str(self.user_id),
            "email": self.email,
            "role": self.role,
            "team_ids": list(self.team_ids),
        }


@dataclass(frozen=True)
class InvitationsExpired(DomainEvent):
    """Emitted once per sweep; spans tenants so ``tenant_id`` is empty."""

    name: ClassVar[str] = "invitations_expired"
    action: ClassVar[AuditAction] = AuditAction.INVITATION_EXPIRE

    count: int

    def payload(self) -> dict[str, Any]:
        return {"count": self.count}
