"""Invitation model."""
from sqlalchemy import JSON, Column, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import relationship

from teamdesk.models.base import BaseModel, UTCDateTime
from teamdesk.models.enums import InvitationRole, InvitationStatus, enum_values


class Invitation(BaseModel):
    """Invitation for a prospective team member.

    The token is kept as issued because resending re-delivers the same link.
    Only one pending invitation may exist per (tenant, email); the partial
    unique index backs that up under concurrent requests.
    """

    __tablename__ = "invitations"

    tenant_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
    )
    inviter_user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    email = Column(String(255), nullable=False)
    role = Column(
        SQLEnum(
            InvitationRole,
            name="invitation_role",
            native_enum=False,
            length=32,
            values_callable=enum_values,
        ),
        nullable=False,
    )
    token = Column(String(128), nullable=False, unique=True)
    status = Column(
        SQLEnum(
            InvitationStatus,
            name="invitation_status",
            native_enum=False,
            length=16,
            values_callable=enum_values,
        ),
        nullable=False,
        default=InvitationStatus.PENDING,
    )
    expires_at = Column(UTCDateTime(), nullable=False, index=True)
    accepted_at = Column(UTCDateTime(), nullable=True)
    custom_message = Column(Text, nullable=True)
    team_ids = Column(JSON, nullable=False, default=list)
    permissions = Column(JSON, nullable=False, default=list)
    template_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("invitation_templates.id", ondelete="SET NULL"),
        nullable=True,
    )

    tenant = relationship("Tenant", back_populates="invitations")

    __table_args__ = (
        Index("idx_invitations_tenant_email", "tenant_id", "email"),
        Index(
            "uq_invitations_pending_email",
            "tenant_id",
            "email",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Invitation(id={self.id}, email={self.email}, status={self.status})>"
