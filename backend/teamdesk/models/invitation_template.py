"""Invitation e-mail template model."""
from sqlalchemy import Boolean, Column, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy import Enum as SQLEnum

from teamdesk.models.base import BaseModel
from teamdesk.models.enums import InvitationRole, enum_values


class InvitationTemplate(BaseModel):
    """Per-tenant subject/body used when e-mailing an invitation.

    ``content`` may reference ``{inviterName}``, ``{inviterEmail}``,
    ``{inviteUrl}``, ``{role}`` and ``{customMessage}``.
    """

    __tablename__ = "invitation_templates"

    tenant_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(100), nullable=False)
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
    subject = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    is_default = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_invitation_templates_tenant_name"),
    )

    def __repr__(self) -> str:
        return f"<InvitationTemplate(id={self.id}, name={self.name}, role={self.role})>"
