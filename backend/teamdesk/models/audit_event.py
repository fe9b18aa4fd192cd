"""AuditEvent model."""

from sqlalchemy import JSON, Column, ForeignKey, Index, String, Uuid
from sqlalchemy import Enum as SQLEnum

from teamdesk.models.base import BaseModel
from teamdesk.models.enums import AuditAction, enum_values


class AuditEvent(BaseModel):
    """Append-only audit trail for administrative and lifecycle actions.

    ``user_id`` is the acting user; it is empty for unattended actions such as
    the expiry sweep.
    """

    __tablename__ = "audit_events"

    tenant_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    user_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    action = Column(
        SQLEnum(
            AuditAction,
            name="audit_action",
            native_enum=False,
            length=40,
            values_callable=enum_values,
        ),
        nullable=False,
    )
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(Uuid(as_uuid=True), nullable=True)
    diff_json = Column(JSON, nullable=True)
    ip_address = Column(String(45), nullable=True)

    __table_args__ = (
        Index("idx_audit_events_entity", "entity_type", "entity_id"),
    )

    def __repr__(self) -> str:
        return f"<AuditEvent(id={self.id}, action={self.action}, entity_type={self.entity_type})>"
