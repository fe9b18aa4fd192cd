"""Tenant model."""
from sqlalchemy import JSON, CheckConstraint, Column, String
from sqlalchemy.orm import relationship

from teamdesk.models.base import BaseModel


class Tenant(BaseModel):
    """Tenant entity: the company workspace that owns users, teams and invitations.

    Configuration blobs are stored as JSON but are only ever written through the
    structured records in ``teamdesk.schemas.configuration``.
    """

    __tablename__ = "tenants"

    name = Column(String(255), nullable=False, unique=True, index=True)
    branding_config = Column(JSON, nullable=False, default=dict)
    channel_config = Column(JSON, nullable=False, default=dict)
    workflow_config = Column(JSON, nullable=False, default=dict)

    users = relationship("User", back_populates="tenant", cascade="all, delete-orphan")
    teams = relationship("Team", back_populates="tenant", cascade="all, delete-orphan")
    invitations = relationship(
        "Invitation", back_populates="tenant", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("LENGTH(name) > 0", name="tenant_name_not_empty"),
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, name={self.name})>"
