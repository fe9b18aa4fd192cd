"""User model."""
from sqlalchemy import JSON, Column, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import relationship

from teamdesk.models.base import BaseModel
from teamdesk.models.enums import UserRole, UserStatus, enum_values


class User(BaseModel):
    """User entity belonging to exactly one tenant.

    ``permissions`` holds explicit grants on top of the defaults implied by
    ``role``; see ``teamdesk.core.permissions``.
    """

    __tablename__ = "users"

    tenant_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    email = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    password_hash = Column(String(255), nullable=True)
    role = Column(
        SQLEnum(UserRole, name="user_role", native_enum=False, length=32, values_callable=enum_values),
        nullable=False,
        default=UserRole.VIEWER,
    )
    status = Column(
        SQLEnum(UserStatus, name="user_status", native_enum=False, length=16, values_callable=enum_values),
        nullable=False,
        default=UserStatus.ACTIVE,
    )
    permissions = Column(JSON, nullable=False, default=list)

    tenant = relationship("Tenant", back_populates="users")
    team_memberships = relationship(
        "TeamMember", back_populates="user", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
