"""Team and team membership models."""
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import relationship

from teamdesk.models.base import BaseModel, UTCDateTime, utcnow
from teamdesk.models.enums import TeamMemberRole, enum_values


class Team(BaseModel):
    """A group of agents inside a tenant.

    At most one team per tenant is the default; the default team cannot be
    deleted and neither can a team that still has members.
    """

    __tablename__ = "teams"

    tenant_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(7), nullable=False)
    is_default = Column(Boolean, nullable=False, default=False)

    tenant = relationship("Tenant", back_populates="teams")
    members = relationship("TeamMember", back_populates="team", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_teams_tenant_name"),
        Index(
            "uq_teams_tenant_default",
            "tenant_id",
            unique=True,
            postgresql_where=text("is_default"),
            sqlite_where=text("is_default = 1"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Team(id={self.id}, name={self.name}, is_default={self.is_default})>"


class TeamMember(BaseModel):
    """Membership of a user in a team."""

    __tablename__ = "team_members"

    team_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role = Column(
        SQLEnum(
            TeamMemberRole,
            name="team_member_role",
            native_enum=False,
            length=16,
            values_callable=enum_values,
        ),
        nullable=False,
        default=TeamMemberRole.MEMBER,
    )
    permissions = Column(JSON, nullable=False, default=list)
    skills = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    joined_at = Column(UTCDateTime(), nullable=False, default=utcnow)

    team = relationship("Team", back_populates="members")
    user = relationship("User", back_populates="team_memberships")

    __table_args__ = (
        UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),
    )

    def __repr__(self) -> str:
        return f"<TeamMember(team_id={self.team_id}, user_id={self.user_id}, role={self.role})>"
