"""Pydantic schemas for team endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from teamdesk.models.enums import TeamMemberRole, UserRole, UserStatus
from teamdesk.models.team import Team
from teamdesk.models.user import User

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class CreateTeamRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)
    color: str | None = Field(None, pattern=HEX_COLOR_PATTERN)
    is_default: bool = False


class UpdateTeamRequest(BaseModel):
    """All fields optional (partial update)."""

    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)
    color: str | None = Field(None, pattern=HEX_COLOR_PATTERN)
    is_default: bool | None = None


class TeamResponse(BaseModel):
    id: UUID
    tenant_id: UUID
    name: str
    description: str | None = None
    color: str
    is_default: bool
    member_count: int = 0
    active_members: int = 0
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_team(cls, team: Team) -> "TeamResponse":
        """Build from a team whose ``members`` are loaded."""
        return cls(
            id=team.id,
            tenant_id=team.tenant_id,
            name=team.name,
            description=team.description,
            color=team.color,
            is_default=team.is_default,
            member_count=len(team.members),
            active_members=sum(1 for m in team.members if m.is_active),
            created_at=team.created_at,
            updated_at=team.updated_at,
        )


class AddMemberRequest(BaseModel):
    user_id: UUID
    role: TeamMemberRole = TeamMemberRole.MEMBER
    permissions: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)


class UpdateMemberRequest(BaseModel):
    role: TeamMemberRole | None = None
    permissions: list[str] | None = None
    skills: list[str] | None = None
    is_active: bool | None = None


class TeamMemberResponse(BaseModel):
    id: UUID
    team_id: UUID
    user_id: UUID
    role: TeamMemberRole
    permissions: list[str]
    skills: list[str]
    is_active: bool
    joined_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AvailableUserResponse(BaseModel):
    """A user who can be added to a team."""

    id: UUID
    email: str
    first_name: str
    last_name: str
    role: UserRole
    status: UserStatus
    is_team_member: bool

    @classmethod
    def from_user(cls, user: User, is_team_member: bool) -> "AvailableUserResponse":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role,
            status=user.status,
            is_team_member=is_team_member,
        )


class TeamStatsResponse(BaseModel):
    total_teams: int
    total_members: int
    active_members: int
    average_team_size: float
