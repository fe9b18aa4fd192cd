"""Team and team member endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from teamdesk.api.deps import require_permission
from teamdesk.core.database import get_db
from teamdesk.core.permissions import Permission
from teamdesk.models.user import User
from teamdesk.schemas.team import (
    AddMemberRequest,
    AvailableUserResponse,
    CreateTeamRequest,
    TeamMemberResponse,
    TeamResponse,
    TeamStatsResponse,
    UpdateMemberRequest,
    UpdateTeamRequest,
)
from teamdesk.services.team_service import TeamService

router = APIRouter()

view_teams = require_permission(Permission.TEAMS_VIEW)
manage_teams = require_permission(Permission.TEAMS_MANAGE)


@router.get("", response_model=list[TeamResponse])
async def list_teams(
    mine: bool = False,
    current_user: User = Depends(view_teams),
    db: AsyncSession = Depends(get_db),
):
    """List teams; ``mine=true`` keeps only teams the caller belongs to."""
    teams = await TeamService(db).list_teams(
        current_user.tenant_id, user_id=current_user.id if mine else None
    )
    return [TeamResponse.from_team(team) for team in teams]


@router.post("", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
async def create_team(
    team_data: CreateTeamRequest,
    current_user: User = Depends(manage_teams),
    db: AsyncSession = Depends(get_db),
):
    team = await TeamService(db).create_team(
        tenant_id=current_user.tenant_id,
        name=team_data.name,
        description=team_data.description,
        color=team_data.color,
        is_default=team_data.is_default,
        actor_id=current_user.id,
    )
    return TeamResponse.from_team(team)


@router.get("/stats", response_model=TeamStatsResponse)
async def team_stats(
    current_user: User = Depends(view_teams),
    db: AsyncSession = Depends(get_db),
):
    return TeamStatsResponse(**await TeamService(db).get_stats(current_user.tenant_id))


@router.get("/{team_id}", response_model=TeamResponse)
async def get_team(
    team_id: UUID,
    current_user: User = Depends(view_teams),
    db: AsyncSession = Depends(get_db),
):
    team = await TeamService(db).get_team(current_user.tenant_id, team_id)
    return TeamResponse.from_team(team)


@router.patch("/{team_id}", response_model=TeamResponse)
async def update_team(
    team_id: UUID,
    team_data: UpdateTeamRequest,
    current_user: User = Depends(manage_teams),
    db: AsyncSession = Depends(get_db),
):
    team = await TeamService(db).update_team(
        tenant_id=current_user.tenant_id,
        team_id=team_id,
        name=team_data.name,
        description=team_data.description,
        color=team_data.color,
        is_default=team_data.is_default,
        actor_id=current_user.id,
    )
    return TeamResponse.from_team(team)


@router.delete("/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_team(
    team_id: UUID,
    current_user: User = Depends(manage_teams),
    db: AsyncSession = Depends(get_db),
):
    """Delete an empty, non-default team.

    Raises:
        HTTPException: 409 for the default team or a team with members
    """
    await TeamService(db).delete_team(current_user.tenant_id, team_id, actor_id=current_user.id)


@router.get("/{team_id}/members", response_model=list[TeamMemberResponse])
async def list_members(
    team_id: UUID,
    current_user: User = Depends(view_teams),
    db: AsyncSession = Depends(get_db),
):
    members = await TeamService(db).list_members(current_user.tenant_id, team_id)
    return [TeamMemberResponse.model_validate(m) for m in members]


@router.post(
    "/{team_id}/members",
    response_model=TeamMemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_member(
    team_id: UUID,
    member_data: AddMemberRequest,
    current_user: User = Depends(manage_teams),
    db: AsyncSession = Depends(get_db),
):
    member = await TeamService(db).add_member(
        tenant_id=current_user.tenant_id,
        team_id=team_id,
        user_id=member_data.user_id,
        role=member_data.role,
        permissions=member_data.permissions,
        skills=member_data.skills,
        actor_id=current_user.id,
    )
    return TeamMemberResponse.model_validate(member)


@router.patch("/{team_id}/members/{member_id}", response_model=TeamMemberResponse)
async def update_member(
    team_id: UUID,
    member_id: UUID,
    member_data: UpdateMemberRequest,
    current_user: User = Depends(manage_teams),
    db: AsyncSession = Depends(get_db),
):
    member = await TeamService(db).update_member(
        tenant_id=current_user.tenant_id,
        team_id=team_id,
        member_id=member_id,
        role=member_data.role,
        permissions=member_data.permissions,
        skills=member_data.skills,
        is_active=member_data.is_active,
        actor_id=current_user.id,
    )
    return TeamMemberResponse.model_validate(member)


@router.delete("/{team_id}/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    team_id: UUID,
    member_id: UUID,
    current_user: User = Depends(manage_teams),
    db: AsyncSession = Depends(get_db),
):
    await TeamService(db).remove_member(
        current_user.tenant_id, team_id, member_id, actor_id=current_user.id
    )


@router.get("/{team_id}/available-users", response_model=list[AvailableUserResponse])
async def list_available_users(
    team_id: UUID,
    current_user: User = Depends(manage_teams),
    db: AsyncSession = Depends(get_db),
):
    """Users who can hold a team seat, flagged when already on the team."""
    users = await TeamService(db).list_available_users(current_user.tenant_id, team_id)
    return [AvailableUserResponse.from_user(user, is_member) for user, is_member in users]
