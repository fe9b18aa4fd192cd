"""Team service for teams and team membership."""

from __future__ import annotations

import random
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from teamdesk.core.errors import ConflictError, ForbiddenError, NotFoundError
from teamdesk.models.enums import AuditAction, TeamMemberRole, UserRole, UserStatus
from teamdesk.models.team import Team, TeamMember
from teamdesk.models.user import User
from teamdesk.services.audit_service import AuditService

TEAM_COLORS = (
    "#3B82F6",
    "#10B981",
    "#F59E0B",
    "#EF4444",
    "#8B5CF6",
    "#06B6D4",
    "#F97316",
    "#84CC16",
    "#EC4899",
    "#6B7280",
)


TEAM_SEAT_ROLES = (UserRole.AGENT, UserRole.MANAGER, UserRole.ADMIN)


def _team_conflict(exc: IntegrityError) -> ConflictError | None:
    """Map a teams unique violation onto its conflict; None for anything else."""
    message = str(exc.orig)
    # postgres names the constraint, sqlite lists the columns
    if "uq_teams_tenant_name" in message or "teams.tenant_id, teams.name" in message:
        return ConflictError("Team name already exists")
    if "uq_teams_tenant_default" in message or message.rstrip().endswith("teams.tenant_id"):
        return ConflictError("Tenant already has a default team")
    return None


class TeamService:
    """Service for creating teams and managing their members."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit_service = AuditService(db)

    async def create_team(
        self,
        tenant_id: UUID,
        name: str,
        description: str | None = None,
        color: str | None = None,
        is_default: bool = False,
        actor_id: UUID | None = None,
    ) -> Team:
        """Create a team.

        When ``is_default`` is set, the tenant's current default team is
        unset in the same transaction first.

        Raises:
            ConflictError: the name is already used in the tenant, or a
                concurrent request made another team the default
        """
        name = name.strip()
        if await self._name_taken(tenant_id, name):
            raise ConflictError("Team name already exists")

        if is_default:
            await self._clear_default(tenant_id)

        team = Team(
            tenant_id=tenant_id,
            name=name,
            description=description,
            color=color or random.choice(TEAM_COLORS),
            is_default=is_default,
            members=[],
        )
        try:
            async with self.db.begin_nested():
                self.db.add(team)
                await self.db.flush()
        except IntegrityError as exc:
            conflict = _team_conflict(exc)
            if conflict is None:
                raise
            raise conflict from exc

        await self.audit_service.log(
            tenant_id=tenant_id,
            action=AuditAction.TEAM_CREATE,
            entity_type="team",
            entity_id=team.id,
            user_id=actor_id,
            diff_json={"name": name, "is_default": is_default},
        )
        return await self.get_team(tenant_id, team.id)

    async def list_teams(self, tenant_id: UUID, user_id: UUID | None = None) -> list[Team]:
        """Teams of the tenant, default first then by name.

        With ``user_id``, only teams where that user is an active member.
        """
        query = (
            select(Team)
            .where(Team.tenant_id == tenant_id)
            .options(selectinload(Team.members))
            .order_by(Team.is_default.desc(), Team.name)
            .execution_options(populate_existing=True)
        )
        if user_id is not None:
            query = query.where(
                Team.id.in_(
                    select(TeamMember.team_id).where(
                        TeamMember.user_id == user_id,
                        TeamMember.is_active.is_(True),
                    )
                )
            )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_team(self, tenant_id: UUID, team_id: UUID) -> Team:
        """Get a team with its members loaded.

        Raises:
            NotFoundError: no such team in the tenant
        """
        result = await self.db.execute(
            select(Team)
            .where(Team.id == team_id, Team.tenant_id == tenant_id)
            .options(selectinload(Team.members))
            .execution_options(populate_existing=True)
        )
        team = result.scalar_one_or_none()
        if team is None:
            raise NotFoundError("Team not found")
        return team

    async def update_team(
        self,
        tenant_id: UUID,
        team_id: UUID,
        name: str | None = None,
        description: str | None = None,
        color: str | None = None,
        is_default: bool | None = None,
        actor_id: UUID | None = None,
    ) -> Team:
        team = await self.get_team(tenant_id, team_id)
        before = {"name": team.name, "color": team.color, "is_default": team.is_default}

        if name is not None:
            name = name.strip()
            if name != team.name and await self._name_taken(tenant_id, name, exclude_id=team_id):
                raise ConflictError("Team name already exists")
            team.name = name
        if description is not None:
            team.description = description
        if color is not None:
            team.color = color
        if is_default is not None and is_default != team.is_default:
            if is_default:
                await self._clear_default(tenant_id, exclude_id=team_id)
            team.is_default = is_default
        try:
            async with self.db.begin_nested():
                await self.db.flush()
        except IntegrityError as exc:
            conflict = _team_conflict(exc)
            if conflict is None:
                raise
            raise conflict from exc

        await self.audit_service.log(
            tenant_id=tenant_id,
            action=AuditAction.TEAM_UPDATE,
            entity_type="team",
            entity_id=team.id,
            user_id=actor_id,
            diff_json={
                "before": before,
                "after": {"name": team.name, "color": team.color, "is_default": team.is_default},
            },
        )
        return await self.get_team(tenant_id, team_id)

    async def delete_team(
        self, tenant_id: UUID, team_id: UUID, actor_id: UUID | None = None
    ) -> None:
        """Delete an empty, non-default team.

        The default check comes before the membership check.

        Raises:
            NotFoundError: no such team
            ConflictError: the team is the default or still has members
        """
        team = await self.get_team(tenant_id, team_id)
        if team.is_default:
            raise ConflictError("Cannot delete default team")

        member_count = await self.db.scalar(
            select(func.count()).select_from(TeamMember).where(TeamMember.team_id == team_id)
        )
        if member_count:
            raise ConflictError("Cannot delete team with members. Remove all members first.")

        await self.db.delete(team)
        await self.db.flush()

        await self.audit_service.log(
            tenant_id=tenant_id,
            action=AuditAction.TEAM_DELETE,
            entity_type="team",
            entity_id=team_id,
            user_id=actor_id,
            diff_json={"name": team.name},
        )

    async def list_members(self, tenant_id: UUID, team_id: UUID) -> list[TeamMember]:
        await self.get_team(tenant_id, team_id)
        result = await self.db.execute(
            select(TeamMember)
            .where(TeamMember.team_id == team_id)
            .order_by(TeamMember.joined_at)
        )
        return list(result.scalars().all())

    async def add_member(
        self,
        tenant_id: UUID,
        team_id: UUID,
        user_id: UUID,
        role: TeamMemberRole = TeamMemberRole.MEMBER,
        permissions: list[str] | None = None,
        skills: list[str] | None = None,
        actor_id: UUID | None = None,
    ) -> TeamMember:
        """Add a user to a team.

        Raises:
            NotFoundError: team or user missing
            ConflictError: the user is already a member
        """
        await self.get_team(tenant_id, team_id)

        result = await self.db.execute(
            select(User).where(
                User.id == user_id,
                User.tenant_id == tenant_id,
                User.status == UserStatus.ACTIVE,
            )
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError("User not found")

        existing = await self.db.execute(
            select(TeamMember.id).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("User is already a team member")

        member = TeamMember(
            team_id=team_id,
            user_id=user_id,
            role=role,
            permissions=list(permissions or []),
            skills=list(skills or []),
            is_active=True,
        )
        try:
            async with self.db.begin_nested():
                self.db.add(member)
                await self.db.flush()
        except IntegrityError as exc:
            raise ConflictError("User is already a team member") from exc

        await self.audit_service.log(
            tenant_id=tenant_id,
            action=AuditAction.TEAM_MEMBER_ADD,
            entity_type="team",
            entity_id=team_id,
            user_id=actor_id,
            diff_json={"member_id": str(member.id), "user_id": str(user_id), "role": role.value},
        )
        return member

    async def update_member(
        self,
        tenant_id: UUID,
        team_id: UUID,
        member_id: UUID,
        role: TeamMemberRole | None = None,
        permissions: list[str] | None = None,
        skills: list[str] | None = None,
        is_active: bool | None = None,
        actor_id: UUID | None = None,
    ) -> TeamMember:
        member = await self._get_member(tenant_id, team_id, member_id)

        changes = {}
        if role is not None:
            member.role = role
            changes["role"] = role.value
        if permissions is not None:
            member.permissions = list(permissions)
            changes["permissions"] = list(permissions)
        if skills is not None:
            member.skills = list(skills)
            changes["skills"] = list(skills)
        if is_active is not None:
            member.is_active = is_active
            changes["is_active"] = is_active
        await self.db.flush()

        if changes:
            await self.audit_service.log(
                tenant_id=tenant_id,
                action=AuditAction.TEAM_MEMBER_UPDATE,
                entity_type="team",
                entity_id=team_id,
                user_id=actor_id,
                diff_json={"member_id": str(member_id), **changes},
            )
        return member

    async def remove_member(
        self,
        tenant_id: UUID,
        team_id: UUID,
        member_id: UUID,
        actor_id: UUID | None = None,
    ) -> None:
        """Remove a member from a team.

        Raises:
            NotFoundError: team or member missing
        """
        member = await self._get_member(tenant_id, team_id, member_id)
        user_id = member.user_id
        await self.db.delete(member)
        await self.db.flush()

        await self.audit_service.log(
            tenant_id=tenant_id,
            action=AuditAction.TEAM_MEMBER_REMOVE,
            entity_type="team",
            entity_id=team_id,
            user_id=actor_id,
            diff_json={"member_id": str(member_id), "user_id": str(user_id)},
        )

    async def list_available_users(
        self, tenant_id: UUID, team_id: UUID | None = None
    ) -> list[tuple[User, bool]]:
        """Active users who can hold a team seat, ordered by e-mail.

        Each user is paired with whether they already belong to ``team_id``,
        or to any team of the tenant when no team is given.

        Raises:
            NotFoundError: ``team_id`` is not a team of the tenant
        """
        memberships = select(TeamMember.user_id).join(Team, Team.id == TeamMember.team_id)
        if team_id is not None:
            await self.get_team(tenant_id, team_id)
            memberships = memberships.where(TeamMember.team_id == team_id)
        else:
            memberships = memberships.where(Team.tenant_id == tenant_id)

        result = await self.db.execute(
            select(User, User.id.in_(memberships).label("is_team_member"))
            .where(
                User.tenant_id == tenant_id,
                User.status == UserStatus.ACTIVE,
                User.role.in_(TEAM_SEAT_ROLES),
            )
            .order_by(User.email)
        )
        return [(user, bool(is_member)) for user, is_member in result.all()]

    async def get_stats(self, tenant_id: UUID) -> dict:
        teams = await self.list_teams(tenant_id)
        total_teams = len(teams)
        total_members = sum(len(team.members) for team in teams)
        active_members = sum(1 for team in teams for m in team.members if m.is_active)
        average = total_members / total_teams if total_teams else 0
        return {
            "total_teams": total_teams,
            "total_members": total_members,
            "active_members": active_members,
            "average_team_size": round(average, 2),
        }

    async def verify_membership(self, tenant_id: UUID, team_id: UUID, user_id: UUID) -> None:
        """Raise ForbiddenError unless the user is an active member of the team."""
        result = await self.db.execute(
            select(TeamMember.id)
            .join(Team, Team.id == TeamMember.team_id)
            .where(
                Team.tenant_id == tenant_id,
                TeamMember.team_id == team_id,
                TeamMember.user_id == user_id,
                TeamMember.is_active.is_(True),
            )
        )
        if result.scalar_one_or_none() is None:
            raise ForbiddenError("You are not a member of this team")

    async def _get_member(self, tenant_id: UUID, team_id: UUID, member_id: UUID) -> TeamMember:
        await self.get_team(tenant_id, team_id)
        result = await self.db.execute(
            select(TeamMember).where(TeamMember.id == member_id, TeamMember.team_id == team_id)
        )
        member = result.scalar_one_or_none()
        if member is None:
            raise NotFoundError("Team member not found")
        return member

    async def _name_taken(
        self, tenant_id: UUID, name: str, exclude_id: UUID | None = None
    ) -> bool:
        query = select(Team.id).where(Team.tenant_id == tenant_id, Team.name == name)
        if exclude_id is not None:
            query = query.where(Team.id != exclude_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none() is not None

    async def _clear_default(self, tenant_id: UUID, exclude_id: UUID | None = None) -> None:
        stmt = update(Team).where(Team.tenant_id == tenant_id, Team.is_default.is_(True))
        if exclude_id is not None:
            stmt = stmt.where(Team.id != exclude_id)
        await self.db.execute(
            stmt.values(is_default=False).execution_options(synchronize_session=False)
        )
