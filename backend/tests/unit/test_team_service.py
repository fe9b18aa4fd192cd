"""Unit tests for team and team membership management."""

from uuid import uuid4

import pytest
from sqlalchemy import select

from teamdesk.core.errors import ConflictError, ForbiddenError, NotFoundError
from teamdesk.models.audit_event import AuditEvent
from teamdesk.models.enums import AuditAction, TeamMemberRole, UserRole, UserStatus
from teamdesk.models.team import Team
from teamdesk.services.team_service import TEAM_COLORS, TeamService


@pytest.fixture()
def service(db) -> TeamService:
    return TeamService(db)


@pytest.mark.asyncio
class TestCreateTeam:
    async def test_create_team(self, db, service, test_tenant, test_admin):
        """Test team creation with a palette color and an audit row."""
        team = await service.create_team(test_tenant.id, " Billing ", actor_id=test_admin.id)

        assert team.name == "Billing"
        assert team.color in TEAM_COLORS
        assert team.is_default is False
        assert team.members == []

        audit = await db.scalar(
            select(AuditEvent).where(
                AuditEvent.action == AuditAction.TEAM_CREATE, AuditEvent.entity_id == team.id
            )
        )
        assert audit.user_id == test_admin.id

    async def test_duplicate_name_conflicts(self, service, test_tenant):
        """Test a duplicate team name in the tenant conflicts."""
        await service.create_team(test_tenant.id, "Billing")

        with pytest.raises(ConflictError, match="Team name already exists"):
            await service.create_team(test_tenant.id, "Billing")

    async def test_same_name_in_other_tenant(self, service, test_tenant, other_tenant):
        """Test team names are unique per tenant only."""
        await service.create_team(test_tenant.id, "Billing")

        team = await service.create_team(other_tenant.id, "Billing")

        assert team.tenant_id == other_tenant.id

    async def test_new_default_unsets_previous(self, service, test_tenant, default_team):
        """Test a new default team unsets the previous one."""
        team = await service.create_team(test_tenant.id, "Escalations", color="#EF4444", is_default=True)

        previous = await service.get_team(test_tenant.id, default_team.id)
        assert team.is_default is True
        assert team.color == "#EF4444"
        assert previous.is_default is False

        teams = await service.list_teams(test_tenant.id)
        assert [t.is_default for t in teams].count(True) == 1
        assert teams[0].id == team.id

    async def test_default_race_is_not_reported_as_name_conflict(
        self, service, test_tenant, default_team, monkeypatch
    ):
        """Test a second default team slipping past the unset step hits the default index."""

        async def keep_default(*args, **kwargs):
            return None

        monkeypatch.setattr(service, "_clear_default", keep_default)

        with pytest.raises(ConflictError, match="Tenant already has a default team"):
            await service.create_team(test_tenant.id, "Escalations", is_default=True)


@pytest.mark.asyncio
class TestTeamQueries:
    async def test_get_missing_team(self, service, test_tenant):
        """Test an unknown team is not found."""
        with pytest.raises(NotFoundError, match="Team not found"):
            await service.get_team(test_tenant.id, uuid4())

    async def test_get_team_of_other_tenant(self, service, other_tenant, default_team):
        """Test a team is invisible to other tenants."""
        with pytest.raises(NotFoundError):
            await service.get_team(other_tenant.id, default_team.id)

    async def test_list_default_first_then_name(self, service, test_tenant, default_team):
        """Test the default team lists first, then by name."""
        await service.create_team(test_tenant.id, "Zulu")
        await service.create_team(test_tenant.id, "Alpha")

        teams = await service.list_teams(test_tenant.id)

        assert [t.name for t in teams] == ["General", "Alpha", "Zulu"]

    async def test_list_only_my_teams(self, service, test_tenant, default_team, test_agent):
        """Test listing can be limited to the user's teams."""
        other = await service.create_team(test_tenant.id, "Other")
        await service.add_member(test_tenant.id, other.id, test_agent.id)

        mine = await service.list_teams(test_tenant.id, user_id=test_agent.id)

        assert [t.id for t in mine] == [other.id]

    async def test_update_team(self, service, test_tenant, default_team):
        """Test update renames and can move the default flag."""
        team = await service.create_team(test_tenant.id, "Old")

        updated = await service.update_team(
            test_tenant.id, team.id, name="New", description="Renamed", is_default=True
        )

        assert updated.name == "New"
        assert updated.description == "Renamed"
        assert updated.is_default is True
        assert (await service.get_team(test_tenant.id, default_team.id)).is_default is False

    async def test_update_to_taken_name(self, service, test_tenant, default_team):
        """Test renaming to a taken name conflicts."""
        team = await service.create_team(test_tenant.id, "Sales")

        with pytest.raises(ConflictError):
            await service.update_team(test_tenant.id, team.id, name="General")

    async def test_update_name_race_is_a_conflict(self, service, test_tenant, default_team, monkeypatch):
        """Test a rename that passes the pre-check still maps the unique violation to a conflict."""
        team = await service.create_team(test_tenant.id, "Sales")

        async def name_free(*args, **kwargs):
            return False

        monkeypatch.setattr(service, "_name_taken", name_free)

        with pytest.raises(ConflictError, match="Team name already exists"):
            await service.update_team(test_tenant.id, team.id, name="General")

    async def test_stats(self, service, test_tenant, default_team, test_agent, test_viewer):
        """Test team stats count members and active members."""
        second = await service.create_team(test_tenant.id, "Second")
        await service.add_member(test_tenant.id, default_team.id, test_agent.id)
        member = await service.add_member(test_tenant.id, default_team.id, test_viewer.id)
        await service.add_member(test_tenant.id, second.id, test_agent.id)
        await service.update_member(test_tenant.id, default_team.id, member.id, is_active=False)

        stats = await service.get_stats(test_tenant.id)

        assert stats == {
            "total_teams": 2,
            "total_members": 3,
            "active_members": 2,
            "average_team_size": 1.5,
        }


@pytest.mark.asyncio
class TestMembers:
    async def test_add_member(self, service, test_tenant, default_team, test_agent):
        """Test adding a member with a role and skills."""
        member = await service.add_member(
            test_tenant.id, default_team.id, test_agent.id, role=TeamMemberRole.LEAD, skills=["billing"]
        )

        assert member.user_id == test_agent.id
        assert member.role == TeamMemberRole.LEAD
        assert member.skills == ["billing"]
        assert member.is_active is True
        assert member.joined_at is not None

    async def test_add_member_twice(self, service, test_tenant, default_team, test_agent):
        """Test adding the same user twice conflicts."""
        await service.add_member(test_tenant.id, default_team.id, test_agent.id)

        with pytest.raises(ConflictError, match="User is already a team member"):
            await service.add_member(test_tenant.id, default_team.id, test_agent.id)

    async def test_add_member_to_missing_team(self, service, test_tenant, test_agent):
        """Test adding to an unknown team is not found."""
        with pytest.raises(NotFoundError, match="Team not found"):
            await service.add_member(test_tenant.id, uuid4(), test_agent.id)

    async def test_add_missing_user(self, service, test_tenant, default_team):
        """Test adding an unknown user is not found."""
        with pytest.raises(NotFoundError, match="User not found"):
            await service.add_member(test_tenant.id, default_team.id, uuid4())

    async def test_add_user_from_other_tenant(self, service, make_user, test_tenant, other_tenant, default_team):
        """Test users of another tenant cannot be added."""
        outsider = await make_user(other_tenant, "out@globex.example.com", role=UserRole.AGENT)

        with pytest.raises(NotFoundError, match="User not found"):
            await service.add_member(test_tenant.id, default_team.id, outsider.id)

    async def test_add_removed_user(self, service, make_user, test_tenant, default_team):
        """Test removed users cannot be added."""
        removed = await make_user(test_tenant, "gone@acme.example.com", status=UserStatus.REMOVED)

        with pytest.raises(NotFoundError):
            await service.add_member(test_tenant.id, default_team.id, removed.id)

    async def test_update_member(self, service, test_tenant, default_team, test_agent):
        """Test updating a member's role and permissions."""
        member = await service.add_member(test_tenant.id, default_team.id, test_agent.id)

        updated = await service.update_member(
            test_tenant.id, default_team.id, member.id, role=TeamMemberRole.ADMIN, permissions=["tickets.assign"]
        )

        assert updated.role == TeamMemberRole.ADMIN
        assert updated.permissions == ["tickets.assign"]

    async def test_remove_member(self, service, test_tenant, default_team, test_agent):
        """Test removing a member."""
        member = await service.add_member(test_tenant.id, default_team.id, test_agent.id)

        await service.remove_member(test_tenant.id, default_team.id, member.id)

        assert await service.list_members(test_tenant.id, default_team.id) == []

    async def test_remove_missing_member(self, service, test_tenant, default_team):
        """Test removing an unknown member is not found."""
        with pytest.raises(NotFoundError, match="Team member not found"):
            await service.remove_member(test_tenant.id, default_team.id, uuid4())

    async def test_verify_membership(self, service, test_tenant, default_team, test_agent, test_viewer):
        """Test only active members pass the membership check."""
        member = await service.add_member(test_tenant.id, default_team.id, test_agent.id)

        await service.verify_membership(test_tenant.id, default_team.id, test_agent.id)

        with pytest.raises(ForbiddenError, match="You are not a member of this team"):
            await service.verify_membership(test_tenant.id, default_team.id, test_viewer.id)

        await service.update_member(test_tenant.id, default_team.id, member.id, is_active=False)
        with pytest.raises(ForbiddenError):
            await service.verify_membership(test_tenant.id, default_team.id, test_agent.id)


@pytest.mark.asyncio
class TestAvailableUsers:
    async def test_flags_members_of_the_team(
        self, service, make_user, test_tenant, default_team, test_owner, test_admin, test_agent, test_viewer
    ):
        """Test only active seat roles are listed, flagged by membership of the given team."""
        manager = await make_user(test_tenant, "manager@acme.example.com", role=UserRole.MANAGER)
        await make_user(test_tenant, "left@acme.example.com", role=UserRole.AGENT, status=UserStatus.REMOVED)
        await service.add_member(test_tenant.id, default_team.id, test_agent.id)

        users = await service.list_available_users(test_tenant.id, default_team.id)

        assert [(user.email, is_member) for user, is_member in users] == [
            ("admin@acme.example.com", False),
            ("agent@acme.example.com", True),
            (manager.email, False),
        ]

    async def test_membership_elsewhere_does_not_count(self, service, test_tenant, default_team, test_agent):
        """Test membership of another team leaves the flag unset."""
        other = await service.create_team(test_tenant.id, "Other")
        await service.add_member(test_tenant.id, other.id, test_agent.id)

        users = await service.list_available_users(test_tenant.id, default_team.id)

        assert users == [(test_agent, False)]

    async def test_without_team_any_membership_counts(self, service, test_tenant, default_team, test_agent, test_admin):
        """Test without a team any membership in the tenant sets the flag."""
        await service.add_member(test_tenant.id, default_team.id, test_agent.id)

        users = await service.list_available_users(test_tenant.id)

        assert [(user.id, is_member) for user, is_member in users] == [
            (test_admin.id, False),
            (test_agent.id, True),
        ]

    async def test_other_tenant_users_are_excluded(self, service, make_user, test_tenant, other_tenant, default_team):
        """Test users of another tenant are never listed."""
        await make_user(other_tenant, "agent@globex.example.com", role=UserRole.AGENT)

        assert await service.list_available_users(test_tenant.id, default_team.id) == []

    async def test_unknown_team(self, service, test_tenant):
        """Test an unknown team is not found."""
        with pytest.raises(NotFoundError, match="Team not found"):
            await service.list_available_users(test_tenant.id, uuid4())


@pytest.mark.asyncio
class TestDeleteTeam:
    async def test_default_team_cannot_be_deleted_even_when_empty(self, service, test_tenant, default_team):
        """Test the default team cannot be deleted."""
        with pytest.raises(ConflictError, match="Cannot delete default team"):
            await service.delete_team(test_tenant.id, default_team.id)

    async def test_default_check_comes_before_member_check(
        self, service, test_tenant, default_team, test_agent
    ):
        """Test the default check is reported before the member check."""
        await service.add_member(test_tenant.id, default_team.id, test_agent.id)

        with pytest.raises(ConflictError) as exc_info:
            await service.delete_team(test_tenant.id, default_team.id)

        assert exc_info.value.detail == "Cannot delete default team"

    async def test_team_with_members_cannot_be_deleted(self, service, test_tenant, test_agent):
        """Test a team with members cannot be deleted."""
        team = await service.create_team(test_tenant.id, "Busy")
        await service.add_member(test_tenant.id, team.id, test_agent.id)

        with pytest.raises(ConflictError) as exc_info:
            await service.delete_team(test_tenant.id, team.id)

        assert exc_info.value.detail == "Cannot delete team with members. Remove all members first."

    async def test_empty_non_default_team_is_deleted(self, db, service, test_tenant):
        """Test an empty non-default team is deleted."""
        team = await service.create_team(test_tenant.id, "Temporary")

        await service.delete_team(test_tenant.id, team.id)

        assert await db.scalar(select(Team.id).where(Team.id == team.id)) is None

    async def test_delete_missing_team(self, service, test_tenant):
        """Test deleting an unknown team is not found."""
        with pytest.raises(NotFoundError):
            await service.delete_team(test_tenant.id, uuid4())
