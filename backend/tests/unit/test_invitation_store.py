"""Unit tests for the SQLAlchemy invitation store.

The conditional updates here are what keep concurrent accepts from both
winning.
"""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from teamdesk.core.errors import ConflictError, TokenCollisionError
from teamdesk.core.security import generate_invitation_token
from teamdesk.models.enums import InvitationRole, InvitationStatus
from teamdesk.models.invitation import Invitation
from teamdesk.services.invitation_store import SqlAlchemyInvitationStore


def new_invitation(tenant, email: str, token: str | None = None) -> Invitation:
    return Invitation(
        tenant_id=tenant.id,
        email=email,
        role=InvitationRole.AGENT,
        token=token or generate_invitation_token(),
        status=InvitationStatus.PENDING,
        expires_at=datetime.now(UTC) + timedelta(days=7),
        team_ids=[],
        permissions=[],
    )


@pytest.fixture()
def store(db) -> SqlAlchemyInvitationStore:
    return SqlAlchemyInvitationStore(db)


@pytest.mark.asyncio
class TestInsert:
    async def test_duplicate_token_is_a_collision(self, db, store, test_tenant):
        """Test a reused token is a collision, not a conflict."""
        first = await store.insert(new_invitation(test_tenant, "one@acme.example.com"))

        with pytest.raises(TokenCollisionError) as exc_info:
            await store.insert(new_invitation(test_tenant, "two@acme.example.com", token=first.token))

        assert exc_info.value.status_code == 500
        count = await db.scalar(select(func.count()).select_from(Invitation))
        assert count == 1

    async def test_second_pending_for_email_is_a_conflict(self, store, test_tenant):
        """Test the pending index turns a second pending row into a conflict."""
        await store.insert(new_invitation(test_tenant, "same@acme.example.com"))

        with pytest.raises(ConflictError):
            await store.insert(new_invitation(test_tenant, "same@acme.example.com"))

    async def test_other_integrity_errors_propagate(self, store, test_tenant):
        """Test a violation other than token or pending index is not reported as a conflict."""
        broken = new_invitation(test_tenant, "none@acme.example.com")
        broken.email = None

        with pytest.raises(IntegrityError):
            await store.insert(broken)

    async def test_pending_index_ignores_terminal_rows(self, store, test_tenant):
        """Test terminal rows do not count against the pending index."""
        first = await store.insert(new_invitation(test_tenant, "same@acme.example.com"))
        await store.transition(first.id, InvitationStatus.CANCELLED)

        second = await store.insert(new_invitation(test_tenant, "same@acme.example.com"))

        assert second.status == InvitationStatus.PENDING


@pytest.mark.asyncio
class TestTransition:
    async def test_only_one_accept_wins(self, store, test_tenant):
        """Test the second accept of the same invitation gets nothing."""
        invitation = await store.insert(new_invitation(test_tenant, "race@acme.example.com"))
        now = datetime.now(UTC)

        first = await store.transition(invitation.id, InvitationStatus.ACCEPTED, accepted_at=now)
        second = await store.transition(invitation.id, InvitationStatus.ACCEPTED, accepted_at=now)

        assert first is not None
        assert first.status == InvitationStatus.ACCEPTED
        assert first.accepted_at is not None
        assert second is None

    async def test_terminal_rows_never_return_to_pending(self, store, test_tenant):
        """Test terminal rows refuse any further transition."""
        invitation = await store.insert(new_invitation(test_tenant, "mono@acme.example.com"))
        await store.transition(invitation.id, InvitationStatus.EXPIRED)

        assert await store.transition(invitation.id, InvitationStatus.CANCELLED) is None
        assert await store.transition(invitation.id, InvitationStatus.ACCEPTED) is None

    async def test_transition_to_pending_is_refused(self, store, test_tenant):
        """Test pending is never a transition target."""
        invitation = await store.insert(new_invitation(test_tenant, "loop@acme.example.com"))

        with pytest.raises(ValueError):
            await store.transition(invitation.id, InvitationStatus.PENDING)

    async def test_tenant_scope(self, store, test_tenant, other_tenant):
        """Test a tenant-scoped transition ignores other tenants' rows."""
        invitation = await store.insert(new_invitation(test_tenant, "scoped@acme.example.com"))

        assert await store.transition(
            invitation.id, InvitationStatus.CANCELLED, tenant_id=other_tenant.id
        ) is None
        assert await store.transition(
            invitation.id, InvitationStatus.CANCELLED, tenant_id=test_tenant.id
        ) is not None

    async def test_extend_expiry_requires_pending(self, store, test_tenant):
        """Test only pending invitations can have their expiry extended."""
        invitation = await store.insert(new_invitation(test_tenant, "ext@acme.example.com"))
        later = datetime.now(UTC) + timedelta(days=30)

        extended = await store.extend_expiry(test_tenant.id, invitation.id, later)
        assert extended.expires_at == later
        assert extended.status == InvitationStatus.PENDING

        await store.transition(invitation.id, InvitationStatus.CANCELLED)
        assert await store.extend_expiry(test_tenant.id, invitation.id, later) is None


@pytest.mark.asyncio
class TestLookups:
    async def test_find_pending_by_email(self, store, test_tenant, other_tenant):
        """Test pending lookup by e-mail is tenant scoped."""
        invitation = await store.insert(new_invitation(test_tenant, "look@acme.example.com"))

        assert (await store.find_pending_by_email(test_tenant.id, "look@acme.example.com")).id == invitation.id
        assert await store.find_pending_by_email(other_tenant.id, "look@acme.example.com") is None

    async def test_find_pending_by_token_respects_expiry(self, store, test_tenant):
        """Test token lookup ignores invitations past their expiry."""
        invitation = await store.insert(new_invitation(test_tenant, "tok@acme.example.com"))

        assert await store.find_pending_by_token(invitation.token, datetime.now(UTC)) is not None
        assert await store.find_pending_by_token(
            invitation.token, datetime.now(UTC) + timedelta(days=8)
        ) is None

    async def test_list_for_tenant_limit(self, store, test_tenant):
        """Test listing honours the limit."""
        for i in range(3):
            await store.insert(new_invitation(test_tenant, f"l{i}@acme.example.com"))

        assert len(await store.list_for_tenant(test_tenant.id, limit=2)) == 2
