"""Unit tests for the scheduled invitation sweep.

These tests commit through their own sessions, so they do not use the ``db``
fixture (all sessions share one in-memory connection).
"""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import select

from teamdesk.core.security import generate_invitation_token
from teamdesk.models.audit_event import AuditEvent
from teamdesk.models.enums import AuditAction, InvitationRole, InvitationStatus
from teamdesk.models.invitation import Invitation
from teamdesk.models.tenant import Tenant
from teamdesk.tasks.celery_app import celery_app
from teamdesk.tasks.invitation_task import run_sweep


async def seed(session_factory, expiries: list[timedelta]) -> list:
    async with session_factory() as session:
        tenant = Tenant(name="Sweep Co")
        session.add(tenant)
        await session.flush()
        invitations = [
            Invitation(
                tenant_id=tenant.id,
                email=f"user{i}@sweep.example.com",
                role=InvitationRole.AGENT,
                token=generate_invitation_token(),
                status=InvitationStatus.PENDING,
                expires_at=datetime.now(UTC) + delta,
                team_ids=[],
                permissions=[],
            )
            for i, delta in enumerate(expiries)
        ]
        session.add_all(invitations)
        await session.commit()
        return [i.id for i in invitations]


@pytest.mark.asyncio
class TestRunSweep:
    async def test_sweep_commits_and_records_audit(self, session_factory):
        """Test the sweep commits expirations with an audit row."""
        overdue, fresh = await seed(session_factory, [timedelta(hours=-2), timedelta(days=2)])

        assert await run_sweep(session_factory) == 1

        async with session_factory() as session:
            statuses = dict(
                (await session.execute(select(Invitation.id, Invitation.status))).all()
            )
            audit = (
                await session.execute(
                    select(AuditEvent).where(AuditEvent.action == AuditAction.INVITATION_EXPIRE)
                )
            ).scalar_one()

        assert statuses[overdue] == InvitationStatus.EXPIRED
        assert statuses[fresh] == InvitationStatus.PENDING
        assert audit.diff_json == {"count": 1}
        assert audit.tenant_id is None

    async def test_nothing_to_sweep_writes_no_audit(self, session_factory):
        """Test an empty sweep writes no audit row."""
        await seed(session_factory, [timedelta(days=1)])

        assert await run_sweep(session_factory) == 0

        async with session_factory() as session:
            audit = (await session.execute(select(AuditEvent))).scalars().all()
        assert audit == []


def test_sweep_is_scheduled_hourly():
    """Test the beat schedule runs the sweep every hour."""
    schedule = celery_app.conf.beat_schedule["invitation-sweep-hourly"]

    assert schedule["task"] == "teamdesk.tasks.invitation_task.sweep_expired_invitations"
    assert schedule["schedule"].hour == set(range(24))
