"""Persistence port for invitations and its SQLAlchemy adapter.

Every status change is a conditional ``UPDATE ... WHERE status = 'pending'``;
the affected row count decides whether the caller won. Nothing here reads a
row and writes it back.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from teamdesk.core.errors import ConflictError, TokenCollisionError
from teamdesk.core.invitation_workflow import is_valid_transition
from teamdesk.models.enums import InvitationStatus
from teamdesk.models.invitation import Invitation


class InvitationStore(Protocol):
    async def insert(self, invitation: Invitation) -> Invitation: ...

    async def find_pending_by_email(self, tenant_id: UUID, email: str) -> Invitation | None: ...

    async def find_pending_by_token(self, token: str, now: datetime) -> Invitation | None: ...

    async def transition(
        self,
        invitation_id: UUID,
        to_status: InvitationStatus,
        *,
        tenant_id: UUID | None = None,
        **values: Any,
    ) -> Invitation | None: ...

    async def extend_expiry(
        self, tenant_id: UUID, invitation_id: UUID, expires_at: datetime
    ) -> Invitation | None: ...

    async def expire_overdue(self, now: datetime) -> int: ...

    async def list_for_tenant(
        self, tenant_id: UUID, status: InvitationStatus | None = None, limit: int | None = None
    ) -> list[Invitation]: ...


def _is_token_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    # postgres: invitations_token_key, sqlite: invitations.token
    return "invitations_token" in message or "invitations.token" in message


def _is_pending_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    # postgres: uq_invitations_pending_email, sqlite: invitations.tenant_id, invitations.email
    return (
        "uq_invitations_pending_email" in message
        or "invitations.tenant_id, invitations.email" in message
    )


class SqlAlchemyInvitationStore:
    """``InvitationStore`` backed by the request's ``AsyncSession``."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def insert(self, invitation: Invitation) -> Invitation:
        """Persist a new pending invitation.

        Raises:
            TokenCollisionError: the token is already taken
            ConflictError: a pending invitation for the e-mail won a race

        Any other integrity error propagates unchanged.
        """
        try:
            async with self.db.begin_nested():
                self.db.add(invitation)
                await self.db.flush()
        except IntegrityError as exc:
            if _is_token_violation(exc):
                raise TokenCollisionError("Invitation token collision") from exc
            if _is_pending_violation(exc):
                raise ConflictError("Invitation already sent to this email") from exc
            raise
        return invitation

    async def _reload(self, invitation_id: UUID) -> Invitation | None:
        result = await self.db.execute(
            select(Invitation)
            .where(Invitation.id == invitation_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_pending_by_email(self, tenant_id: UUID, email: str) -> Invitation | None:
        result = await self.db.execute(
            select(Invitation).where(
                Invitation.tenant_id == tenant_id,
                Invitation.email == email,
                Invitation.status == InvitationStatus.PENDING,
            )
        )
        return result.scalar_one_or_none()

    async def find_pending_by_token(self, token: str, now: datetime) -> Invitation | None:
        result = await self.db.execute(
            select(Invitation).where(
                Invitation.token == token,
                Invitation.status == InvitationStatus.PENDING,
                Invitation.expires_at > now,
            )
        )
        return result.scalar_one_or_none()

    async def transition(
        self,
        invitation_id: UUID,
        to_status: InvitationStatus,
        *,
        tenant_id: UUID | None = None,
        **values: Any,
    ) -> Invitation | None:
        """Move a pending invitation to ``to_status``.

        Returns the refreshed invitation, or None when it was no longer
        pending (someone else got there first).
        """
        if not is_valid_transition(InvitationStatus.PENDING, to_status):
            raise ValueError(f"Invalid invitation transition to {to_status.value}")

        stmt = update(Invitation).where(
            Invitation.id == invitation_id,
            Invitation.status == InvitationStatus.PENDING,
        )
        if tenant_id is not None:
            stmt = stmt.where(Invitation.tenant_id == tenant_id)
        stmt = stmt.values(status=to_status, **values).execution_options(
            synchronize_session=False
        )

        result = await self.db.execute(stmt)
        if result.rowcount != 1:
            return None
        return await self._reload(invitation_id)

    async def extend_expiry(
        self, tenant_id: UUID, invitation_id: UUID, expires_at: datetime
    ) -> Invitation | None:
        result = await self.db.execute(
            update(Invitation)
            .where(
                Invitation.id == invitation_id,
                Invitation.tenant_id == tenant_id,
                Invitation.status == InvitationStatus.PENDING,
            )
            .values(expires_at=expires_at)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        return await self._reload(invitation_id)

    async def expire_overdue(self, now: datetime) -> int:
        """Bulk-move every overdue pending invitation to expired."""
        async with self.db.begin_nested():
            result = await self.db.execute(
                update(Invitation)
                .where(
                    Invitation.status == InvitationStatus.PENDING,
                    Invitation.expires_at < now,
                )
                .values(status=InvitationStatus.EXPIRED)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount or 0

    async def list_for_tenant(
        self, tenant_id: UUID, status: InvitationStatus | None = None, limit: int | None = None
    ) -> list[Invitation]:
        query = select(Invitation).where(Invitation.tenant_id == tenant_id)
        if status is not None:
            query = query.where(Invitation.status == status)
        query = query.order_by(Invitation.created_at.desc())
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())
