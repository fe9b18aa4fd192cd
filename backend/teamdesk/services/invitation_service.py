"""Invitation lifecycle: invite, resend, cancel, accept and expiry sweep.

Tokens come from ``secrets.token_urlsafe(32)`` (256-bit entropy) and are
stored as issued so a resend re-delivers the same link. Invitations expire
after ``INVITATION_TTL_DAYS`` (default 7).

Each operation returns the domain events it produced; the caller hands them
to ``EventDispatcher`` for audit logging and metrics.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from teamdesk.core.config import get_settings
from teamdesk.core.errors import ConflictError, NotFoundError, ServiceError, ValidationError
from teamdesk.core.events import (
    DomainEvent,
    InvitationAccepted,
    InvitationCancelled,
    InvitationCreated,
    InvitationResent,
)
from teamdesk.core.metrics import INVITATION_NOTIFICATION_FAILURES_TOTAL
from teamdesk.core.permissions import Permission
from teamdesk.core.security import (
    PasswordValidationError,
    generate_invitation_token,
    hash_password,
    validate_password,
)
from teamdesk.core.structured_logging import log_json
from teamdesk.models.enums import InvitationRole, InvitationStatus, TeamMemberRole, UserStatus
from teamdesk.models.invitation import Invitation
from teamdesk.models.team import Team, TeamMember
from teamdesk.models.user import User
from teamdesk.services.invitation_store import InvitationStore, SqlAlchemyInvitationStore
from teamdesk.services.notification_service import Notifier, get_notifier
from teamdesk.services.template_service import TemplateService

logger = logging.getLogger(__name__)

INVALID_TOKEN_MESSAGE = "Invalid or expired invitation token"
USER_EXISTS_MESSAGE = "User already exists in this organization"
PENDING_EXISTS_MESSAGE = "Invitation already sent to this email"
NOT_PENDING_MESSAGE = "Invitation not found or already processed"


def normalize_email(email: str) -> str:
    return email.strip().lower()


@dataclass
class InvitationOptions:
    team_ids: list[UUID] = field(default_factory=list)
    permissions: list[str] = field(default_factory=list)
    custom_message: str | None = None
    template_id: UUID | None = None


@dataclass
class InvitationOutcome:
    """Result of invite/resend/cancel.

    ``token`` is only meant for the inviter-facing caller.
    """

    invitation: Invitation
    token: str
    events: list[DomainEvent] = field(default_factory=list)
    notified: bool = False


@dataclass
class AcceptResult:
    success: bool
    message: str
    user: User | None = None
    events: list[DomainEvent] = field(default_factory=list)


@dataclass
class BulkInviteResult:
    sent: int = 0
    failed: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)
    outcomes: list[InvitationOutcome] = field(default_factory=list)

    @property
    def events(self) -> list[DomainEvent]:
        return [event for outcome in self.outcomes for event in outcome.events]


class _AcceptRaceLost(Exception):
    """The pending -> accepted update matched no row."""


class InvitationService:
    """Service for managing team invitations."""

    def __init__(
        self,
        db: AsyncSession,
        notifier: Notifier | None = None,
        store: InvitationStore | None = None,
    ):
        self.db = db
        self.notifier = notifier or get_notifier()
        self.store = store or SqlAlchemyInvitationStore(db)
        self.template_service = TemplateService(db)
        self.settings = get_settings()

    def _expiry_from(self, now: datetime) -> datetime:
        return now + timedelta(days=self.settings.invitation_ttl_days)

    async def invite(
        self,
        tenant_id: UUID,
        inviter: User,
        email: str,
        role: InvitationRole,
        options: InvitationOptions | None = None,
    ) -> InvitationOutcome:
        """Invite ``email`` to the tenant.

        Raises:
            ConflictError: the e-mail already belongs to a user, or already
                has a pending invitation
            ValidationError: an unknown permission name was requested
            NotFoundError: ``options.template_id`` is not a template of the tenant
        """
        options = options or InvitationOptions()
        email = normalize_email(email)

        unknown = [name for name in options.permissions if name not in Permission._value2member_map_]
        if unknown:
            raise ValidationError(f"Unknown permission: {unknown[0]}")

        if options.template_id is not None:
            await self.template_service.get_template(tenant_id, options.template_id)

        if await self._get_user_by_email(tenant_id, email) is not None:
            raise ConflictError(USER_EXISTS_MESSAGE)

        now = datetime.now(UTC)
        pending = await self.store.find_pending_by_email(tenant_id, email)
        if pending is not None:
            if pending.expires_at > now:
                raise ConflictError(PENDING_EXISTS_MESSAGE)
            # Overdue but not swept yet: retire it so the new one can be pending.
            await self.store.transition(pending.id, InvitationStatus.EXPIRED)

        token = generate_invitation_token()
        invitation = Invitation(
            tenant_id=tenant_id,
            inviter_user_id=inviter.id,
            email=email,
            role=role,
            token=token,
            status=InvitationStatus.PENDING,
            expires_at=self._expiry_from(now),
            custom_message=options.custom_message,
            team_ids=[str(team_id) for team_id in options.team_ids],
            permissions=list(options.permissions),
            template_id=options.template_id,
        )
        await self.store.insert(invitation)

        notified = await self._notify(invitation, inviter)
        log_json(
            logger,
            logging.INFO,
            "invitation_created",
            tenant_id=tenant_id,
            invitation_id=invitation.id,
            notified=notified,
        )

        event = InvitationCreated(
            tenant_id=tenant_id,
            actor_id=inviter.id,
            invitation_id=invitation.id,
            email=email,
            role=role.value,
            expires_at=invitation.expires_at,
            notified=notified,
        )
        return InvitationOutcome(invitation=invitation, token=token, events=[event], notified=notified)

    async def bulk_invite(
        self,
        tenant_id: UUID,
        inviter: User,
        emails: list[str],
        role: InvitationRole,
        options: InvitationOptions | None = None,
    ) -> BulkInviteResult:
        """Invite several e-mails; one failure does not abort the others."""
        result = BulkInviteResult()
        for email in emails:
            try:
                async with self.db.begin_nested():
                    outcome = await self.invite(tenant_id, inviter, email, role, options)
            except ServiceError as exc:
                result.failed += 1
                result.errors.append({"email": email, "error": str(exc.detail)})
                continue
            result.sent += 1
            result.outcomes.append(outcome)
        return result

    async def resend(
        self,
        tenant_id: UUID,
        invitation_id: UUID,
        actor_id: UUID | None = None,
    ) -> InvitationOutcome:
        """Push the expiry forward and re-send the same token.

        Raises:
            NotFoundError: no pending invitation with that id in the tenant
        """
        now = datetime.now(UTC)
        invitation = await self.store.extend_expiry(tenant_id, invitation_id, self._expiry_from(now))
        if invitation is None:
            raise NotFoundError(NOT_PENDING_MESSAGE)

        inviter = await self._get_user(invitation.inviter_user_id)
        notified = await self._notify(invitation, inviter)
        log_json(
            logger,
            logging.INFO,
            "invitation_resent",
            tenant_id=tenant_id,
            invitation_id=invitation.id,
            notified=notified,
        )

        event = InvitationResent(
            tenant_id=tenant_id,
            actor_id=actor_id,
            invitation_id=invitation.id,
            expires_at=invitation.expires_at,
            notified=notified,
        )
        return InvitationOutcome(
            invitation=invitation, token=invitation.token, events=[event], notified=notified
        )

    async def cancel(
        self,
        tenant_id: UUID,
        invitation_id: UUID,
        actor_id: UUID | None = None,
    ) -> InvitationOutcome:
        """Cancel a pending invitation. A second cancel raises NotFoundError."""
        invitation = await self.store.transition(
            invitation_id, InvitationStatus.CANCELLED, tenant_id=tenant_id
        )
        if invitation is None:
            raise NotFoundError(NOT_PENDING_MESSAGE)

        log_json(
            logger,
            logging.INFO,
            "invitation_cancelled",
            tenant_id=tenant_id,
            invitation_id=invitation.id,
        )
        event = InvitationCancelled(
            tenant_id=tenant_id,
            actor_id=actor_id,
            invitation_id=invitation.id,
            email=invitation.email,
        )
        return InvitationOutcome(invitation=invitation, token=invitation.token, events=[event])

    async def accept(
        self,
        token: str,
        first_name: str,
        last_name: str,
        password: str | None = None,
    ) -> AcceptResult:
        """Redeem an invitation token and create the user.

        Expected failures come back as ``AcceptResult(success=False)``: a bad
        or expired token gets the generic message, an existing user gets its
        own message (checked only once the token is known to be valid).

        Raises:
            ValidationError: the password does not meet requirements
        """
        if password is not None:
            try:
                validate_password(password)
            except PasswordValidationError as e:
                raise ValidationError(str(e)) from e

        now = datetime.now(UTC)
        invitation = await self.store.find_pending_by_token(token, now)
        if invitation is None:
            return AcceptResult(success=False, message=INVALID_TOKEN_MESSAGE)

        if await self._get_user_by_email(invitation.tenant_id, invitation.email) is not None:
            return AcceptResult(success=False, message=USER_EXISTS_MESSAGE)

        try:
            async with self.db.begin_nested():
                accepted = await self.store.transition(
                    invitation.id, InvitationStatus.ACCEPTED, accepted_at=now
                )
                if accepted is None:
                    raise _AcceptRaceLost()

                user = User(
                    tenant_id=accepted.tenant_id,
                    email=accepted.email,
                    first_name=first_name.strip(),
                    last_name=last_name.strip(),
                    password_hash=hash_password(password) if password else None,
                    role=accepted.role.to_user_role(),
                    status=UserStatus.ACTIVE,
                    permissions=list(accepted.permissions or []),
                )
                self.db.add(user)
                await self.db.flush()

                joined = await self._join_teams(accepted, user)
        except _AcceptRaceLost:
            return AcceptResult(success=False, message=INVALID_TOKEN_MESSAGE)
        except IntegrityError:
            return AcceptResult(success=False, message=USER_EXISTS_MESSAGE)

        log_json(
            logger,
            logging.INFO,
            "invitation_accepted",
            tenant_id=accepted.tenant_id,
            invitation_id=accepted.id,
            user_id=user.id,
        )
        event = InvitationAccepted(
            tenant_id=accepted.tenant_id,
            actor_id=user.id,
            invitation_id=accepted.id,
            user_id=user.id,
            email=user.email,
            role=user.role.value,
            team_ids=tuple(joined),
        )
        return AcceptResult(
            success=True,
            message="Invitation accepted successfully",
            user=user,
            events=[event],
        )

    async def sweep_expired(self) -> int:
        """Expire every overdue pending invitation; returns how many.

        Runs unattended, so persistence failures are logged and reported as 0
        instead of raised.
        """
        now = datetime.now(UTC)
        try:
            count = await self.store.expire_overdue(now)
        except SQLAlchemyError as exc:
            log_json(
                logger,
                logging.ERROR,
                "invitation_sweep_error",
                error=str(exc),
                exception=exc.__class__.__name__,
            )
            return 0

        log_json(logger, logging.INFO, "invitation_sweep_done", expired=count)
        return count

    async def get_invitation_by_token(self, token: str) -> Invitation | None:
        """Pending, unexpired invitation for ``token``; None for anything else."""
        return await self.store.find_pending_by_token(token, datetime.now(UTC))

    async def list_invitations(
        self, tenant_id: UUID, status: InvitationStatus | None = None
    ) -> list[Invitation]:
        return await self.store.list_for_tenant(tenant_id, status=status)

    async def get_stats(self, tenant_id: UUID) -> dict:
        invitations = await self.store.list_for_tenant(tenant_id)
        now = datetime.now(UTC)

        total_sent = len(invitations)
        total_accepted = sum(1 for i in invitations if i.status == InvitationStatus.ACCEPTED)
        total_pending = sum(
            1 for i in invitations if i.status == InvitationStatus.PENDING and i.expires_at > now
        )
        total_expired = sum(
            1
            for i in invitations
            if i.status == InvitationStatus.EXPIRED
            or (i.status == InvitationStatus.PENDING and i.expires_at <= now)
        )
        acceptance_rate = round(total_accepted / total_sent * 100, 2) if total_sent else 0.0

        return {
            "total_sent": total_sent,
            "total_accepted": total_accepted,
            "total_pending": total_pending,
            "total_expired": total_expired,
            "acceptance_rate": acceptance_rate,
            "recent_invitations": invitations[:5],
        }

    async def _notify(self, invitation: Invitation, inviter: User | None) -> bool:
        """Deliver the invitation e-mail; failures are logged, never raised."""
        try:
            message = await self.template_service.render_invitation(invitation, inviter)
            await self.notifier.send(message)
        except Exception as exc:
            INVITATION_NOTIFICATION_FAILURES_TOTAL.inc()
            log_json(
                logger,
                logging.WARNING,
                "invitation_notification_failed",
                tenant_id=invitation.tenant_id,
                invitation_id=invitation.id,
                error=str(exc),
                exception=exc.__class__.__name__,
            )
            return False
        return True

    async def _join_teams(self, invitation: Invitation, user: User) -> list[str]:
        """Add the new user to the invitation's teams that still exist."""
        team_ids = []
        for raw in invitation.team_ids or []:
            try:
                team_ids.append(UUID(str(raw)))
            except ValueError:
                continue
        if not team_ids:
            return []

        result = await self.db.execute(
            select(Team.id).where(Team.tenant_id == invitation.tenant_id, Team.id.in_(team_ids))
        )
        existing = list(result.scalars().all())
        for team_id in existing:
            self.db.add(TeamMember(team_id=team_id, user_id=user.id, role=TeamMemberRole.MEMBER))
        await self.db.flush()
        return [str(team_id) for team_id in existing]

    async def _get_user(self, user_id: UUID | None) -> User | None:
        if user_id is None:
            return None
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def _get_user_by_email(self, tenant_id: UUID, email: str) -> User | None:
        result = await self.db.execute(
            select(User).where(User.tenant_id == tenant_id, User.email == email)
        )
        return result.scalar_one_or_none()
