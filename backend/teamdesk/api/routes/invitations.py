"""Invitation endpoints.

Admin routes require ``invitations.manage``. ``validate`` and ``accept`` are
public: the token is the credential, and every failure other than "user
already exists" collapses into one generic message.
"""
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamdesk.api.deps import (
    get_event_dispatcher,
    get_invitation_service,
    require_permission,
)
from teamdesk.core.database import get_db
from teamdesk.core.events import InvitationsExpired
from teamdesk.core.permissions import Permission
from teamdesk.models.enums import InvitationStatus
from teamdesk.models.tenant import Tenant
from teamdesk.models.user import User
from teamdesk.schemas.invitation import (
    AcceptInviteRequest,
    AcceptInviteResponse,
    BulkInviteRequest,
    BulkInviteResponse,
    InvitationCreatedResponse,
    InvitationResponse,
    InvitationStatsResponse,
    InvitationValidationResponse,
    InviteRequest,
    SweepResponse,
)
from teamdesk.schemas.user import PublicUserResponse
from teamdesk.services.event_dispatcher import EventDispatcher
from teamdesk.services.invitation_service import (
    INVALID_TOKEN_MESSAGE,
    InvitationOptions,
    InvitationOutcome,
    InvitationService,
)

router = APIRouter()

manage_invitations = require_permission(Permission.INVITATIONS_MANAGE)


def _created_response(outcome: InvitationOutcome) -> InvitationCreatedResponse:
    base = InvitationResponse.model_validate(outcome.invitation)
    return InvitationCreatedResponse(
        **base.model_dump(), token=outcome.token, notified=outcome.notified
    )


@router.post("", response_model=InvitationCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_invitation(
    invite_data: InviteRequest,
    current_user: User = Depends(manage_invitations),
    service: InvitationService = Depends(get_invitation_service),
    dispatcher: EventDispatcher = Depends(get_event_dispatcher),
):
    """Invite an e-mail address to the current tenant.

    Raises:
        HTTPException: 409 if the user exists or an invitation is pending
        HTTPException: 403 without invitations.manage
    """
    outcome = await service.invite(
        tenant_id=current_user.tenant_id,
        inviter=current_user,
        email=invite_data.email,
        role=invite_data.role,
        options=InvitationOptions(
            team_ids=invite_data.team_ids,
            permissions=invite_data.permissions,
            custom_message=invite_data.custom_message,
            template_id=invite_data.template_id,
        ),
    )
    await dispatcher.dispatch(outcome.events)
    return _created_response(outcome)


@router.post("/bulk", response_model=BulkInviteResponse)
async def bulk_invite(
    bulk_data: BulkInviteRequest,
    current_user: User = Depends(manage_invitations),
    service: InvitationService = Depends(get_invitation_service),
    dispatcher: EventDispatcher = Depends(get_event_dispatcher),
):
    result = await service.bulk_invite(
        tenant_id=current_user.tenant_id,
        inviter=current_user,
        emails=list(bulk_data.emails),
        role=bulk_data.role,
        options=InvitationOptions(
            team_ids=bulk_data.team_ids,
            permissions=bulk_data.permissions,
            custom_message=bulk_data.custom_message,
            template_id=bulk_data.template_id,
        ),
    )
    await dispatcher.dispatch(result.events)
    return BulkInviteResponse(sent=result.sent, failed=result.failed, errors=result.errors)


@router.get("", response_model=list[InvitationResponse])
async def list_invitations(
    invitation_status: InvitationStatus | None = Query(None, alias="status"),
    current_user: User = Depends(manage_invitations),
    service: InvitationService = Depends(get_invitation_service),
):
    invitations = await service.list_invitations(current_user.tenant_id, status=invitation_status)
    return [InvitationResponse.model_validate(i) for i in invitations]


@router.get("/stats", response_model=InvitationStatsResponse)
async def invitation_stats(
    current_user: User = Depends(manage_invitations),
    service: InvitationService = Depends(get_invitation_service),
):
    stats = await service.get_stats(current_user.tenant_id)
    stats["recent_invitations"] = [
        InvitationResponse.model_validate(i) for i in stats["recent_invitations"]
    ]
    return InvitationStatsResponse(**stats)


@router.post("/sweep", response_model=SweepResponse)
async def sweep_expired(
    current_user: User = Depends(manage_invitations),
    service: InvitationService = Depends(get_invitation_service),
    dispatcher: EventDispatcher = Depends(get_event_dispatcher),
):
    """Expire overdue pending invitations now instead of waiting for the schedule."""
    expired = await service.sweep_expired()
    if expired:
        await dispatcher.dispatch(
            [InvitationsExpired(tenant_id=None, actor_id=current_user.id, count=expired)]
        )
    return SweepResponse(expired=expired)


@router.get("/validate/{token}", response_model=InvitationValidationResponse)
async def validate_invitation(
    token: str,
    service: InvitationService = Depends(get_invitation_service),
    db: AsyncSession = Depends(get_db),
):
    """Check a token before showing the sign-up form. Public."""
    invitation = await service.get_invitation_by_token(token)
    if invitation is None:
        return InvitationValidationResponse(valid=False, message=INVALID_TOKEN_MESSAGE)

    tenant_name = await db.scalar(select(Tenant.name).where(Tenant.id == invitation.tenant_id))
    return InvitationValidationResponse(
        valid=True,
        email=invitation.email,
        role=invitation.role,
        tenant_name=tenant_name,
        expires_at=invitation.expires_at,
    )


@router.post("/accept", response_model=AcceptInviteResponse)
async def accept_invitation(
    accept_data: AcceptInviteRequest,
    service: InvitationService = Depends(get_invitation_service),
    dispatcher: EventDispatcher = Depends(get_event_dispatcher),
):
    """Redeem a token and create the account. Public.

    Expected failures return ``success: false`` with HTTP 200.
    """
    result = await service.accept(
        token=accept_data.token,
        first_name=accept_data.first_name,
        last_name=accept_data.last_name,
        password=accept_data.password,
    )
    if not result.success:
        return AcceptInviteResponse(success=False, message=result.message)

    await dispatcher.dispatch(result.events)
    return AcceptInviteResponse(
        success=True,
        message=result.message,
        user=PublicUserResponse.model_validate(result.user),
    )


@router.post("/{invitation_id}/resend", response_model=InvitationResponse)
async def resend_invitation(
    invitation_id: UUID,
    current_user: User = Depends(manage_invitations),
    service: InvitationService = Depends(get_invitation_service),
    dispatcher: EventDispatcher = Depends(get_event_dispatcher),
):
    outcome = await service.resend(current_user.tenant_id, invitation_id, actor_id=current_user.id)
    await dispatcher.dispatch(outcome.events)
    return InvitationResponse.model_validate(outcome.invitation)


@router.post("/{invitation_id}/cancel", response_model=InvitationResponse)
async def cancel_invitation(
    invitation_id: UUID,
    current_user: User = Depends(manage_invitations),
    service: InvitationService = Depends(get_invitation_service),
    dispatcher: EventDispatcher = Depends(get_event_dispatcher),
):
    outcome = await service.cancel(current_user.tenant_id, invitation_id, actor_id=current_user.id)
    await dispatcher.dispatch(outcome.events)
    return InvitationResponse.model_validate(outcome.invitation)
