"""Pydantic schemas for invitation endpoints.

Admin-facing responses may carry the token; invitee-facing responses
(validate, accept) never do.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from teamdesk.models.enums import InvitationRole, InvitationStatus
from teamdesk.schemas.user import PublicUserResponse


class InviteRequest(BaseModel):
    """Request schema for POST /invitations."""

    email: EmailStr = Field(..., description="Email address of the person to invite")
    role: InvitationRole = Field(..., description="Role the invitee receives on acceptance")
    team_ids: list[UUID] = Field(default_factory=list, description="Teams to join on acceptance")
    permissions: list[str] = Field(default_factory=list, description="Explicit permission grants")
    custom_message: str | None = Field(None, max_length=2000)
    template_id: UUID | None = None


class BulkInviteRequest(BaseModel):
    emails: list[EmailStr] = Field(..., min_length=1, max_length=100)
    role: InvitationRole
    team_ids: list[UUID] = Field(default_factory=list)
    permissions: list[str] = Field(default_factory=list)
    custom_message: str | None = Field(None, max_length=2000)
    template_id: UUID | None = None


class InvitationResponse(BaseModel):
    """Invitation as seen by tenant admins."""

    id: UUID = Field(..., description="Invitation unique identifier")
    email: str = Field(..., description="Invitee email address")
    role: InvitationRole = Field(..., description="Assigned role")
    status: InvitationStatus
    inviter_user_id: UUID | None = None
    team_ids: list[str] = Field(default_factory=list)
    permissions: list[str] = Field(default_factory=list)
    custom_message: str | None = None
    expires_at: datetime = Field(..., description="Invitation expiry timestamp")
    accepted_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvitationCreatedResponse(InvitationResponse):
    """Returned to the inviter only; includes the token for out-of-band delivery."""

    token: str = Field(..., description="Invitation token")
    notified: bool = Field(..., description="Whether the invitation e-mail was delivered")


class BulkInviteError(BaseModel):
    email: str
    error: str


class BulkInviteResponse(BaseModel):
    sent: int
    failed: int
    errors: list[BulkInviteError]


class InvitationStatsResponse(BaseModel):
    total_sent: int
    total_accepted: int
    total_pending: int
    total_expired: int
    acceptance_rate: float
    recent_invitations: list[InvitationResponse]


class SweepResponse(BaseModel):
    expired: int


class InvitationValidationResponse(BaseModel):
    """Public view of a token; no token and no inviter identity."""

    valid: bool
    message: str | None = None
    email: str | None = None
    role: InvitationRole | None = None
    tenant_name: str | None = None
    expires_at: datetime | None = None


class AcceptInviteRequest(BaseModel):
    """Request schema for POST /invitations/accept."""

    token: str = Field(..., min_length=1, max_length=128, description="Invitation token from email")
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    password: str | None = Field(None, min_length=8, description="Password for the new account")


class AcceptInviteResponse(BaseModel):
    success: bool
    message: str
    user: PublicUserResponse | None = None
