"""Pydantic schemas for invitation template endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from teamdesk.models.enums import InvitationRole


class CreateTemplateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    role: InvitationRole
    subject: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1, description="HTML body with {placeholders}")
    is_default: bool = False


class UpdateTemplateRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    subject: str | None = Field(None, min_length=1, max_length=255)
    content: str | None = Field(None, min_length=1)
    is_default: bool | None = None
    is_active: bool | None = None


class TemplateResponse(BaseModel):
    id: UUID
    name: str
    role: InvitationRole
    subject: str
    content: str
    is_default: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
