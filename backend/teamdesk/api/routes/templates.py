"""Invitation template endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from teamdesk.api.deps import require_permission
from teamdesk.core.database import get_db
from teamdesk.core.permissions import Permission
from teamdesk.models.enums import InvitationRole
from teamdesk.models.user import User
from teamdesk.schemas.template import (
    CreateTemplateRequest,
    TemplateResponse,
    UpdateTemplateRequest,
)
from teamdesk.services.template_service import TemplateService

router = APIRouter()

manage_invitations = require_permission(Permission.INVITATIONS_MANAGE)


@router.get("", response_model=list[TemplateResponse])
async def list_templates(
    role: InvitationRole | None = None,
    current_user: User = Depends(manage_invitations),
    db: AsyncSession = Depends(get_db),
):
    templates = await TemplateService(db).list_templates(current_user.tenant_id, role=role)
    return [TemplateResponse.model_validate(t) for t in templates]


@router.post("", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_template(
    template_data: CreateTemplateRequest,
    current_user: User = Depends(manage_invitations),
    db: AsyncSession = Depends(get_db),
):
    template = await TemplateService(db).create_template(
        tenant_id=current_user.tenant_id,
        name=template_data.name,
        role=template_data.role,
        subject=template_data.subject,
        content=template_data.content,
        is_default=template_data.is_default,
        actor_id=current_user.id,
    )
    return TemplateResponse.model_validate(template)


@router.patch("/{template_id}", response_model=TemplateResponse)
async def update_template(
    template_id: UUID,
    template_data: UpdateTemplateRequest,
    current_user: User = Depends(manage_invitations),
    db: AsyncSession = Depends(get_db),
):
    template = await TemplateService(db).update_template(
        tenant_id=current_user.tenant_id,
        template_id=template_id,
        changes=template_data.model_dump(exclude_unset=True),
        actor_id=current_user.id,
    )
    return TemplateResponse.model_validate(template)
