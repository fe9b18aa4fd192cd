"""Tenant bootstrap, tenant details and tenant configuration endpoints."""
from typing import Annotated

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from teamdesk.api.deps import (
    get_current_user,
    require_admin,
    require_bootstrap_token,
    require_permission,
)
from teamdesk.core.database import get_db
from teamdesk.core.permissions import Permission
from teamdesk.models.enums import ChannelType
from teamdesk.models.user import User
from teamdesk.schemas.configuration import (
    BrandingConfig,
    ChannelConfigUnion,
    ColorScheme,
    TenantConfigurationResponse,
    WorkflowConfig,
)
from teamdesk.schemas.tenant import (
    CreateTenantRequest,
    TenantBootstrapResponse,
    TenantResponse,
    TenantUpdateRequest,
)
from teamdesk.services.configuration_service import ConfigurationService
from teamdesk.services.tenant_service import TenantService

router = APIRouter()


@router.post(
    "",
    response_model=TenantBootstrapResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create tenant (bootstrap)",
    dependencies=[Depends(require_bootstrap_token)],
)
async def create_tenant(
    request: CreateTenantRequest,
    db: AsyncSession = Depends(get_db),
) -> TenantBootstrapResponse:
    """Create a tenant with its owner account and default team.

    Requires the X-Bootstrap-Token header.

    Raises:
        HTTPException: 409 if a tenant with this name exists
        HTTPException: 400 if the owner password is too weak
    """
    service = TenantService(db)
    tenant, owner = await service.create(
        name=request.name,
        owner_email=request.owner_email,
        owner_password=request.owner_password,
        first_name=request.first_name,
        last_name=request.last_name,
    )
    return TenantBootstrapResponse(
        id=tenant.id,
        name=tenant.name,
        created_at=tenant.created_at,
        updated_at=tenant.updated_at,
        owner_id=owner.id,
    )


@router.get("/me", response_model=TenantResponse)
async def get_tenant(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> TenantResponse:
    tenant = await TenantService(db).get_by_id(current_user.tenant_id)
    return TenantResponse.model_validate(tenant)


@router.patch("/me", response_model=TenantResponse)
async def update_tenant(
    request: TenantUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin()),
) -> TenantResponse:
    tenant = await TenantService(db).update(
        tenant_id=current_user.tenant_id,
        user_id=current_user.id,
        name=request.name,
    )
    return TenantResponse.model_validate(tenant)


@router.get("/me/configuration", response_model=TenantConfigurationResponse)
async def get_configuration(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.SETTINGS_VIEW)),
) -> TenantConfigurationResponse:
    """Tenant configuration with channel secrets masked."""
    return await ConfigurationService(db).get_configuration(current_user.tenant_id)


@router.put("/me/configuration/branding", response_model=BrandingConfig)
async def update_branding(
    branding: BrandingConfig,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.SETTINGS_MANAGE)),
) -> BrandingConfig:
    return await ConfigurationService(db).update_branding(
        current_user.tenant_id, branding, actor_id=current_user.id
    )


@router.put("/me/configuration/colors", response_model=BrandingConfig)
async def set_color_scheme(
    colors: ColorScheme,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.SETTINGS_MANAGE)),
) -> BrandingConfig:
    return await ConfigurationService(db).set_color_scheme(
        current_user.tenant_id, colors, actor_id=current_user.id
    )


@router.put("/me/configuration/channels")
async def configure_channel(
    config: Annotated[ChannelConfigUnion, Body(discriminator="type")],
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.CHANNELS_MANAGE)),
) -> dict:
    """Create or replace one channel's configuration; the response is masked."""
    saved = await ConfigurationService(db).configure_channel(
        current_user.tenant_id, config, actor_id=current_user.id
    )
    return saved.masked()


@router.delete("/me/configuration/channels/{channel_type}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_channel(
    channel_type: ChannelType,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.CHANNELS_MANAGE)),
) -> None:
    await ConfigurationService(db).remove_channel(
        current_user.tenant_id, channel_type, actor_id=current_user.id
    )


@router.put("/me/configuration/workflow", response_model=WorkflowConfig)
async def update_workflow(
    workflow: WorkflowConfig,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.SETTINGS_MANAGE)),
) -> WorkflowConfig:
    return await ConfigurationService(db).update_workflow(
        current_user.tenant_id, workflow, actor_id=current_user.id
    )
