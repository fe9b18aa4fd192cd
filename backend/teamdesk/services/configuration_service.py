"""Tenant configuration: branding, channels and workflow."""
from typing import Any
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from teamdesk.core.errors import NotFoundError, ValidationError
from teamdesk.models.enums import AuditAction, ChannelType
from teamdesk.models.tenant import Tenant
from teamdesk.schemas.configuration import (
    BrandingConfig,
    ChannelConfig,
    ColorScheme,
    TenantConfigurationResponse,
    WorkflowConfig,
    channel_config_adapter,
)
from teamdesk.services.audit_service import AuditService
from teamdesk.services.tenant_service import TenantService


def parse_channel_config(raw: dict[str, Any]) -> ChannelConfig:
    """Validate a raw channel payload into its tagged record.

    Raises:
        ValidationError: unknown channel type or missing required fields
    """
    try:
        return channel_config_adapter.validate_python(raw)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise ValidationError(f"Invalid channel configuration: {location}: {first['msg']}") from e


class ConfigurationService:
    """Reads and writes the structured configuration blobs of a tenant."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.tenant_service = TenantService(db)
        self.audit_service = AuditService(db)

    async def get_configuration(
        self, tenant_id: UUID, mask_secrets: bool = True
    ) -> TenantConfigurationResponse:
        tenant = await self.tenant_service.get_by_id(tenant_id)

        branding = BrandingConfig.model_validate(tenant.branding_config) if tenant.branding_config else None
        channels = {}
        for key, raw in (tenant.channel_config or {}).items():
            config = channel_config_adapter.validate_python(raw)
            channels[key] = config.masked() if mask_secrets else config.model_dump(mode="json")
        workflow = WorkflowConfig.model_validate(tenant.workflow_config or {})

        return TenantConfigurationResponse(branding=branding, channels=channels, workflow=workflow)

    async def update_branding(
        self, tenant_id: UUID, branding: BrandingConfig, actor_id: UUID | None = None
    ) -> BrandingConfig:
        tenant = await self.tenant_service.get_by_id(tenant_id)
        tenant.branding_config = branding.model_dump(mode="json")
        await self._saved(tenant, actor_id, {"section": "branding"})
        return branding

    async def set_color_scheme(
        self, tenant_id: UUID, colors: ColorScheme, actor_id: UUID | None = None
    ) -> BrandingConfig:
        """Replace only the colour scheme of the branding record.

        Raises:
            ValidationError: branding has not been configured yet
        """
        tenant = await self.tenant_service.get_by_id(tenant_id)
        if not tenant.branding_config:
            raise ValidationError("Branding must be configured before colors")

        branding = BrandingConfig.model_validate(tenant.branding_config)
        branding = branding.model_copy(update={"colors": colors})
        tenant.branding_config = branding.model_dump(mode="json")
        await self._saved(tenant, actor_id, {"section": "colors", **colors.model_dump()})
        return branding

    async def configure_channel(
        self,
        tenant_id: UUID,
        config: ChannelConfig | dict[str, Any],
        actor_id: UUID | None = None,
    ) -> ChannelConfig:
        if isinstance(config, dict):
            config = parse_channel_config(config)

        tenant = await self.tenant_service.get_by_id(tenant_id)
        # Reassign so the JSON column is flagged dirty.
        tenant.channel_config = {
            **(tenant.channel_config or {}),
            config.type: config.model_dump(mode="json"),
        }
        await self._saved(tenant, actor_id, {"section": "channels", "channel": config.type})
        return config

    async def remove_channel(
        self, tenant_id: UUID, channel_type: ChannelType, actor_id: UUID | None = None
    ) -> None:
        tenant = await self.tenant_service.get_by_id(tenant_id)
        channels = dict(tenant.channel_config or {})
        if channel_type.value not in channels:
            raise NotFoundError("Channel not configured")

        del channels[channel_type.value]
        tenant.channel_config = channels
        await self._saved(
            tenant, actor_id, {"section": "channels", "channel": channel_type.value, "removed": True}
        )

    async def update_workflow(
        self, tenant_id: UUID, workflow: WorkflowConfig, actor_id: UUID | None = None
    ) -> WorkflowConfig:
        tenant = await self.tenant_service.get_by_id(tenant_id)
        tenant.workflow_config = workflow.model_dump(mode="json")
        await self._saved(tenant, actor_id, {"section": "workflow"})
        return workflow

    async def _saved(self, tenant: Tenant, actor_id: UUID | None, diff: dict[str, Any]) -> None:
        await self.db.flush()
        await self.audit_service.log(
            tenant_id=tenant.id,
            action=AuditAction.TENANT_CONFIGURE,
            entity_type="tenant",
            entity_id=tenant.id,
            user_id=actor_id,
            diff_json=diff,
        )
