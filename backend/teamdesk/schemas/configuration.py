"""Structured tenant configuration records.

Each configuration domain has its own model. Channel configs form a tagged
union on ``type``; ``extra`` carries unvalidated provider passthrough fields.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"
SECRET_MASK = "********"


class ColorScheme(BaseModel):
    primary: str = Field("#3B82F6", pattern=HEX_COLOR_PATTERN)
    secondary: str = Field("#10B981", pattern=HEX_COLOR_PATTERN)
    accent: str = Field("#F59E0B", pattern=HEX_COLOR_PATTERN)


class BrandingConfig(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=255)
    logo_url: str | None = Field(None, max_length=2048)
    colors: ColorScheme = Field(default_factory=ColorScheme)

    @field_validator("logo_url")
    @classmethod
    def logo_must_be_http(cls, v: str | None) -> str | None:
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError("logo_url must be an http(s) URL")
        return v


class _ChannelBase(BaseModel):
    enabled: bool = True
    extra: dict[str, Any] = Field(default_factory=dict)

    def masked(self) -> dict[str, Any]:
        """Dump with secrets replaced, for read endpoints."""
        return self.model_dump(mode="json")


class WhatsAppConfig(_ChannelBase):
    type: Literal["whatsapp"] = "whatsapp"
    business_account_id: str = Field(..., min_length=1)
    access_token: str = Field(..., min_length=1)
    phone_number_id: str = Field(..., min_length=1)
    webhook_verify_token: str | None = None

    def masked(self) -> dict[str, Any]:
        data = super().masked()
        data["access_token"] = SECRET_MASK
        if data.get("webhook_verify_token"):
            data["webhook_verify_token"] = SECRET_MASK
        return data


class InstagramConfig(_ChannelBase):
    type: Literal["instagram"] = "instagram"
    page_id: str = Field(..., min_length=1)
    access_token: str = Field(..., min_length=1)

    def masked(self) -> dict[str, Any]:
        data = super().masked()
        data["access_token"] = SECRET_MASK
        return data


class EmailChannelConfig(_ChannelBase):
    type: Literal["email"] = "email"
    smtp_host: str = Field(..., min_length=1)
    smtp_port: int = Field(..., ge=1, le=65535)
    from_address: str = Field(..., min_length=3)
    smtp_user: str | None = None
    smtp_password: str | None = None
    use_tls: bool = True

    def masked(self) -> dict[str, Any]:
        data = super().masked()
        if data.get("smtp_password"):
            data["smtp_password"] = SECRET_MASK
        return data


ChannelConfigUnion = Union[WhatsAppConfig, InstagramConfig, EmailChannelConfig]
ChannelConfig = Annotated[ChannelConfigUnion, Field(discriminator="type")]

channel_config_adapter: TypeAdapter[ChannelConfig] = TypeAdapter(ChannelConfig)


class BusinessHours(BaseModel):
    timezone: str = "UTC"
    days: list[Literal["mon", "tue", "wed", "thu", "fri", "sat", "sun"]] = Field(
        default_factory=lambda: ["mon", "tue", "wed", "thu", "fri"]
    )
    start: str = Field("09:00", pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    end: str = Field("17:00", pattern=r"^([01]\d|2[0-3]):[0-5]\d$")


class SlaRule(BaseModel):
    priority: Literal["low", "medium", "high", "urgent"]
    first_response_minutes: int = Field(..., gt=0)
    resolution_minutes: int = Field(..., gt=0)


class EscalationPath(BaseModel):
    name: str = Field(..., min_length=1)
    after_minutes: int = Field(..., gt=0)
    team_id: str | None = None
    notify_roles: list[str] = Field(default_factory=list)


class WorkflowConfig(BaseModel):
    business_hours: BusinessHours = Field(default_factory=BusinessHours)
    sla_rules: list[SlaRule] = Field(default_factory=list)
    escalation_paths: list[EscalationPath] = Field(default_factory=list)
    auto_assign: bool = False
    extra: dict[str, Any] = Field(default_factory=dict)


class TenantConfigurationResponse(BaseModel):
    branding: BrandingConfig | None = None
    channels: dict[str, dict[str, Any]] = Field(default_factory=dict)
    workflow: WorkflowConfig = Field(default_factory=WorkflowConfig)
