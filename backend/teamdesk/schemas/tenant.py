"""Pydantic schemas for tenant endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class CreateTenantRequest(BaseModel):
    """Request schema for creating a tenant (bootstrap).

    Used for POST /tenants endpoint.
    Creates the tenant with its owner account and default team.
    """

    name: str = Field(..., min_length=1, max_length=255, description="Tenant display name")
    owner_email: EmailStr = Field(..., description="Email address for the owner account")
    owner_password: str = Field(..., min_length=8, description="Password for the owner account")
    first_name: str = Field("", max_length=100)
    last_name: str = Field("", max_length=100)

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        """Validate that name is not empty or whitespace only."""
        if not v or not v.strip():
            raise ValueError("Tenant name cannot be empty")
        return v.strip()


class TenantUpdateRequest(BaseModel):
    """Partial update for PATCH /tenants/me."""

    name: str | None = Field(None, min_length=1, max_length=255, description="Tenant display name")

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str | None) -> str | None:
        if v is not None and (not v or not v.strip()):
            raise ValueError("Tenant name cannot be empty")
        return v.strip() if v else None


class TenantResponse(BaseModel):
    id: UUID = Field(..., description="Tenant unique identifier")
    name: str = Field(..., description="Tenant display name")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last modification timestamp")

    model_config = ConfigDict(from_attributes=True)


class TenantBootstrapResponse(TenantResponse):
    owner_id: UUID = Field(..., description="Owner user identifier")
