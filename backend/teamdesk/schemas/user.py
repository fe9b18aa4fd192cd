"""Pydantic schemas for user payloads."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from teamdesk.models.enums import UserRole, UserStatus


class PublicUserResponse(BaseModel):
    """Fields of a user that are safe to return to the user themselves."""

    id: UUID
    tenant_id: UUID
    email: str
    first_name: str
    last_name: str
    role: UserRole
    status: UserStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserPermissionsResponse(BaseModel):
    user_id: UUID
    role: UserRole
    permissions: list[str] = Field(..., description="Effective permissions, sorted")
