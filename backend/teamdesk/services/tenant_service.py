"""Tenant service for bootstrap and tenant details."""
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamdesk.core.errors import ConflictError, NotFoundError, ValidationError
from teamdesk.core.security import PasswordValidationError, hash_password, validate_password
from teamdesk.models.enums import AuditAction, UserRole, UserStatus
from teamdesk.models.team import Team
from teamdesk.models.tenant import Tenant
from teamdesk.models.user import User
from teamdesk.services.audit_service import AuditService
from teamdesk.services.invitation_service import normalize_email

DEFAULT_TEAM_NAME = "General"
DEFAULT_TEAM_COLOR = "#3B82F6"


class TenantService:
    """Service for creating and managing tenants."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit_service = AuditService(db)

    async def create(
        self,
        name: str,
        owner_email: str,
        owner_password: str,
        first_name: str = "",
        last_name: str = "",
    ) -> tuple[Tenant, User]:
        """Create a tenant with its owner and default team (bootstrap).

        Args:
            name: Tenant name
            owner_email: Email for the owner account
            owner_password: Password for the owner account
            first_name: Owner first name
            last_name: Owner last name

        Returns:
            Tuple of (Tenant, owner User)

        Raises:
            ConflictError: a tenant with this name exists
            ValidationError: the password does not meet requirements
        """
        existing = await self.db.execute(select(Tenant.id).where(Tenant.name == name))
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("Tenant already exists")

        try:
            validate_password(owner_password)
        except PasswordValidationError as e:
            raise ValidationError(str(e)) from e

        tenant = Tenant(name=name, branding_config={}, channel_config={}, workflow_config={})
        self.db.add(tenant)
        await self.db.flush()

        owner = User(
            tenant_id=tenant.id,
            email=normalize_email(owner_email),
            first_name=first_name,
            last_name=last_name,
            password_hash=hash_password(owner_password),
            role=UserRole.OWNER,
            status=UserStatus.ACTIVE,
            permissions=[],
        )
        self.db.add(owner)
        self.db.add(
            Team(
                tenant_id=tenant.id,
                name=DEFAULT_TEAM_NAME,
                color=DEFAULT_TEAM_COLOR,
                is_default=True,
            )
        )
        await self.db.flush()

        # Bootstrap action, no authenticated user yet
        await self.audit_service.log(
            tenant_id=tenant.id,
            action=AuditAction.TENANT_CREATE,
            entity_type="tenant",
            entity_id=tenant.id,
            diff_json={"name": name, "owner_email": owner.email},
        )
        return tenant, owner

    async def get_by_id(self, tenant_id: UUID) -> Tenant:
        """Get tenant by ID.

        Raises:
            NotFoundError: tenant not found
        """
        result = await self.db.execute(select(Tenant).where(Tenant.id == tenant_id))
        tenant = result.scalar_one_or_none()
        if not tenant:
            raise NotFoundError("Tenant not found")
        return tenant

    async def update(
        self,
        tenant_id: UUID,
        user_id: UUID,
        name: Optional[str] = None,
    ) -> Tenant:
        """Update tenant details and record a before/after diff."""
        tenant = await self.get_by_id(tenant_id)
        old_values = {"name": tenant.name}

        if name is not None and name != tenant.name:
            conflict = await self.db.execute(
                select(Tenant.id).where(Tenant.name == name, Tenant.id != tenant_id)
            )
            if conflict.scalar_one_or_none() is not None:
                raise ConflictError("Tenant already exists")
            tenant.name = name

        await self.db.flush()

        await self.audit_service.log(
            tenant_id=tenant.id,
            action=AuditAction.TENANT_UPDATE,
            entity_type="tenant",
            entity_id=tenant.id,
            user_id=user_id,
            diff_json={"before": old_values, "after": {"name": tenant.name}},
        )
        return tenant
