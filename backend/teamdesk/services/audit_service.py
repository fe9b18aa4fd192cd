"""Audit service for logging administrative actions."""
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamdesk.models.audit_event import AuditEvent
from teamdesk.models.enums import AuditAction


class AuditService:
    """Service for creating and querying audit trail entries."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        tenant_id: Optional[UUID],
        action: AuditAction,
        entity_type: str,
        entity_id: Optional[UUID] = None,
        user_id: Optional[UUID] = None,
        diff_json: Optional[dict[str, Any]] = None,
        ip_address: Optional[str] = None,
    ) -> AuditEvent:
        """Create an audit log entry.

        Args:
            tenant_id: Tenant ID (None for cross-tenant system actions)
            action: Action being performed
            entity_type: Type of entity being acted upon
            entity_id: ID of entity being acted upon
            user_id: ID of user performing action (None for system actions)
            diff_json: Action details or before/after diff
            ip_address: Client IP address

        Returns:
            Created AuditEvent instance
        """
        audit_event = AuditEvent(
            tenant_id=tenant_id,
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            diff_json=diff_json,
            ip_address=ip_address,
        )
        self.db.add(audit_event)
        await self.db.flush()
        return audit_event

    async def list_for_entity(self, entity_type: str, entity_id: UUID) -> list[AuditEvent]:
        """Return the audit trail of one entity, oldest first."""
        result = await self.db.execute(
            select(AuditEvent)
            .where(AuditEvent.entity_type == entity_type, AuditEvent.entity_id == entity_id)
            .order_by(AuditEvent.created_at)
        )
        return list(result.scalars().all())
