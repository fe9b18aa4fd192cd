"""Delivery of domain events to their subscribers.

Subscribers are the audit trail writer, the Prometheus counters and the JSON
log. Extra subscribers (webhooks, analytics) register with ``subscribe``.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from teamdesk.core.events import DomainEvent, InvitationsExpired
from teamdesk.core.metrics import INVITATIONS_EXPIRED_TOTAL, record_invitation_event
from teamdesk.core.structured_logging import log_json
from teamdesk.services.audit_service import AuditService

logger = logging.getLogger(__name__)

Subscriber = Callable[[DomainEvent], Awaitable[None]]


class EventDispatcher:
    """Deliver events in order to every subscriber."""

    def __init__(self, db: AsyncSession, ip_address: str | None = None):
        self.audit_service = AuditService(db)
        self.ip_address = ip_address
        self._subscribers: list[Subscriber] = [self._write_audit, self._count, self._log]

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    async def dispatch(self, events: Iterable[DomainEvent]) -> None:
        for event in events:
            for subscriber in self._subscribers:
                await subscriber(event)

    async def _write_audit(self, event: DomainEvent) -> None:
        if event.action is None:
            return
        await self.audit_service.log(
            tenant_id=event.tenant_id,
            action=event.action,
            entity_type=event.entity_type,
            entity_id=event.entity_id,
            user_id=event.actor_id,
            diff_json=event.payload(),
            ip_address=self.ip_address,
        )

    async def _count(self, event: DomainEvent) -> None:
        if isinstance(event, InvitationsExpired):
            INVITATIONS_EXPIRED_TOTAL.inc(event.count)
        record_invitation_event(event.name)

    async def _log(self, event: DomainEvent) -> None:
        log_json(
            logger,
            logging.INFO,
            event.name,
            tenant_id=event.tenant_id,
            actor_id=event.actor_id,
            entity_id=event.entity_id,
            **event.payload(),
        )
