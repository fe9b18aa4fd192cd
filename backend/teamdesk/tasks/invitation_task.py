"""Celery task for the invitation expiry sweep."""

import asyncio
import logging
import time

from teamdesk.core.database import AsyncSessionLocal
from teamdesk.core.events import InvitationsExpired
from teamdesk.core.structured_logging import log_json
from teamdesk.services.event_dispatcher import EventDispatcher
from teamdesk.services.invitation_service import InvitationService
from teamdesk.services.notification_service import LogOnlyNotifier
from teamdesk.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


async def run_sweep(session_factory=AsyncSessionLocal) -> int:
    """Expire overdue invitations in a fresh session and record the sweep."""
    async with session_factory() as session:
        try:
            # The sweep never sends mail.
            service = InvitationService(session, notifier=LogOnlyNotifier())
            expired = await service.sweep_expired()
            if expired:
                await EventDispatcher(session).dispatch(
                    [InvitationsExpired(tenant_id=None, actor_id=None, count=expired)]
                )
            await session.commit()
            return expired
        except Exception:
            await session.rollback()
            raise


@celery_app.task(name="teamdesk.tasks.invitation_task.sweep_expired_invitations")
def sweep_expired_invitations() -> int:
    """Move overdue pending invitations to expired.

    Runs hourly via Celery Beat (see ``teamdesk.tasks.celery_app``).
    """

    started = time.perf_counter()
    log_json(logger, logging.INFO, "invitation_sweep_start")

    try:
        expired = asyncio.run(run_sweep())
    except Exception as exc:
        duration_ms = (time.perf_counter() - started) * 1000
        log_json(
            logger,
            logging.ERROR,
            "invitation_sweep_task_error",
            duration_ms=round(duration_ms, 2),
            error=str(exc),
            exception=exc.__class__.__name__,
        )
        raise

    duration_ms = (time.perf_counter() - started) * 1000
    log_json(
        logger,
        logging.INFO,
        "invitation_sweep_task_done",
        expired=expired,
        duration_ms=round(duration_ms, 2),
    )
    return expired
