"""Celery application configuration."""

from __future__ import annotations

import logging
from contextvars import Token

from celery import Celery
from celery.schedules import crontab
from celery.signals import task_postrun, task_prerun

from teamdesk.core.config import get_settings
from teamdesk.core.request_context import bind_request_id, unbind_request_id

logger = logging.getLogger(__name__)
settings = get_settings()
_task_tokens: dict[str, Token[str | None]] = {}


celery_app = Celery(
    "teamdesk",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend or settings.celery_broker_url,
    include=["teamdesk.tasks.invitation_task"],
)

celery_app.conf.update(
    timezone="UTC",
    enable_utc=True,
    beat_schedule={
        "invitation-sweep-hourly": {
            "task": "teamdesk.tasks.invitation_task.sweep_expired_invitations",
            "schedule": crontab(minute=settings.invitation_sweep_minute),
        }
    },
)


@task_prerun.connect
def _attach_correlation_id(
    task_id: str | None = None,
    **_: object,
) -> None:
    """Use the task id as the correlation ID for log lines."""

    if not task_id:
        return
    _task_tokens[task_id] = bind_request_id(task_id)


@task_postrun.connect
def _detach_correlation_id(
    task_id: str | None = None,
    **_: object,
) -> None:
    if not task_id:
        return
    token = _task_tokens.pop(task_id, None)
    if not token:
        return
    try:
        unbind_request_id(token)
    except ValueError:
        logger.exception("Failed to reset task correlation ID")
