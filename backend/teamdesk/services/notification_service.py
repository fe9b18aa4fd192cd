"""Invitation e-mail delivery.

``Notifier`` is the port the invitation lifecycle depends on; ``SmtpNotifier``
is the production adapter. Delivery is best effort: callers log and swallow
whatever ``send`` raises.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Protocol

from teamdesk.core.config import Settings, get_settings
from teamdesk.core.structured_logging import log_json

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutboundEmail:
    to: str
    subject: str
    html: str
    text: str


class Notifier(Protocol):
    async def send(self, message: OutboundEmail) -> None: ...


class SmtpNotifier:
    """Send mail through the configured SMTP relay on a worker thread."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def _build(self, message: OutboundEmail) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = message.subject
        msg["From"] = self.settings.smtp_from
        msg["To"] = message.to
        msg.set_content(message.text)
        msg.add_alternative(message.html, subtype="html")
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        s = self.settings
        with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=s.smtp_timeout_seconds) as smtp:
            smtp.ehlo()
            if s.smtp_use_tls:
                smtp.starttls(context=ssl.create_default_context())
                smtp.ehlo()
            if s.smtp_user:
                smtp.login(s.smtp_user, s.smtp_password)
            smtp.send_message(msg)

    async def send(self, message: OutboundEmail) -> None:
        await asyncio.to_thread(self._deliver, self._build(message))
        log_json(logger, logging.INFO, "email_sent", to=message.to, subject=message.subject)


class LogOnlyNotifier:
    """Used when e-mail is disabled: records the message instead of sending it."""

    async def send(self, message: OutboundEmail) -> None:
        log_json(logger, logging.INFO, "email_suppressed", to=message.to, subject=message.subject)


def get_notifier() -> Notifier:
    """Pick the notifier for the current settings."""
    settings = get_settings()
    if not settings.email_enabled:
        return LogOnlyNotifier()
    return SmtpNotifier(settings)
