"""Notification sender on top of Django's mail framework."""

import smtplib

import structlog
from django.core.mail import send_mail

from registrations.domain.errors import UpstreamUnavailableError
from registrations.gateways.interfaces import NotificationSender

logger = structlog.get_logger(__name__)


class EmailNotificationSender(NotificationSender):
    def __init__(self, from_email: str | None = None) -> None:
        self._from_email = from_email

    def send(self, recipients: list[str], subject: str, body: str) -> None:
        if not recipients:
            return
        try:
            send_mail(subject, body, self._from_email, recipients, fail_silently=False)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("notification_send_failed", recipients=recipients, error=str(exc))
            raise UpstreamUnavailableError("notification", str(exc)) from exc
