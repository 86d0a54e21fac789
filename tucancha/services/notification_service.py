"""Push and email delivery for booking lifecycle events.

Delivery is best-effort: every public method logs failures and reports them
through its return value instead of raising.
"""

import json
import logging
import re
import uuid
from pathlib import Path
from typing import Any, Protocol

import resend
from jinja2 import Environment, FileSystemLoader, select_autoescape
from pywebpush import WebPushException, webpush
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from tucancha.core.config import settings
from tucancha.core.metrics import NOTIFICATIONS_SENT
from tucancha.db.models import Booking, PushSubscription

logger = logging.getLogger(__name__)

DEFAULT_ICON = "/icons/icon-192x192.png"
TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"

_templates = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


class NotificationDispatcher(Protocol):
    def booking_created(self, booking: Booking) -> None: ...

    def booking_cancelled(self, booking: Booking) -> None: ...


def render_email(template_name: str, **context: Any) -> str:
    return _templates.get_template(template_name).render(app_url=settings.app_url, **context)


def html_to_text(html: str) -> str:
    return re.sub(r"\s+", " ", re.sub(r"<[^>]+>", " ", html)).strip()


class PushNotifier:
    """Sends Web Push messages to every device a user subscribed."""

    def __init__(self, db: Session) -> None:
        self.db = db

    @staticmethod
    def is_configured() -> bool:
        return bool(settings.vapid_public_key and settings.vapid_private_key)

    def send_to_user(
        self,
        user_id: uuid.UUID,
        title: str,
        body: str,
        url: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> dict[str, int]:
        counts = {"sent": 0, "failed": 0, "expired": 0}
        if not self.is_configured():
            logger.warning("push_not_configured user_id=%s", user_id)
            return counts

        subscriptions = self.db.scalars(
            select(PushSubscription).where(PushSubscription.user_id == user_id)
        ).all()
        if not subscriptions:
            logger.info("push_no_subscriptions user_id=%s", user_id)
            return counts

        payload = json.dumps(
            {
                "title": title,
                "body": body,
                "icon": DEFAULT_ICON,
                "data": {**(data or {}), "url": url or "/"},
            }
        )
        for subscription in subscriptions:
            outcome = self._send(subscription, payload)
            counts[outcome] += 1
            NOTIFICATIONS_SENT.labels(channel="push", outcome=outcome).inc()
        return counts

    def _send(self, subscription: PushSubscription, payload: str) -> str:
        try:
            webpush(
                subscription_info={
                    "endpoint": subscription.endpoint,
                    "keys": {"p256dh": subscription.p256dh_key, "auth": subscription.auth_key},
                },
                data=payload,
                vapid_private_key=settings.vapid_private_key,
                vapid_claims={"sub": settings.vapid_claims_email},
            )
            return "sent"
        except WebPushException as exc:
            status_code = getattr(exc.response, "status_code", None)
            if status_code in (404, 410):
                logger.info("push_subscription_expired subscription_id=%s", subscription.id)
                self.db.execute(delete(PushSubscription).where(PushSubscription.id == subscription.id))
                self.db.commit()
                return "expired"
            logger.error("push_send_failed subscription_id=%s error=%s", subscription.id, exc)
            return "failed"
        except Exception:
            logger.exception("push_send_failed subscription_id=%s", subscription.id)
            return "failed"


class EmailSender:
    def __init__(self, api_key: str | None = None, sender: str | None = None) -> None:
        self.api_key = settings.resend_api_key if api_key is None else api_key
        self.sender = sender or settings.email_from

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def send(self, to: str, subject: str, html: str) -> bool:
        if not self.is_configured():
            logger.warning("email_not_configured to=%s subject=%s", to, subject)
            NOTIFICATIONS_SENT.labels(channel="email", outcome="skipped").inc()
            return False

        resend.api_key = self.api_key
        try:
            resend.Emails.send(
                {
                    "from": self.sender,
                    "to": [to],
                    "subject": subject,
                    "html": html,
                    "text": html_to_text(html),
                }
            )
        except Exception:
            logger.exception("email_send_failed to=%s subject=%s", to, subject)
            NOTIFICATIONS_SENT.labels(channel="email", outcome="failed").inc()
            return False

        logger.info("email_sent to=%s subject=%s", to, subject)
        NOTIFICATIONS_SENT.labels(channel="email", outcome="sent").inc()
        return True
