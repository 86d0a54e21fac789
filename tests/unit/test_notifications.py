import uuid
from types import SimpleNamespace

import pytest
from pywebpush import WebPushException

from tucancha.core.config import settings
from tucancha.db.models import PushSubscription, User, UserRole
from tucancha.services import notification_service
from tucancha.services.notification_service import EmailSender, PushNotifier, html_to_text, render_email


@pytest.fixture()
def vapid(monkeypatch):
    monkeypatch.setattr(settings, "vapid_public_key", "public")
    monkeypatch.setattr(settings, "vapid_private_key", "private")


def _owner_with_subscriptions(db, endpoints: list[str]) -> User:
    owner = User(email="push-owner@example.com", hashed_password="x", full_name="Dueño", role=UserRole.OWNER.value)
    db.add(owner)
    db.flush()
    for endpoint in endpoints:
        db.add(PushSubscription(user_id=owner.id, endpoint=endpoint, p256dh_key="p256dh", auth_key="auth"))
    db.commit()
    return owner


def test_push_skipped_without_vapid_keys(db_session, monkeypatch):
    monkeypatch.setattr(settings, "vapid_private_key", "")

    counts = PushNotifier(db_session).send_to_user(uuid.uuid4(), title="Nueva reserva", body="...")

    assert counts == {"sent": 0, "failed": 0, "expired": 0}


def test_push_counts_and_prunes_expired_subscriptions(db_session, vapid, monkeypatch):
    owner = _owner_with_subscriptions(
        db_session,
        ["https://push.example.com/ok", "https://push.example.com/gone", "https://push.example.com/broken"],
    )
    payloads = []

    def fake_webpush(subscription_info, data, vapid_private_key, vapid_claims):
        payloads.append(data)
        endpoint = subscription_info["endpoint"]
        if endpoint.endswith("gone"):
            raise WebPushException("gone", response=SimpleNamespace(status_code=410))
        if endpoint.endswith("broken"):
            raise WebPushException("server error", response=SimpleNamespace(status_code=500))

    monkeypatch.setattr(notification_service, "webpush", fake_webpush)

    counts = PushNotifier(db_session).send_to_user(owner.id, title="Nueva reserva", body="Cancha 1", url="/dashboard")

    assert counts == {"sent": 1, "failed": 1, "expired": 1}
    assert '"title": "Nueva reserva"' in payloads[0]
    remaining = {subscription.endpoint for subscription in db_session.query(PushSubscription)}
    assert remaining == {"https://push.example.com/ok", "https://push.example.com/broken"}


def test_email_skipped_without_api_key():
    assert EmailSender(api_key="").send("owner@example.com", "Nueva reserva", "<p>hola</p>") is False


def test_email_sent_through_resend(monkeypatch):
    sent = []
    monkeypatch.setattr(notification_service.resend.Emails, "send", staticmethod(lambda params: sent.append(params)))

    ok = EmailSender(api_key="re_test", sender="TuCancha <reservas@example.com>").send(
        "owner@example.com", "Nueva reserva", "<p>Hola <b>Ana</b></p>"
    )

    assert ok is True
    assert sent[0]["to"] == ["owner@example.com"]
    assert sent[0]["text"] == "Hola Ana"


def test_email_provider_error_is_reported_not_raised(monkeypatch):
    def explode(params):
        raise RuntimeError("resend unavailable")

    monkeypatch.setattr(notification_service.resend.Emails, "send", staticmethod(explode))

    assert EmailSender(api_key="re_test").send("owner@example.com", "Asunto", "<p>x</p>") is False


def test_templates_render_booking_details():
    html = render_email(
        "owner_new_booking.html",
        owner_name="Ana",
        player_name="Luis",
        venue_name="Complejo <Central>",
        court_name="Cancha 1",
        booking_date="02/11/2026",
        start_time="14:00",
        end_time="15:00",
        price="120.000",
    )

    assert "Complejo &lt;Central&gt;" in html
    assert "14:00 a 15:00" in html
    assert "Luis" in html_to_text(html)
