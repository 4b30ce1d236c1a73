import pytest
import requests

from chgk_portal.config import settings
from chgk_portal.services import notifications
from chgk_portal.services.workflow import NO_FEEDBACK


@pytest.fixture
def emailjs(monkeypatch):
    monkeypatch.setattr(settings, "EMAILJS_SERVICE_ID", "service_chgk")
    monkeypatch.setattr(settings, "EMAILJS_TEMPLATE_ID", "template_status")
    monkeypatch.setattr(settings, "EMAILJS_PUBLIC_KEY", "public_key")


class _Resp:
    def __init__(self, ok, status_code=200, text=""):
        self.ok = ok
        self.status_code = status_code
        self.text = text


def test_payload_shape(emailjs):
    payload = notifications.build_payload("gia@example.com", "Гия", "Ваш вопрос ОДОБРЕН и ожидает отбора на игру.")
    assert payload["service_id"] == "service_chgk"
    assert payload["template_id"] == "template_status"
    assert payload["user_id"] == "public_key"
    params = payload["template_params"]
    assert params["to_email"] == "gia@example.com"
    assert params["feedback"] == NO_FEEDBACK
    assert params["game_name"] == settings.CLUB_NAME
    assert params["from_name"] == settings.CLUB_SENDER_NAME


def test_missing_credentials_skip_sending(monkeypatch):
    monkeypatch.setattr(settings, "EMAILJS_SERVICE_ID", "")
    calls = []
    monkeypatch.setattr(requests, "post", lambda *a, **kw: calls.append(a))

    assert notifications._send_email_sync("gia@example.com", "Гия", "статус") is False
    assert calls == []


def test_send_reports_delivery(emailjs, monkeypatch):
    sent = []

    def fake_post(url, json=None, timeout=None):
        sent.append(json)
        return _Resp(ok=True)

    monkeypatch.setattr(requests, "post", fake_post)
    assert notifications._send_email_sync("gia@example.com", "Гия", "статус", "отлично") is True
    assert sent[0]["template_params"]["feedback"] == "отлично"

    monkeypatch.setattr(requests, "post", lambda *a, **kw: _Resp(ok=False, status_code=400, text="bad"))
    assert notifications._send_email_sync("gia@example.com", "Гия", "статус") is False


def test_network_error_is_not_raised(emailjs, monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(requests, "post", boom)
    assert notifications._send_email_sync("gia@example.com", "Гия", "статус") is False


@pytest.mark.asyncio
async def test_push_notification_skips_anonymous(db):
    assert await notifications.push_notification(db, None, "📨 Вопрос отправлен") is None
