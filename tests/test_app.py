from datetime import timedelta
from unittest.mock import AsyncMock
from urllib.parse import parse_qs, urlparse

from fastapi.testclient import TestClient

from app import create_app
from scheduler.daily_scheduler import DailyScheduler
from auth.tokens import create_token
from utils.time_utils import utcnow


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_checkmail_sends_confirmation_link(client, services):
    response = client.post("/sec/checkmail", json={"email": " Sun@Example.com "})

    assert response.status_code == 200
    assert response.json() == {"status": "confirmation_sent", "email": "sun@example.com"}

    mail = services.sender.sent[-1]
    assert mail["to_email"] == "sun@example.com"
    assert "http://testserver/auth/gms?tkn=" in mail["html_body"]


def test_checkmail_rejects_bad_address(client, services):
    response = client.post("/sec/checkmail", json={"email": "not-an-email"})

    assert response.status_code == 400
    assert services.sender.sent == []


def test_checkmail_reports_send_failure(client, services):
    services.enrollment.sender = AsyncMock()
    services.enrollment.sender.send = AsyncMock(return_value=False)

    response = client.post("/sec/checkmail", json={"email": "sun@example.com"})

    assert response.status_code == 502


def test_confirmation_link_enrolls_recipient(client, services):
    client.post("/sec/checkmail", json={"email": "sun@example.com"})
    html = services.sender.sent[-1]["html_body"]
    link = html.split('href="')[1].split('"')[0]
    token = parse_qs(urlparse(link).query)["tkn"][0]

    response = client.get("/auth/gms", params={"tkn": token})

    assert response.status_code == 200
    body = response.json()
    assert body["email_address"] == "sun@example.com"
    assert body["is_deleted"] is False

    active = services.store.list_active(utcnow())
    assert [r.email_address for r in active] == ["sun@example.com"]


def test_confirming_twice_keeps_one_record(client, services, settings):
    token = create_token("sun@example.com", settings.jwt_secret, timedelta(minutes=5))

    first = client.get("/auth/gms", params={"tkn": token}).json()
    second = client.get("/auth/gms", params={"tkn": token}).json()

    assert first["id"] == second["id"]
    assert len(services.store.list_active(utcnow())) == 1


def test_confirmation_rejects_bad_tokens(client, settings):
    expired = create_token("sun@example.com", settings.jwt_secret, timedelta(minutes=5),
                           now=utcnow() - timedelta(hours=1))
    forged = create_token("sun@example.com", "wrong-secret", timedelta(minutes=5))

    assert client.get("/auth/gms").status_code == 401
    assert client.get("/auth/gms", params={"tkn": "garbage"}).status_code == 401
    assert client.get("/auth/gms", params={"tkn": expired}).status_code == 401
    assert client.get("/auth/gms", params={"tkn": forged}).status_code == 401


def test_scheduler_starts_and_stops_with_app(settings):
    from service_factory import ServiceFactory
    services = ServiceFactory(settings.model_copy(update={"scheduler_enabled": True}))
    app = create_app(services)

    with TestClient(app) as c:
        assert c.get("/health").status_code == 200
        assert isinstance(app.state.scheduler, DailyScheduler)

    assert app.state.scheduler.running is False
