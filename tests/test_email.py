import asyncio
import json
import httpx
import pytest
from main import app
from taxitao.core.http_client import get_http_transport
from taxitao.services import email_service
from taxitao.services.email_templates import get_driver_email_template, should_send_email
from conftest import headers_for

MESSAGE = {"to": "driver@example.com", "subject": "Hello", "html": "<p>Hi</p>"}


@pytest.fixture
def resend(monkeypatch):
    monkeypatch.setattr(email_service.settings, "RESEND_API_KEY", "re_test")
    sent = []

    def install(status_code=200, body=None):
        def handler(request: httpx.Request) -> httpx.Response:
            sent.append(request)
            return httpx.Response(status_code, json=body if body is not None else {"id": "email_123"})

        app.dependency_overrides[get_http_transport] = lambda: httpx.MockTransport(handler)
        return sent

    return install


@pytest.fixture
def headers(make_user):
    return headers_for(make_user())


def test_send_email_success(client, headers, resend):
    sent = resend()
    res = client.post("/api/send-email", json=MESSAGE, headers=headers)

    assert res.status_code == 200
    assert res.json() == {"success": True, "id": "email_123"}

    [request] = sent
    assert request.headers["Authorization"] == "Bearer re_test"
    payload = json.loads(request.content)
    assert payload["to"] == "driver@example.com"
    assert payload["from"] == email_service.settings.EMAIL_FROM


def test_missing_fields(client, headers, resend):
    resend()
    res = client.post("/api/send-email", json={"to": "driver@example.com"}, headers=headers)
    assert res.status_code == 400
    assert res.json() == {"error": "Missing required fields: to, subject, html"}


@pytest.mark.parametrize("payload", [
    [MESSAGE],
    {**MESSAGE, "subject": {"text": "Hello"}},
])
def test_malformed_body_is_missing_fields(client, headers, resend, payload):
    sent = resend()
    res = client.post("/api/send-email", json=payload, headers=headers)
    assert res.status_code == 400
    assert res.json() == {"error": "Missing required fields: to, subject, html"}
    assert sent == []


def test_not_configured(client, headers):
    res = client.post("/api/send-email", json=MESSAGE, headers=headers)
    assert res.status_code == 500
    assert res.json() == {"error": "Email service not configured"}


def test_provider_error_is_passed_through(client, headers, resend):
    resend(status_code=422, body={"message": "Invalid `to` field"})
    res = client.post("/api/send-email", json=MESSAGE, headers=headers)
    assert res.status_code == 422
    assert res.json() == {"error": "Failed to send email", "details": {"message": "Invalid `to` field"}}


def test_requires_authentication(client):
    res = client.post("/api/send-email", json=MESSAGE)
    assert res.status_code == 401


def test_driver_templates():
    template = get_driver_email_template("payment_rejected", "John", rejection_reason="Wrong code")
    assert template.subject == "❌ Payment Rejected - TaxiTao"
    assert "Wrong code" in template.html
    assert "<strong>John</strong>" in template.html

    expiring = get_driver_email_template("subscription_expiring", "John")
    assert "3 days" in expiring.html
    assert "Soon" in expiring.html

    assert get_driver_email_template("birthday", "John") is None
    assert should_send_email("admin_message")
    assert not should_send_email("birthday")


def test_send_driver_email_reports_failure(monkeypatch):
    monkeypatch.setattr(email_service.settings, "RESEND_API_KEY", "re_test")
    transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))

    ok = asyncio.run(email_service.send_driver_email("subscription_expired", "d@example.com", "John", transport=transport))
    assert ok is False

    assert asyncio.run(email_service.send_driver_email("birthday", "d@example.com", "John")) is False
