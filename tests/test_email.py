"""Tests for SMTP email delivery."""

import smtplib

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.errors import DeliveryError
from app.models.user import User
from app.services import email as email_module
from app.services.email import EmailService, get_email_service


class FakeSMTP:
    """Stands in for smtplib.SMTP and records what it was asked to do."""

    instances: list["FakeSMTP"] = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.started_tls = False
        self.logged_in_as = None
        self.messages: list[tuple[str, str, str]] = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def starttls(self, context=None):
        self.started_tls = True

    def login(self, user, password):
        self.logged_in_as = user

    def sendmail(self, from_addr, to_addr, message):
        self.messages.append((from_addr, to_addr, message))


class RefusingSMTP(FakeSMTP):
    def sendmail(self, from_addr, to_addr, message):
        raise smtplib.SMTPRecipientsRefused({to_addr: (550, b"mailbox unavailable")})


class UnreachableSMTP:
    def __init__(self, host, port, timeout=None):
        raise ConnectionRefusedError(111, "Connection refused")


def configured_service() -> EmailService:
    return EmailService(
        smtp_host="smtp.test",
        smtp_port=587,
        smtp_user="mailer",
        smtp_password="hunter2",
        from_email="noreply@test.dev",
    )


@pytest.fixture(autouse=True)
def reset_fake_smtp():
    FakeSMTP.instances = []


class TestEmailService:
    """Tests for the real send path against a fake SMTP server."""

    def test_not_configured(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(email_module.smtplib, "SMTP", FakeSMTP)
        service = EmailService()
        assert service.is_configured is False
        with pytest.raises(DeliveryError):
            service.send("someone@example.com", "Hello", "body")
        assert FakeSMTP.instances == []

    def test_from_falls_back_to_username(self):
        service = EmailService(smtp_host="smtp.test", smtp_user="mailer@test.dev")
        assert service.from_email == "mailer@test.dev"
        assert service.is_configured is True

    def test_send(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(email_module.smtplib, "SMTP", FakeSMTP)
        configured_service().send("someone@example.com", "Hello", "plain body", "<p>html body</p>")

        server = FakeSMTP.instances[0]
        assert (server.host, server.port) == ("smtp.test", 587)
        assert server.started_tls is True
        assert server.logged_in_as == "mailer"
        from_addr, to_addr, message = server.messages[0]
        assert from_addr == "noreply@test.dev"
        assert to_addr == "someone@example.com"
        assert "Subject: Hello" in message

    def test_smtp_error_becomes_delivery_error(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(email_module.smtplib, "SMTP", RefusingSMTP)
        with pytest.raises(DeliveryError) as exc_info:
            configured_service().send("someone@example.com", "Hello", "body")
        assert isinstance(exc_info.value.__cause__, smtplib.SMTPException)
        assert exc_info.value.status_code == 500

    def test_connection_error_becomes_delivery_error(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(email_module.smtplib, "SMTP", UnreachableSMTP)
        with pytest.raises(DeliveryError):
            configured_service().send("someone@example.com", "Hello", "body")

    def test_password_reset_message(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(email_module.smtplib, "SMTP", FakeSMTP)
        link = "http://localhost:8000/api/v1/auth/reset-password/abc123"
        configured_service().send_password_reset("someone@example.com", link, expire_minutes=10)

        message = FakeSMTP.instances[0].messages[0][2]
        assert "valid for 10 minutes" in message
        assert link in message


class TestRedact:
    def test_keeps_domain(self):
        assert EmailService.redact("jane.doe@example.com") == "ja***@example.com"

    def test_not_an_address(self):
        assert EmailService.redact("nonsense") == "redacted"


class TestResetDeliveryFailure:
    """A real SMTP failure during forgot-password leaves no usable reset secret."""

    def test_rolls_back_reset_fields(
        self, client: TestClient, test_user: dict, db_session: Session, monkeypatch: pytest.MonkeyPatch
    ):
        from main import app

        monkeypatch.setattr(email_module.smtplib, "SMTP", RefusingSMTP)
        app.dependency_overrides[get_email_service] = configured_service

        response = client.post("/api/v1/auth/forgot-password", json={"email": "test@example.com"})
        assert response.status_code == 500
        assert response.json()["error"]["code"] == "delivery_failed"

        user = db_session.query(User).filter(User.email == "test@example.com").first()
        assert user.password_reset_digest is None
        assert user.password_reset_expires_at is None

    def test_unconfigured_mailer(self, client: TestClient, test_user: dict, db_session: Session):
        from main import app

        app.dependency_overrides[get_email_service] = lambda: EmailService()

        response = client.post("/api/v1/auth/forgot-password", json={"email": "test@example.com"})
        assert response.status_code == 500

        user = db_session.query(User).filter(User.email == "test@example.com").first()
        assert user.password_reset_digest is None
