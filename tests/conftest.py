"""Pytest configuration and fixtures."""

import os

# Cheap bcrypt cost for tests; must be set before settings are first loaded.
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import Base, get_db  # noqa: E402
from app.errors import DeliveryError  # noqa: E402
from app.models.user import User  # noqa: E402, F401
from app.services.auth import AuthService  # noqa: E402
from app.services.email import EmailService, get_email_service  # noqa: E402

TEST_PASSWORD = "Password123!"


class RecordingMailer(EmailService):
    """Email service that keeps messages in memory."""

    def __init__(self) -> None:
        super().__init__(smtp_host="smtp.test", from_email="noreply@test.dev")
        self.sent: list[dict] = []

    def send(self, to_email: str, subject: str, text_body: str, html_body: str | None = None) -> None:
        self.sent.append({"to": to_email, "subject": subject, "text": text_body, "html": html_body})


class FailingMailer(EmailService):
    """Email service whose SMTP server is always down."""

    def send(self, to_email: str, subject: str, text_body: str, html_body: str | None = None) -> None:
        raise DeliveryError("There was an error sending the email. Try again later!")


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="mailer")
def mailer_fixture() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture(name="auth_service")
def auth_service_fixture(mailer: RecordingMailer) -> AuthService:
    return AuthService(mailer=mailer)


@pytest.fixture(name="client")
def client_fixture(db_session: Session, mailer: RecordingMailer):
    """Create a test client with overridden DB and email dependencies."""
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_service] = lambda: mailer
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(name="test_user")
def test_user_fixture(db_session: Session, auth_service: AuthService):
    """Create a regular user and return its id, credentials and token."""
    result = auth_service.register(db_session, "test@example.com", TEST_PASSWORD, "Test", "User")
    return {
        "user_id": result.user.id,
        "email": result.user.email,
        "password": TEST_PASSWORD,
        "token": result.token,
    }


@pytest.fixture(name="admin_user")
def admin_user_fixture(db_session: Session, auth_service: AuthService):
    """Create an admin user and return its id, credentials and token."""
    result = auth_service.register(db_session, "admin@example.com", TEST_PASSWORD, "Ada", "Admin", role="admin")
    return {
        "user_id": result.user.id,
        "email": result.user.email,
        "password": TEST_PASSWORD,
        "token": result.token,
    }


def bearer(token: str) -> dict:
    """Authorization header for a token."""
    return {"Authorization": f"Bearer {token}"}
