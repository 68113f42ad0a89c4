"""Tests for the request authentication gate and the user store."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.orm import Session
from starlette.requests import Request

from app.errors import ConflictError, Forbidden, Unauthorized
from app.models.user import User
from app.services.auth import AuthService
from app.services.auth_gate import AuthGate, extract_token
from app.services.jwt import TokenService
from app.services.user_store import UserStore


def make_request(headers: dict[str, str]) -> Request:
    raw = [(key.lower().encode(), value.encode()) for key, value in headers.items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


@pytest.fixture(name="tokens")
def tokens_fixture() -> TokenService:
    return TokenService(secret_key="gate-secret", expire_minutes=60)


@pytest.fixture(name="gate")
def gate_fixture(tokens: TokenService) -> AuthGate:
    return AuthGate(tokens, UserStore())


@pytest.fixture(name="account")
def account_fixture(db_session: Session, auth_service: AuthService) -> User:
    return auth_service.register(db_session, "gate@example.com", "Password123!").user


class TestExtractToken:
    """Tests for reading the token off a request."""

    def test_bearer_header(self):
        assert extract_token(make_request({"Authorization": "Bearer abc.def.ghi"})) == "abc.def.ghi"

    def test_cookie_fallback(self):
        assert extract_token(make_request({"Cookie": "jwt=from-cookie"})) == "from-cookie"

    def test_header_preferred_over_cookie(self):
        request = make_request({"Authorization": "Bearer from-header", "Cookie": "jwt=from-cookie"})
        assert extract_token(request) == "from-header"

    def test_non_bearer_scheme_ignored(self):
        assert extract_token(make_request({"Authorization": "Basic dXNlcjpwYXNz"})) is None

    def test_no_token(self):
        assert extract_token(make_request({})) is None


class TestAuthGate:
    """Tests for each rejection step of the gate."""

    def test_authenticated(self, gate: AuthGate, tokens: TokenService, db_session: Session, account: User):
        assert gate.authenticate(db_session, tokens.issue(account.id)).id == account.id

    def test_no_token(self, gate: AuthGate, db_session: Session):
        with pytest.raises(Unauthorized) as exc_info:
            gate.authenticate(db_session, None)
        assert exc_info.value.reason == "no_token"

    def test_invalid_token(self, gate: AuthGate, db_session: Session):
        with pytest.raises(Unauthorized) as exc_info:
            gate.authenticate(db_session, "garbage")
        assert exc_info.value.reason == "invalid_or_expired_token"

    def test_expired_token(self, gate: AuthGate, tokens: TokenService, db_session: Session, account: User):
        token = tokens.issue(account.id, issued_at=datetime.utcnow() - timedelta(hours=2))
        with pytest.raises(Unauthorized) as exc_info:
            gate.authenticate(db_session, token)
        assert exc_info.value.reason == "invalid_or_expired_token"

    def test_account_gone(self, gate: AuthGate, tokens: TokenService, db_session: Session):
        with pytest.raises(Unauthorized) as exc_info:
            gate.authenticate(db_session, tokens.issue("00000000-0000-0000-0000-000000000000"))
        assert exc_info.value.reason == "account_gone"

    def test_soft_deleted_account_gone(self, gate: AuthGate, tokens: TokenService, db_session: Session, account: User):
        token = tokens.issue(account.id)
        UserStore().soft_delete(db_session, account)
        with pytest.raises(Unauthorized) as exc_info:
            gate.authenticate(db_session, token)
        assert exc_info.value.reason == "account_gone"

    def test_stale_session(self, gate: AuthGate, tokens: TokenService, db_session: Session, account: User):
        token = tokens.issue(account.id, issued_at=datetime.utcnow() - timedelta(minutes=5))
        account.password_changed_at = datetime.utcnow()
        db_session.commit()
        with pytest.raises(Unauthorized) as exc_info:
            gate.authenticate(db_session, token)
        assert exc_info.value.reason == "stale_session"

    def test_token_after_password_change_accepted(
        self, gate: AuthGate, tokens: TokenService, db_session: Session, account: User
    ):
        account.password_changed_at = datetime.utcnow() - timedelta(minutes=5)
        db_session.commit()
        assert gate.authenticate(db_session, tokens.issue(account.id)).id == account.id

    def test_deactivated(self, gate: AuthGate, tokens: TokenService, db_session: Session, account: User):
        account.is_active = False
        db_session.commit()
        with pytest.raises(Unauthorized) as exc_info:
            gate.authenticate(db_session, tokens.issue(account.id))
        assert exc_info.value.reason == "deactivated"

    def test_optional_returns_none_on_rejection(self, gate: AuthGate, db_session: Session):
        assert gate.authenticate_optional(db_session, None) is None
        assert gate.authenticate_optional(db_session, "garbage") is None

    def test_optional_deleted_account_is_anonymous(
        self, gate: AuthGate, tokens: TokenService, db_session: Session, account: User
    ):
        token = tokens.issue(account.id)
        UserStore().soft_delete(db_session, account)
        assert gate.authenticate_optional(db_session, token) is None

    def test_optional_stale_session_is_anonymous(
        self, gate: AuthGate, tokens: TokenService, db_session: Session, account: User
    ):
        token = tokens.issue(account.id, issued_at=datetime.utcnow() - timedelta(minutes=5))
        account.password_changed_at = datetime.utcnow()
        db_session.commit()
        assert gate.authenticate_optional(db_session, token) is None

    def test_optional_returns_account(self, gate: AuthGate, tokens: TokenService, db_session: Session, account: User):
        assert gate.authenticate_optional(db_session, tokens.issue(account.id)).id == account.id


class TestRequireRole:
    """Tests for the role check."""

    def test_allowed(self, account: User):
        account.role = "admin"
        assert AuthGate.require_role(account, ["admin"]) is account

    def test_wrong_role(self, account: User):
        with pytest.raises(Forbidden):
            AuthGate.require_role(account, ["admin"])

    def test_no_identity_fails_closed(self):
        with pytest.raises(Forbidden):
            AuthGate.require_role(None, ["admin", "user"])


class TestUserStore:
    """Tests for soft delete and email uniqueness."""

    def test_soft_delete_hides_record(self, db_session: Session, account: User):
        store = UserStore()
        store.soft_delete(db_session, account)
        assert store.find_by_id(db_session, account.id) is None
        assert store.find_by_email(db_session, "gate@example.com") is None
        assert store.find_by_id(db_session, account.id, include_deleted=True) is not None
        assert db_session.query(User).count() == 1

    def test_restore(self, db_session: Session, account: User):
        store = UserStore()
        store.soft_delete(db_session, account)
        store.restore(db_session, account)
        assert store.find_by_id(db_session, account.id).deleted_at is None

    def test_email_reusable_after_soft_delete(self, db_session: Session, account: User, auth_service: AuthService):
        UserStore().soft_delete(db_session, account)
        replacement = auth_service.register(db_session, "gate@example.com", "Password123!").user
        assert replacement.id != account.id

    def test_restore_conflicts_with_reused_email(
        self, db_session: Session, account: User, auth_service: AuthService
    ):
        store = UserStore()
        store.soft_delete(db_session, account)
        auth_service.register(db_session, "gate@example.com", "Password123!")
        with pytest.raises(ConflictError):
            store.restore(db_session, account)

    def test_create_duplicate(self, db_session: Session, account: User, auth_service: AuthService):
        with pytest.raises(ConflictError):
            auth_service.register(db_session, "Gate@Example.com", "Password123!")

    def test_reset_digest_lookup_ignores_expired(self, db_session: Session, account: User):
        store = UserStore()
        account.password_reset_digest = "d" * 64
        account.password_reset_expires_at = datetime.utcnow() - timedelta(seconds=1)
        db_session.commit()
        assert store.find_by_reset_digest(db_session, "d" * 64) is None

        account.password_reset_expires_at = datetime.utcnow() + timedelta(minutes=5)
        db_session.commit()
        assert store.find_by_reset_digest(db_session, "d" * 64).id == account.id
