"""Request authentication gate.

Decides whether a presented bearer token identifies a usable account:

1. a token must be present (header or cookie);
2. the token must verify (signature and lifetime);
3. the account must still exist and not be soft-deleted;
4. the token must not predate the account's last password change;
5. the account must be active.

Each failure raises ``Unauthorized`` with a ``reason`` for the logs. Clients
receive only the message.
"""

import calendar
import logging
from collections.abc import Iterable

from sqlalchemy.orm import Session
from starlette.requests import HTTPConnection

from app.errors import Forbidden, TokenError, Unauthorized
from app.models.user import User
from app.services.jwt import TokenService, get_token_service
from app.services.user_store import UserStore, get_user_store

logger = logging.getLogger("user_management")

AUTH_COOKIE_NAME = "jwt"


def extract_token(request: HTTPConnection) -> str | None:
    """Read the bearer token from the Authorization header, falling back to the cookie."""
    auth_header = request.headers.get("Authorization")
    if auth_header:
        scheme, _, credentials = auth_header.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    return request.cookies.get(AUTH_COOKIE_NAME) or None


def _epoch_seconds(value) -> int:
    return calendar.timegm(value.utctimetuple())


class AuthGate:
    """Verifies bearer tokens against the current state of the account."""

    def __init__(self, tokens: TokenService, store: UserStore) -> None:
        self.tokens = tokens
        self.store = store

    def authenticate(self, db: Session, token: str | None) -> User:
        """Return the account a token belongs to, or raise Unauthorized."""
        if not token:
            raise Unauthorized("You are not logged in! Please log in to get access.", reason="no_token")

        try:
            claims = self.tokens.verify(token)
        except TokenError as exc:
            raise Unauthorized(
                "Invalid token or session expired. Please log in again.", reason="invalid_or_expired_token"
            ) from exc

        user = self.store.find_by_id(db, claims.subject_id)
        if user is None:
            raise Unauthorized("The user belonging to this token no longer exists.", reason="account_gone")

        if self.changed_password_after(user, claims.issued_at):
            raise Unauthorized("User recently changed password! Please log in again.", reason="stale_session")

        if not user.is_active:
            raise Unauthorized("Your account has been deactivated", reason="deactivated")

        return user

    def authenticate_optional(self, db: Session, token: str | None) -> User | None:
        """Lenient variant: any rejection means an anonymous caller."""
        try:
            return self.authenticate(db, token)
        except Unauthorized as exc:
            if exc.reason != "no_token":
                logger.debug("Ignoring credentials on lenient route: %s", exc.reason)
            return None

    @staticmethod
    def changed_password_after(user: User, issued_at) -> bool:
        """True if the password changed after the token was issued (whole-second resolution)."""
        if user.password_changed_at is None:
            return False
        return _epoch_seconds(issued_at) < _epoch_seconds(user.password_changed_at)

    @staticmethod
    def require_role(user: User | None, roles: Iterable[str]) -> User:
        """Check an authenticated account against allowed roles. Fails closed."""
        if user is None:
            raise Forbidden("You do not have permission to perform this action")
        allowed = set(roles)
        if user.role not in allowed:
            logger.warning("User %s with role %s denied (requires %s)", user.id, user.role, sorted(allowed))
            raise Forbidden("You do not have permission to perform this action")
        return user


_auth_gate: AuthGate | None = None


def get_auth_gate() -> AuthGate:
    """Get singleton auth gate instance."""
    global _auth_gate
    if _auth_gate is None:
        _auth_gate = AuthGate(get_token_service(), get_user_store())
    return _auth_gate
