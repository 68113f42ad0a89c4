"""Authentication service."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from app.config import get_settings
from app.errors import (
    ConflictError,
    DeliveryError,
    NotFoundError,
    TokenInvalidOrExpired,
    Unauthorized,
    ValidationError,
)
from app.models.user import User, UserRole
from app.services.email import EmailService, get_email_service
from app.services.jwt import TokenService, get_token_service
from app.services.password import PasswordHasher, get_password_hasher
from app.services.reset_token import ResetTokenService, get_reset_token_service
from app.services.user_store import UserStore, get_user_store

logger = logging.getLogger("user_management")

PROFILE_FIELDS = ("first_name", "last_name", "email")
PASSWORD_FIELDS = ("password", "password_confirm", "new_password", "current_password")

INVALID_CREDENTIALS = "Incorrect email or password"


@dataclass
class AuthResult:
    """An authenticated account and its freshly issued token."""

    user: User
    token: str


class AuthService:
    """Handles registration, login and the password lifecycle."""

    def __init__(
        self,
        hasher: PasswordHasher | None = None,
        tokens: TokenService | None = None,
        reset_tokens: ResetTokenService | None = None,
        store: UserStore | None = None,
        mailer: EmailService | None = None,
        public_base_url: str | None = None,
    ) -> None:
        self.hasher = hasher or get_password_hasher()
        self.tokens = tokens or get_token_service()
        self.reset_tokens = reset_tokens or get_reset_token_service()
        self.store = store or get_user_store()
        self.mailer = mailer or get_email_service()
        self.public_base_url = public_base_url or get_settings().PUBLIC_BASE_URL

    def set_password(self, user: User, password: str) -> None:
        """Replace the password hash and mark the credential change."""
        user.password_hash = self.hasher.hash(password)
        user.password_changed_at = datetime.utcnow()

    def new_user(
        self,
        email: str,
        password: str,
        first_name: str | None = None,
        last_name: str | None = None,
        role: str | None = None,
    ) -> User:
        """Build an unsaved account with a hashed password."""
        return User(
            email=email.strip().lower(),
            password_hash=self.hasher.hash(password),
            first_name=first_name.strip() if first_name else None,
            last_name=last_name.strip() if last_name else None,
            role=role or UserRole.USER.value,
            is_active=True,
        )

    def register(
        self,
        db: Session,
        email: str,
        password: str,
        first_name: str | None = None,
        last_name: str | None = None,
        role: str | None = None,
    ) -> AuthResult:
        """Register a new account and log it in. Raises ConflictError on duplicate email."""
        user = self.store.create(db, self.new_user(email, password, first_name, last_name, role))
        logger.info("Registered user %s (role=%s)", user.id, user.role)
        return AuthResult(user=user, token=self.tokens.issue(user.id))

    def authenticate(self, db: Session, email: str, password: str) -> AuthResult:
        """Authenticate a user by email and password."""
        user = self.store.find_by_email(db, email, with_credentials=True)
        # Unknown emails pay the same bcrypt cost as a wrong password.
        password_hash = user.password_hash if user is not None else self.hasher.dummy_hash
        if not self.hasher.verify(password, password_hash) or user is None:
            logger.info("Failed login attempt")
            raise Unauthorized(INVALID_CREDENTIALS, reason="invalid_credentials")

        if not user.is_active:
            logger.info("Login refused for deactivated user %s", user.id)
            raise Unauthorized("Your account has been deactivated", reason="deactivated")

        user.last_login_at = datetime.utcnow()
        self.store.save(db, user)

        return AuthResult(user=user, token=self.tokens.issue(user.id))

    def request_password_reset(self, db: Session, email: str, base_url: str | None = None) -> str:
        """Issue a reset secret and email it to the account owner.

        The link is built on the configured public base URL unless one is
        passed in, never on the request Host. Returns the plaintext secret.
        If the email cannot be delivered the stored digest is cleared again
        before DeliveryError propagates.
        """
        user = self.store.find_by_email(db, email, with_credentials=True)
        if user is None:
            raise NotFoundError("There is no user with that email address.")

        reset = self.reset_tokens.generate()
        user.password_reset_digest = reset.digest
        user.password_reset_expires_at = reset.expires_at
        self.store.save(db, user)

        origin = (base_url or self.public_base_url).rstrip("/")
        reset_url = f"{origin}/api/v1/auth/reset-password/{reset.secret}"
        try:
            self.mailer.send_password_reset(user.email, reset_url, self.reset_tokens.expire_minutes)
        except DeliveryError:
            user.clear_password_reset()
            self.store.save(db, user)
            logger.warning("Rolled back password reset for user %s after delivery failure", user.id)
            raise

        logger.info("Password reset issued for user %s", user.id)
        return reset.secret

    def reset_password(self, db: Session, secret: str, new_password: str) -> AuthResult:
        """Set a new password using an unexpired reset secret."""
        user = self.store.find_by_reset_digest(db, self.reset_tokens.digest(secret))
        if user is None or not self.reset_tokens.match(secret, user.password_reset_digest):
            raise TokenInvalidOrExpired("Token is invalid or has expired")

        self.set_password(user, new_password)
        user.clear_password_reset()
        self.store.save(db, user)
        logger.info("Password reset completed for user %s", user.id)

        return AuthResult(user=user, token=self.tokens.issue(user.id))

    def change_password(self, db: Session, user: User, current_password: str, new_password: str) -> AuthResult:
        """Change the password of an authenticated account."""
        if not self.hasher.verify(current_password, user.password_hash):
            raise Unauthorized("Your current password is wrong.", reason="wrong_current_password")

        self.set_password(user, new_password)
        self.store.save(db, user)
        logger.info("Password changed for user %s", user.id)

        return AuthResult(user=user, token=self.tokens.issue(user.id))

    def update_profile(self, db: Session, user: User, changes: dict[str, Any]) -> User:
        """Apply a partial profile update. Credentials and role cannot change here."""
        if any(field in changes for field in PASSWORD_FIELDS):
            raise ValidationError("This route is not for password updates. Please use /update-password.")

        unknown = sorted(set(changes) - set(PROFILE_FIELDS))
        if unknown:
            raise ValidationError("These fields cannot be updated here", detail={"fields": unknown})

        if changes.get("email"):
            email = changes["email"].strip().lower()
            if email != user.email and self.store.email_taken(db, email, exclude_id=user.id):
                raise ConflictError("Email already in use")
            user.email = email
        for field in ("first_name", "last_name"):
            if field in changes:
                setattr(user, field, changes[field].strip() if changes[field] else None)

        return self.store.save(db, user)
